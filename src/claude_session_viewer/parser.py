"""Full parsing of a single session log into messages."""

import logging
from pathlib import Path

from .config import SESSION_LOG_SUFFIX, get_claude_code_path, validate_identifier
from .core import Message, ParsedSession, SessionMeta
from .errors import LogReadError
from .records import (
    MESSAGE_TYPES,
    has_content,
    iter_log_lines,
    message_content,
    message_role,
    parse_content_blocks,
)

logger = logging.getLogger(__name__)


def session_log_path(projects_dir: Path, project_id: str, session_id: str) -> Path:
    """Return ``<projects_dir>/<project_id>/<session_id>.jsonl`` after validating both ids."""
    validate_identifier(project_id, "project id")
    validate_identifier(session_id, "session id")
    return projects_dir / project_id / f"{session_id}{SESSION_LOG_SUFFIX}"


def parse_session(
    project_id: str, session_id: str, projects_dir: Path | None = None
) -> ParsedSession | None:
    """Parse a session's JSONL file.

    Returns None if the session file does not exist. Messages keep file
    order, which is the causal order of the conversation; timestamps are
    not used for sorting. Raises LogReadError if the file cannot be read
    to the end.
    """
    base = projects_dir if projects_dir is not None else get_claude_code_path()
    path = session_log_path(base, project_id, session_id)
    if not path.is_file():
        return None

    meta = SessionMeta()
    messages = []

    try:
        for entry in iter_log_lines(path):
            if meta.session_id is None and entry.get("sessionId"):
                meta = SessionMeta(
                    session_id=entry.get("sessionId"),
                    cwd=entry.get("cwd"),
                    version=entry.get("version"),
                    git_branch=entry.get("gitBranch"),
                )

            if entry.get("type") not in MESSAGE_TYPES:
                continue
            messages.append(_entry_to_message(entry))
    except OSError as e:
        logger.warning("Failed to read JSONL %s: %s", path, e)
        raise LogReadError(f"Failed to read session {project_id}/{session_id}: {e}") from e

    return ParsedSession(meta=meta, messages=messages)


def _entry_to_message(entry: dict) -> Message:
    message = entry.get("message")
    model = message.get("model") if isinstance(message, dict) else None
    blocks = parse_content_blocks(message_content(entry))

    return Message(
        uuid=entry.get("uuid"),
        parent_uuid=entry.get("parentUuid"),
        role=message_role(entry),
        blocks=blocks,
        timestamp=entry.get("timestamp"),
        model=model,
        has_content=has_content(blocks),
        is_sidechain=bool(entry.get("isSidechain", False)),
    )
