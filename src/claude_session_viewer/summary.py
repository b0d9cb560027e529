"""Cheap single pass over a session log for list views."""

import logging
from pathlib import Path

from .core import SessionSummary
from .records import MESSAGE_TYPES, extract_plain_text, iter_log_lines, message_content

logger = logging.getLogger(__name__)

FIRST_MESSAGE_MAX_CHARS = 200

# User lines starting with markup are command echoes, caveats and other
# injected text rather than something the user typed.
MARKUP_PREFIX = "<"


def read_session_summary(path: Path) -> SessionSummary:
    """Aggregate header fields, time range and counts without building messages.

    ``end_time`` is a running max, not the last line's timestamp, because
    lines are not guaranteed to be in time order. If the file cannot be read
    the aggregates collected so far are returned.
    """
    summary = SessionSummary()

    try:
        for entry in iter_log_lines(path):
            _accumulate(summary, entry)
    except OSError as e:
        logger.warning("Failed to summarize %s: %s", path, e)

    return summary


def _accumulate(summary: SessionSummary, entry: dict) -> None:
    if not summary.cwd and entry.get("cwd"):
        summary.cwd = entry["cwd"]
    if not summary.version and entry.get("version"):
        summary.version = entry["version"]
    if not summary.git_branch and entry.get("gitBranch"):
        summary.git_branch = entry["gitBranch"]

    timestamp = entry.get("timestamp")
    if timestamp and isinstance(timestamp, str):
        # ISO 8601 UTC strings are fixed width, so string order is time order
        if summary.start_time is None or timestamp < summary.start_time:
            summary.start_time = timestamp
        if summary.end_time is None or timestamp > summary.end_time:
            summary.end_time = timestamp

    entry_type = entry.get("type")
    if entry_type not in MESSAGE_TYPES:
        return

    summary.message_count += 1
    if entry_type == "assistant":
        summary.has_assistant = True
    elif summary.first_user_message is None:
        text = extract_plain_text(message_content(entry))
        if text.strip() and not text.startswith(MARKUP_PREFIX):
            summary.first_user_message = text[:FIRST_MESSAGE_MAX_CHARS]
