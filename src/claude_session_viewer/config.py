"""Path resolution and tunables, read from the environment at call time."""

import logging
import os
from pathlib import Path

from .errors import InvalidArgumentError

logger = logging.getLogger(__name__)

SESSION_LOG_SUFFIX = ".jsonl"
METADATA_FILE_NAME = "metadata.json"

DEFAULT_RETENTION_DAYS = 30
DEFAULT_CLEANUP_DELAY_SECONDS = 5.0


def get_claude_code_path() -> Path:
    """Return the path to Claude Code's projects directory."""
    env = os.environ.get("CCVIEW_CLAUDE_PATH")
    if env:
        return Path(env)

    return Path.home() / ".claude" / "projects"


def get_trash_path() -> Path:
    """Return the directory that holds trashed sessions and metadata.json."""
    env = os.environ.get("CCVIEW_TRASH_PATH")
    if env:
        return Path(env)

    return Path.home() / ".claude" / "trash"


def get_retention_days() -> int:
    """Return how many days a trashed session is kept before expiry."""
    value = _read_number("CCVIEW_RETENTION_DAYS", int)
    if value is None or value < 0:
        return DEFAULT_RETENTION_DAYS
    return value


def get_cleanup_delay() -> float:
    """Return the delay in seconds before the startup expiry sweep."""
    value = _read_number("CCVIEW_CLEANUP_DELAY", float)
    if value is None or value < 0:
        return DEFAULT_CLEANUP_DELAY_SECONDS
    return value


def validate_identifier(value: str | None, label: str) -> str:
    """Return ``value`` if it is safe to use as a single path segment.

    Raises InvalidArgumentError for empty values and anything that could
    escape the parent directory.
    """
    if not value:
        raise InvalidArgumentError(f"Missing {label}")
    if ".." in value or "/" in value or "\\" in value or "\x00" in value:
        raise InvalidArgumentError(f"Invalid {label}: {value!r}")
    return value


def _read_number(name: str, cast):
    raw = os.environ.get(name)
    if not raw:
        return None
    try:
        return cast(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r", name, raw)
        return None
