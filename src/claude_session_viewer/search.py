"""Keyword search over session logs.

There is no index: every query re-reads the matching files line by line.
Cost is proportional to the size of the local log corpus.
"""

import logging
from datetime import date, datetime, time, timezone
from pathlib import Path

from .config import get_claude_code_path
from .core import SearchMatch, SearchResult
from .errors import InvalidArgumentError
from .records import (
    MESSAGE_TYPES,
    extract_plain_text,
    format_epoch,
    iter_log_lines,
    message_content,
    message_role,
)
from .scanner import list_session_files

logger = logging.getLogger(__name__)

MIN_KEYWORD_LENGTH = 2
SNIPPET_CONTEXT_CHARS = 60
MAX_MATCHES_PER_SESSION = 3


def search_in_session(path: Path, keyword: str) -> list[SearchMatch]:
    """Return one match per user/assistant line containing ``keyword``.

    Matching is case-insensitive on the line's plain text. Only the first
    occurrence in a line contributes a snippet.
    """
    needle = keyword.lower()
    matches = []

    for entry in iter_log_lines(path):
        if entry.get("type") not in MESSAGE_TYPES:
            continue

        text = extract_plain_text(message_content(entry))
        idx = text.lower().find(needle)
        if idx < 0:
            continue

        start = max(0, idx - SNIPPET_CONTEXT_CHARS)
        end = min(len(text), idx + len(keyword) + SNIPPET_CONTEXT_CHARS)
        matches.append(SearchMatch(
            role=message_role(entry),
            timestamp=entry.get("timestamp"),
            snippet=text[start:end],
        ))

    return matches


def global_search(
    keyword: str | None,
    project: str | None = None,
    date_from: str | None = None,
    date_to: str | None = None,
    projects_dir: Path | None = None,
) -> list[SearchResult]:
    """Search every session, optionally limited to one project and a date range.

    ``date_from`` and ``date_to`` are ``YYYY-MM-DD`` and compared against file
    modification time (UTC); both ends are inclusive. Results are ordered by
    match count, highest first; ties keep enumeration order.
    """
    if not keyword or len(keyword.strip()) < MIN_KEYWORD_LENGTH:
        return []

    lower = _day_bound(date_from, time.min)
    upper = _day_bound(date_to, time.max)

    base = projects_dir if projects_dir is not None else get_claude_code_path()
    if not base.is_dir():
        return []

    project_dirs = [d for d in sorted(base.iterdir()) if d.is_dir()]
    if project:
        project_dirs = [d for d in project_dirs if d.name == project]

    results = []
    for project_dir in project_dirs:
        for path in list_session_files(project_dir):
            try:
                mtime = path.stat().st_mtime
            except OSError as e:
                logger.warning("Failed to stat %s: %s", path, e)
                continue

            modified = datetime.fromtimestamp(mtime, tz=timezone.utc)
            if lower and modified < lower:
                continue
            if upper and modified > upper:
                continue

            try:
                matches = search_in_session(path, keyword)
            except OSError as e:
                logger.warning("Failed to search %s: %s", path, e)
                continue

            if matches:
                results.append(SearchResult(
                    project_id=project_dir.name,
                    session_id=path.stem,
                    match_count=len(matches),
                    matches=matches[:MAX_MATCHES_PER_SESSION],
                    last_modified=format_epoch(mtime),
                ))

    results.sort(key=lambda r: r.match_count, reverse=True)
    return results


def _day_bound(value: str | None, clock: time) -> datetime | None:
    if not value:
        return None
    try:
        day = date.fromisoformat(value)
    except ValueError:
        raise InvalidArgumentError(f"Invalid date: {value!r}, expected YYYY-MM-DD") from None
    return datetime.combine(day, clock, tzinfo=timezone.utc)
