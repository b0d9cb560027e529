"""Enumerate projects and sessions under the Claude Code projects directory.

Layout::

    <projects_dir>/<project_id>/<session_id>.jsonl

where ``project_id`` is the working directory with path separators replaced
by "-", e.g. ``-Users-alice-dev-app``.
"""

import logging
from pathlib import Path

from .config import SESSION_LOG_SUFFIX, get_claude_code_path, validate_identifier
from .core import Project, Session
from .records import format_epoch
from .summary import read_session_summary

logger = logging.getLogger(__name__)

# Only the first few session files of a project are stat'ed and summarized
# when listing projects. last_activity is therefore an approximation.
LAST_ACTIVITY_SAMPLE = 3


def decode_project_id(project_id: str) -> str:
    """Derive a path from a folder name: -Users-alice-dev-app -> /Users/alice/dev/app.

    Lossy for paths that contain "-" themselves; the cwd recorded in the
    session log is preferred whenever one is available.
    """
    return project_id.replace("-", "/")


def list_session_files(project_dir: Path) -> list[Path]:
    """Return the session logs of a project directory in name order."""
    return sorted(
        p for p in project_dir.iterdir()
        if p.suffix == SESSION_LOG_SUFFIX and p.is_file()
    )


def scan_projects(projects_dir: Path | None = None) -> list[Project]:
    """Return every project that has at least one session, most recent first."""
    base = projects_dir if projects_dir is not None else get_claude_code_path()
    if not base.is_dir():
        return []

    projects = []
    for project_dir in sorted(base.iterdir()):
        if not project_dir.is_dir():
            continue

        try:
            session_files = list_session_files(project_dir)
        except OSError as e:
            logger.warning("Failed to list %s: %s", project_dir, e)
            continue
        if not session_files:
            continue

        display_name = None
        last_mtime = None
        for path in session_files[:LAST_ACTIVITY_SAMPLE]:
            try:
                mtime = path.stat().st_mtime
            except OSError as e:
                logger.warning("Failed to stat %s: %s", path, e)
                continue
            if last_mtime is None or mtime > last_mtime:
                last_mtime = mtime

            if display_name is None:
                display_name = read_session_summary(path).cwd

        projects.append(Project(
            id=project_dir.name,
            display_name=display_name or decode_project_id(project_dir.name),
            session_count=len(session_files),
            last_activity=format_epoch(last_mtime) if last_mtime is not None else None,
        ))

    # Two stable passes: newest first, then projects without activity last
    projects.sort(key=lambda p: p.last_activity or "", reverse=True)
    projects.sort(key=lambda p: p.last_activity is None)
    return projects


def scan_sessions(project_id: str, projects_dir: Path | None = None) -> list[Session] | None:
    """Return the sessions of a project, newest first.

    Returns None if the project directory does not exist, and an empty list
    if it exists but holds no sessions.
    """
    validate_identifier(project_id, "project id")
    base = projects_dir if projects_dir is not None else get_claude_code_path()
    project_dir = base / project_id
    if not project_dir.is_dir():
        return None

    sessions = []
    for path in list_session_files(project_dir):
        try:
            stat = path.stat()
        except OSError as e:
            logger.warning("Failed to stat %s: %s", path, e)
            continue
        summary = read_session_summary(path)
        # st_birthtime is not available on every platform
        created = getattr(stat, "st_birthtime", stat.st_ctime)

        sessions.append(Session(
            id=path.stem,
            project_id=project_id,
            first_user_message=summary.first_user_message,
            message_count=summary.message_count,
            start_time=summary.start_time or format_epoch(created),
            end_time=summary.end_time or format_epoch(stat.st_mtime),
            version=summary.version,
            git_branch=summary.git_branch,
            cwd=summary.cwd,
            has_assistant=summary.has_assistant,
        ))

    sessions.sort(key=lambda s: s.start_time, reverse=True)
    return sessions
