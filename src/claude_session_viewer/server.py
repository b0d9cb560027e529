"""FastAPI web server for claude-session-viewer."""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import asdict

from fastapi import FastAPI, HTTPException, Query

from .config import get_cleanup_delay
from .core import Message, ParsedSession
from .errors import DataLossError, InvalidArgumentError, LogReadError, NotFoundError
from .parser import parse_session
from .records import block_to_dict
from .scanner import scan_projects, scan_sessions
from .search import MIN_KEYWORD_LENGTH, global_search
from .trash import TrashManager

logger = logging.getLogger(__name__)

# Trash manager cache (populated on first request)
_trash_manager: TrashManager | None = None


def _get_trash_manager() -> TrashManager:
    """Lazily initialize and cache the trash manager."""
    global _trash_manager
    if _trash_manager is None:
        _trash_manager = TrashManager()
        logger.info("Trash directory: %s", _trash_manager.trash_dir)
    return _trash_manager


async def _cleanup_after_startup(delay: float) -> None:
    """Expire old trash once, shortly after the server starts accepting requests."""
    await asyncio.sleep(delay)
    try:
        result = await asyncio.to_thread(_get_trash_manager().cleanup_expired)
    except Exception:
        logger.exception("Startup trash cleanup failed")
        return
    logger.info(
        "Startup trash cleanup: %d deleted, %d remaining",
        result.deleted_count, result.remaining_count,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Schedule the one-shot expiry sweep; it never delays or fails startup."""
    cleanup = asyncio.create_task(_cleanup_after_startup(get_cleanup_delay()))
    yield
    if not cleanup.done():
        cleanup.cancel()
        try:
            await cleanup
        except asyncio.CancelledError:
            pass


app = FastAPI(title="claude-session-viewer", version="0.1.0", lifespan=lifespan)


def _message_to_dict(msg: Message) -> dict:
    """Convert a Message dataclass to a JSON-serializable dict."""
    return {
        "uuid": msg.uuid,
        "parent_uuid": msg.parent_uuid,
        "role": msg.role,
        "blocks": [block_to_dict(b) for b in msg.blocks],
        "timestamp": msg.timestamp,
        "model": msg.model,
        "has_content": msg.has_content,
        "is_sidechain": msg.is_sidechain,
    }


def _parsed_session_to_dict(parsed: ParsedSession) -> dict:
    return {
        "meta": asdict(parsed.meta),
        "messages": [_message_to_dict(m) for m in parsed.messages],
    }


def _http_error(exc: Exception, action: str) -> HTTPException:
    """Map a core error to the HTTP status the API reports for it."""
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, InvalidArgumentError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, DataLossError):
        return HTTPException(status_code=410, detail=str(exc))
    logger.error("Failed to %s: %s", action, exc)
    return HTTPException(status_code=500, detail=f"Failed to {action}")


# ── Browse ───────────────────────────────────────────────────────


@app.get("/api/projects")
async def get_projects():
    """Return all projects, most recently active first."""
    try:
        projects = await asyncio.to_thread(scan_projects)
    except OSError as e:
        raise _http_error(e, "scan projects")
    return {
        "total": len(projects),
        "projects": [asdict(p) for p in projects],
    }


@app.get("/api/projects/{project_id}/sessions")
async def get_project_sessions(project_id: str):
    """Return the sessions of one project, newest first."""
    try:
        sessions = await asyncio.to_thread(scan_sessions, project_id)
    except (InvalidArgumentError, OSError) as e:
        raise _http_error(e, "scan sessions")

    if sessions is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return {
        "total": len(sessions),
        "sessions": [asdict(s) for s in sessions],
    }


@app.get("/api/sessions/{session_id}")
async def get_session(
    session_id: str,
    project_id: str = Query(..., description="Project the session belongs to"),
):
    """Return full messages for a session."""
    try:
        parsed = await asyncio.to_thread(parse_session, project_id, session_id)
    except (InvalidArgumentError, LogReadError) as e:
        raise _http_error(e, "load messages")

    if parsed is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return _parsed_session_to_dict(parsed)


@app.get("/api/search")
async def search(
    q: str = Query(..., description="Keyword, at least 2 characters"),
    project: str | None = Query(None, description="Limit to one project id"),
    date_from: str | None = Query(None, alias="from", description="YYYY-MM-DD"),
    date_to: str | None = Query(None, alias="to", description="YYYY-MM-DD, inclusive"),
):
    """Search all session logs for a keyword."""
    if len(q.strip()) < MIN_KEYWORD_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Keyword must be at least {MIN_KEYWORD_LENGTH} characters",
        )

    try:
        results = await asyncio.to_thread(global_search, q, project, date_from, date_to)
    except (InvalidArgumentError, OSError) as e:
        raise _http_error(e, "search")
    return {
        "total": len(results),
        "results": [asdict(r) for r in results],
    }


# ── Trash ────────────────────────────────────────────────────────


@app.get("/api/trash")
async def get_trash():
    """Return trashed sessions, most recently deleted first."""
    try:
        listing = await asyncio.to_thread(_get_trash_manager().list_trash)
    except OSError as e:
        raise _http_error(e, "list trash")
    return asdict(listing)


@app.post("/api/trash/cleanup")
async def cleanup_trash():
    """Delete trashed sessions past their retention period."""
    try:
        result = await asyncio.to_thread(_get_trash_manager().cleanup_expired)
    except OSError as e:
        raise _http_error(e, "clean up trash")
    return asdict(result)


@app.post("/api/trash/{project_id}/{session_id}")
async def move_to_trash(project_id: str, session_id: str):
    """Move a session to the trash."""
    try:
        item = await asyncio.to_thread(_get_trash_manager().move_to_trash, project_id, session_id)
    except (NotFoundError, InvalidArgumentError, OSError) as e:
        raise _http_error(e, "move session to trash")
    return {
        "project_id": item.project_id,
        "session_id": item.session_id,
        "deleted_at": item.deleted_at,
        "expires_at": item.expires_at,
    }


@app.post("/api/trash/{project_id}/{session_id}/restore")
async def restore_from_trash(project_id: str, session_id: str):
    """Restore a trashed session to its project."""
    try:
        result = await asyncio.to_thread(
            _get_trash_manager().restore_from_trash, project_id, session_id
        )
    except (NotFoundError, InvalidArgumentError, DataLossError, OSError) as e:
        raise _http_error(e, "restore session")
    return asdict(result)


@app.delete("/api/trash/{project_id}/{session_id}")
async def delete_from_trash(project_id: str, session_id: str):
    """Permanently delete one trashed session."""
    try:
        await asyncio.to_thread(_get_trash_manager().permanently_delete, project_id, session_id)
    except (NotFoundError, InvalidArgumentError, OSError) as e:
        raise _http_error(e, "delete session")
    return {"project_id": project_id, "session_id": session_id}


@app.delete("/api/trash")
async def empty_trash():
    """Permanently delete everything in the trash."""
    try:
        result = await asyncio.to_thread(_get_trash_manager().empty_trash)
    except OSError as e:
        raise _http_error(e, "empty trash")
    return asdict(result)
