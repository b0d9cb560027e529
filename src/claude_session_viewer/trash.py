"""Soft delete for session logs.

A trashed session is moved, not copied, to::

    <trash_dir>/<project_id>/<session_id>.<deletionEpochMillis>.jsonl

and recorded in ``<trash_dir>/metadata.json``::

    {"version": "1.0",
     "items": [{"projectId", "sessionId", "originalPath",
                "deletedAt", "expiresAt", "fileName"}, ...],
     "lastCleanup": "2025-01-20T10:00:00.000Z"}

The metadata document is read and rewritten whole on every change. All
read-modify-write cycles on one trash directory share a process-wide lock;
separate processes writing the same trash directory are not coordinated.
A missing or unreadable document counts as an empty trash.
"""

import json
import logging
import math
import os
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path

from .config import (
    METADATA_FILE_NAME,
    SESSION_LOG_SUFFIX,
    get_claude_code_path,
    get_retention_days,
    get_trash_path,
    validate_identifier,
)
from .core import (
    CleanupResult,
    EmptyTrashResult,
    RestoreResult,
    TrashEntry,
    TrashItem,
    TrashListing,
    TrashMetadata,
)
from .errors import DataLossError, InvalidArgumentError, NotFoundError
from .records import format_iso, parse_iso
from .scanner import decode_project_id
from .summary import read_session_summary

logger = logging.getLogger(__name__)

METADATA_VERSION = "1.0"

_locks: dict[Path, threading.RLock] = {}
_locks_guard = threading.Lock()


def _lock_for(trash_dir: Path) -> threading.RLock:
    """Return the writer lock shared by every manager of ``trash_dir``."""
    key = trash_dir.absolute()
    with _locks_guard:
        lock = _locks.get(key)
        if lock is None:
            lock = _locks[key] = threading.RLock()
        return lock


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _epoch_millis(value: datetime) -> int:
    return int(value.timestamp() * 1000)


class TrashManager:
    """Move sessions to the trash, restore them, and expire them."""

    def __init__(
        self,
        projects_dir: Path | None = None,
        trash_dir: Path | None = None,
        retention_days: int | None = None,
    ):
        self.projects_dir = projects_dir if projects_dir is not None else get_claude_code_path()
        self.trash_dir = trash_dir if trash_dir is not None else get_trash_path()
        self.retention_days = retention_days if retention_days is not None else get_retention_days()
        self.metadata_path = self.trash_dir / METADATA_FILE_NAME
        self._lock = _lock_for(self.trash_dir)

    # ── Operations ───────────────────────────────────────────────

    def move_to_trash(self, project_id: str, session_id: str) -> TrashItem:
        """Soft-delete a session.

        Raises InvalidArgumentError for unsafe ids and NotFoundError if the
        session file does not exist.
        """
        validate_identifier(project_id, "project id")
        validate_identifier(session_id, "session id")

        source = self.projects_dir / project_id / f"{session_id}{SESSION_LOG_SUFFIX}"
        if not source.is_file():
            raise NotFoundError(f"Session not found: {project_id}/{session_id}")

        with self._lock:
            deleted = _now()
            trash_project_dir = self.trash_dir / project_id
            trash_project_dir.mkdir(parents=True, exist_ok=True)

            stamp = _epoch_millis(deleted)
            dest = trash_project_dir / f"{session_id}.{stamp}{SESSION_LOG_SUFFIX}"
            while dest.exists():
                stamp += 1
                dest = trash_project_dir / f"{session_id}.{stamp}{SESSION_LOG_SUFFIX}"

            source.rename(dest)

            item = TrashItem(
                project_id=project_id,
                session_id=session_id,
                original_path=str(source),
                deleted_at=format_iso(deleted),
                expires_at=format_iso(deleted + timedelta(days=self.retention_days)),
                file_name=dest.name,
            )

            try:
                metadata = self.read_metadata()
                for stale in metadata.find_all(project_id, session_id):
                    # Left over from an earlier delete of the same session id
                    logger.warning(
                        "Replacing trash record for %s/%s (previous file %s)",
                        project_id, session_id, stale.file_name,
                    )
                metadata.remove(project_id, session_id)
                metadata.items.append(item)
                self.write_metadata(metadata)
            except Exception:
                # Keep the file where its metadata says it is
                dest.rename(source)
                raise

        logger.info("Moved %s/%s to trash as %s", project_id, session_id, dest.name)
        return item

    def restore_from_trash(self, project_id: str, session_id: str) -> RestoreResult:
        """Move a trashed session back to its project directory.

        A file already present at the live path is kept under a
        ``.backup.<millis>`` name rather than overwritten. Raises NotFoundError
        if the session is not in the trash and DataLossError if its trashed
        file has disappeared (the stale record is dropped).
        """
        validate_identifier(project_id, "project id")
        validate_identifier(session_id, "session id")

        with self._lock:
            metadata = self.read_metadata()
            item = metadata.find(project_id, session_id)
            if item is None:
                raise NotFoundError(f"Session not in trash: {project_id}/{session_id}")

            trash_path = self._trash_path(item)
            if not trash_path.is_file():
                metadata.remove(project_id, session_id)
                self.write_metadata(metadata)
                logger.warning("Trashed file missing for %s/%s, dropped record", project_id, session_id)
                raise DataLossError(f"Trashed file lost: {project_id}/{session_id}")

            project_dir = self.projects_dir / project_id
            project_dir.mkdir(parents=True, exist_ok=True)
            dest = project_dir / f"{session_id}{SESSION_LOG_SUFFIX}"

            backup = None
            if dest.exists():
                backup = dest.with_name(f"{dest.name}.backup.{_epoch_millis(_now())}")
                dest.rename(backup)
                logger.info("Kept existing %s as %s", dest, backup.name)

            try:
                trash_path.rename(dest)
            except Exception:
                # Put the live file back; the trash record still applies
                if backup is not None:
                    backup.rename(dest)
                raise
            backup_path = str(backup) if backup is not None else None

            metadata.remove(project_id, session_id)
            self.write_metadata(metadata)
            self._prune_dir(trash_path.parent)

        logger.info("Restored %s/%s from trash", project_id, session_id)
        return RestoreResult(
            project_id=project_id,
            session_id=session_id,
            restored_at=format_iso(_now()),
            backup_path=backup_path,
        )

    def permanently_delete(self, project_id: str, session_id: str) -> None:
        """Delete a trashed session for good. Raises NotFoundError if it is not in the trash."""
        validate_identifier(project_id, "project id")
        validate_identifier(session_id, "session id")

        with self._lock:
            metadata = self.read_metadata()
            item = metadata.find(project_id, session_id)
            if item is None:
                raise NotFoundError(f"Session not in trash: {project_id}/{session_id}")

            trash_path = self._trash_path(item)
            trash_path.unlink(missing_ok=True)

            metadata.remove(project_id, session_id)
            self.write_metadata(metadata)
            self._prune_dir(trash_path.parent)

        logger.info("Permanently deleted %s/%s", project_id, session_id)

    def empty_trash(self) -> EmptyTrashResult:
        """Delete every trashed file.

        Failures are collected per item; the metadata is reset to empty
        either way.
        """
        with self._lock:
            metadata = self.read_metadata()
            errors = []

            for item in metadata.items:
                try:
                    self._trash_path(item).unlink(missing_ok=True)
                except OSError as e:
                    logger.warning("Failed to delete %s: %s", item.file_name, e)
                    errors.append({
                        "project_id": item.project_id,
                        "session_id": item.session_id,
                        "error": str(e),
                    })

            self._prune_all_dirs()
            self.write_metadata(TrashMetadata(version=METADATA_VERSION))

        deleted_count = len(metadata.items) - len(errors)
        logger.info("Emptied trash: %d deleted, %d failed", deleted_count, len(errors))
        return EmptyTrashResult(
            deleted_count=deleted_count,
            error_count=len(errors),
            errors=errors,
        )

    def cleanup_expired(self) -> CleanupResult:
        """Delete trashed sessions whose retention period has passed."""
        with self._lock:
            metadata = self.read_metadata()
            now = _now()

            expired = []
            keep = []
            for item in metadata.items:
                if parse_iso(item.expires_at) <= now:
                    expired.append(item)
                else:
                    keep.append(item)

            deleted_count = 0
            for item in expired:
                try:
                    self._trash_path(item).unlink(missing_ok=True)
                    deleted_count += 1
                except OSError as e:
                    logger.warning("Failed to delete expired %s: %s", item.file_name, e)

            metadata.items = keep
            metadata.last_cleanup = format_iso(now)
            self.write_metadata(metadata)
            self._prune_all_dirs()

        if deleted_count:
            logger.info("Expired %d trashed sessions, %d remain", deleted_count, len(keep))
        return CleanupResult(deleted_count=deleted_count, remaining_count=len(keep))

    def list_trash(self) -> TrashListing:
        """Return trashed sessions, most recently deleted first.

        Records whose file has disappeared are skipped.
        """
        metadata = self.read_metadata()
        now = _now()

        entries = []
        for item in metadata.items:
            trash_path = self._trash_path(item)
            if not trash_path.is_file():
                continue

            summary = read_session_summary(trash_path)
            remaining = (parse_iso(item.expires_at) - now).total_seconds()
            days_remaining = math.ceil(remaining / timedelta(days=1).total_seconds())

            entries.append(TrashEntry(
                project_id=item.project_id,
                session_id=item.session_id,
                project_name=decode_project_id(item.project_id),
                first_user_message=summary.first_user_message,
                message_count=summary.message_count,
                deleted_at=item.deleted_at,
                expires_at=item.expires_at,
                days_remaining=max(0, days_remaining),
            ))

        entries.sort(key=lambda e: parse_iso(e.deleted_at), reverse=True)
        return TrashListing(
            items=entries,
            total=len(entries),
            auto_delete_days=self.retention_days,
        )

    # ── Metadata ─────────────────────────────────────────────────

    def read_metadata(self) -> TrashMetadata:
        """Load metadata.json, treating a missing or corrupt document as empty.

        Records that are incomplete or name unsafe paths are dropped.
        """
        if not self.metadata_path.exists():
            return TrashMetadata(version=METADATA_VERSION)

        try:
            data = json.loads(self.metadata_path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning("Corrupt trash metadata %s, starting empty: %s", self.metadata_path, e)
            return TrashMetadata(version=METADATA_VERSION)

        if not isinstance(data, dict) or not isinstance(data.get("items", []), list):
            logger.warning("Unexpected trash metadata shape in %s, starting empty", self.metadata_path)
            return TrashMetadata(version=METADATA_VERSION)

        items = []
        for raw in data.get("items", []):
            try:
                item = TrashItem.from_dict(raw)
                validate_identifier(item.project_id, "project id")
                validate_identifier(item.session_id, "session id")
                validate_identifier(item.file_name, "file name")
                if parse_iso(item.deleted_at) is None or parse_iso(item.expires_at) is None:
                    raise ValueError("bad timestamp")
            except (KeyError, TypeError, ValueError, InvalidArgumentError) as e:
                logger.warning("Dropping invalid trash record %r: %s", raw, e)
                continue
            items.append(item)

        return TrashMetadata(
            version=str(data.get("version") or METADATA_VERSION),
            items=items,
            last_cleanup=data.get("lastCleanup"),
        )

    def write_metadata(self, metadata: TrashMetadata) -> None:
        """Replace metadata.json in one rename so readers never see a partial file."""
        self.trash_dir.mkdir(parents=True, exist_ok=True)
        tmp = self.metadata_path.with_suffix(self.metadata_path.suffix + ".tmp")
        tmp.write_text(json.dumps(metadata.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
        os.replace(tmp, self.metadata_path)

    # ── Private helpers ──────────────────────────────────────────

    def _trash_path(self, item: TrashItem) -> Path:
        return self.trash_dir / item.project_id / item.file_name

    def _prune_dir(self, path: Path) -> None:
        """Remove a per-project trash directory once it is empty."""
        try:
            if path.is_dir() and not any(path.iterdir()):
                path.rmdir()
        except OSError as e:
            logger.debug("Could not remove %s: %s", path, e)

    def _prune_all_dirs(self) -> None:
        if not self.trash_dir.is_dir():
            return
        for path in self.trash_dir.iterdir():
            if path.is_dir():
                self._prune_dir(path)
