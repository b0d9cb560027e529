"""Core data models for claude-session-viewer."""

from dataclasses import dataclass, field
from typing import Any, ClassVar, Optional, Union


# ── Content blocks ───────────────────────────────────────────────


@dataclass
class TextBlock:
    text: str
    type: ClassVar[str] = "text"


@dataclass
class ThinkingBlock:
    text: str
    type: ClassVar[str] = "thinking"


@dataclass
class ToolUseBlock:
    name: str
    id: str
    input: Any = None
    type: ClassVar[str] = "tool_use"


@dataclass
class ToolResultBlock:
    tool_use_id: str
    text: str  # truncated, see records.TOOL_RESULT_MAX_CHARS
    type: ClassVar[str] = "tool_result"


@dataclass
class UnknownBlock:
    """A block type this viewer does not understand, kept as-is."""

    type: str
    raw: Any


ContentBlock = Union[TextBlock, ThinkingBlock, ToolUseBlock, ToolResultBlock, UnknownBlock]


# ── Parsed sessions ──────────────────────────────────────────────


@dataclass
class Message:
    """A single user or assistant line within a session."""

    uuid: Optional[str]
    parent_uuid: Optional[str]  # lookup key into the same session, never a link
    role: str  # "user" | "assistant"
    blocks: list[ContentBlock] = field(default_factory=list)
    timestamp: Optional[str] = None
    model: Optional[str] = None
    has_content: bool = False
    is_sidechain: bool = False


@dataclass
class SessionMeta:
    """Header fields taken from the first line that names the session."""

    session_id: Optional[str] = None
    cwd: Optional[str] = None
    version: Optional[str] = None
    git_branch: Optional[str] = None


@dataclass
class ParsedSession:
    """A fully parsed session log, messages in file order.

    ``get_message`` and ``children_of`` let callers walk the ``parent_uuid``
    tree; the HTTP layer returns the flat list and leaves that to the client.
    """

    meta: SessionMeta
    messages: list[Message] = field(default_factory=list)

    def get_message(self, uuid: str) -> Optional[Message]:
        """Resolve a uuid (typically a ``parent_uuid``) within this session."""
        for msg in self.messages:
            if msg.uuid == uuid:
                return msg
        return None

    def children_of(self, uuid: Optional[str]) -> list[Message]:
        """Return messages whose parent is ``uuid``; ``None`` gives the roots.

        Sessions branch (sidechains, retries), so a parent can have several
        children.
        """
        return [m for m in self.messages if m.parent_uuid == uuid]


# ── Listings ─────────────────────────────────────────────────────


@dataclass
class SessionSummary:
    """Running aggregates from a cheap pass over a session log."""

    cwd: Optional[str] = None
    version: Optional[str] = None
    git_branch: Optional[str] = None
    first_user_message: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    message_count: int = 0
    has_assistant: bool = False


@dataclass
class Session:
    """A session log file as shown in a project's session list."""

    id: str
    project_id: str
    first_user_message: Optional[str]
    message_count: int
    start_time: str
    end_time: str
    version: Optional[str] = None
    git_branch: Optional[str] = None
    cwd: Optional[str] = None
    has_assistant: bool = False


@dataclass
class Project:
    """A directory of session logs."""

    id: str  # encoded path, e.g. "-Users-alice-dev-app"
    display_name: str  # e.g. "/Users/alice/dev/app"
    session_count: int
    last_activity: Optional[str] = None  # sampled, see scanner.LAST_ACTIVITY_SAMPLE


# ── Search ───────────────────────────────────────────────────────


@dataclass
class SearchMatch:
    role: str
    timestamp: Optional[str]
    snippet: str


@dataclass
class SearchResult:
    project_id: str
    session_id: str
    match_count: int
    matches: list[SearchMatch]
    last_modified: str


# ── Trash ────────────────────────────────────────────────────────


@dataclass
class TrashItem:
    """One record of the trash metadata index."""

    project_id: str
    session_id: str
    original_path: str
    deleted_at: str
    expires_at: str
    file_name: str  # "<sessionId>.<deletionEpochMillis>.jsonl"

    def to_dict(self) -> dict:
        return {
            "projectId": self.project_id,
            "sessionId": self.session_id,
            "originalPath": self.original_path,
            "deletedAt": self.deleted_at,
            "expiresAt": self.expires_at,
            "fileName": self.file_name,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TrashItem":
        """Build a record from its metadata.json form. Raises KeyError or TypeError."""
        return cls(
            project_id=str(data["projectId"]),
            session_id=str(data["sessionId"]),
            original_path=str(data.get("originalPath") or ""),
            deleted_at=str(data["deletedAt"]),
            expires_at=str(data["expiresAt"]),
            file_name=str(data["fileName"]),
        )

    def same_session(self, project_id: str, session_id: str) -> bool:
        return self.project_id == project_id and self.session_id == session_id


@dataclass
class TrashMetadata:
    """The whole metadata.json document."""

    version: str
    items: list[TrashItem] = field(default_factory=list)
    last_cleanup: Optional[str] = None

    def find(self, project_id: str, session_id: str) -> Optional[TrashItem]:
        return next((i for i in self.items if i.same_session(project_id, session_id)), None)

    def find_all(self, project_id: str, session_id: str) -> list[TrashItem]:
        return [i for i in self.items if i.same_session(project_id, session_id)]

    def remove(self, project_id: str, session_id: str) -> None:
        """Drop every record for the session, duplicates included."""
        self.items = [i for i in self.items if not i.same_session(project_id, session_id)]

    def to_dict(self) -> dict:
        data = {"version": self.version, "items": [i.to_dict() for i in self.items]}
        if self.last_cleanup:
            data["lastCleanup"] = self.last_cleanup
        return data


@dataclass
class TrashEntry:
    """A trashed session as shown in the trash list."""

    project_id: str
    session_id: str
    project_name: str
    first_user_message: Optional[str]
    message_count: int
    deleted_at: str
    expires_at: str
    days_remaining: int


@dataclass
class TrashListing:
    items: list[TrashEntry]
    total: int
    auto_delete_days: int


@dataclass
class RestoreResult:
    project_id: str
    session_id: str
    restored_at: str
    backup_path: Optional[str] = None  # where a colliding live file was moved


@dataclass
class EmptyTrashResult:
    deleted_count: int
    error_count: int
    errors: list[dict] = field(default_factory=list)


@dataclass
class CleanupResult:
    deleted_count: int
    remaining_count: int
