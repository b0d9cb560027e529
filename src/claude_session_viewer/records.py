"""Claude Code JSONL record handling.

Each line of a session log is one JSON object. The lines this viewer cares
about look like::

    {"type": "user" | "assistant", "uuid": ..., "parentUuid": ...,
     "timestamp": "2025-01-20T10:00:00.000Z", "sessionId": ..., "cwd": ...,
     "version": ..., "gitBranch": ..., "isSidechain": false,
     "message": {"role": ..., "model": ..., "content": str | [block, ...]}}

Other types ("summary", "file-history-snapshot", "progress", ...) are
metadata and are skipped by the parser, summarizer and search.

Content blocks:
- "text": {"text": ...}
- "thinking": {"thinking": ...}
- "tool_use": {"id", "name", "input"}
- "tool_result": {"tool_use_id", "content": str | [sub-block, ...]}
Anything else is kept as an UnknownBlock so nothing is lost on render.
"""

import json
import logging
from collections.abc import Iterator
from datetime import datetime, timezone
from pathlib import Path

from .core import (
    ContentBlock,
    TextBlock,
    ThinkingBlock,
    ToolResultBlock,
    ToolUseBlock,
    UnknownBlock,
)

logger = logging.getLogger(__name__)

MESSAGE_TYPES = ("user", "assistant")

TOOL_RESULT_MAX_CHARS = 5000

# Local meta-command output (/clear, /model, ...) is echoed into the log as
# user text wrapped in these tags.
LOCAL_COMMAND_PREFIX = "<local-command-"


def iter_log_lines(path: Path) -> Iterator[dict]:
    """Yield the JSON objects of a session log one line at a time.

    Blank lines, malformed JSON and non-object values are skipped. Undecodable
    bytes are replaced so a single bad line cannot end the stream. OSError
    propagates to the caller.
    """
    with path.open(encoding="utf-8", errors="replace") as f:
        for line_num, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                entry = json.loads(line)
            except json.JSONDecodeError as e:
                logger.debug("Bad JSON at %s:%d: %s", path, line_num, e)
                continue
            if isinstance(entry, dict):
                yield entry


def extract_plain_text(content) -> str:
    """Return the readable text of a message's content.

    A string is returned unchanged; for a block list the ``text`` blocks are
    joined with newlines. Tool calls, tool results and thinking are ignored.
    """
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "\n".join(
            str(block.get("text") or "")
            for block in content
            if isinstance(block, dict) and block.get("type") == "text"
        )
    return ""


def parse_content_blocks(content) -> list[ContentBlock]:
    """Convert raw message content into typed blocks, one per input block."""
    if isinstance(content, str):
        return [TextBlock(text=content)]
    if not isinstance(content, list):
        return []
    return [_parse_block(block) for block in content]


def _parse_block(block) -> ContentBlock:
    if isinstance(block, str):
        return TextBlock(text=block)
    if not isinstance(block, dict):
        return UnknownBlock(type="", raw=block)

    block_type = block.get("type", "")

    if block_type == "text":
        return TextBlock(text=str(block.get("text") or ""))

    if block_type == "thinking":
        return ThinkingBlock(text=str(block.get("thinking") or ""))

    if block_type == "tool_use":
        return ToolUseBlock(
            name=block.get("name") or "",
            id=block.get("id") or "",
            input=block.get("input"),
        )

    if block_type == "tool_result":
        result = block.get("content", "")
        if isinstance(result, list):
            # Sub-blocks can be text, image, ... only text is kept
            result = "\n".join(
                str(sub.get("text") or "")
                for sub in result
                if isinstance(sub, dict) and sub.get("type") == "text"
            )
        elif not isinstance(result, str):
            result = ""
        return ToolResultBlock(
            tool_use_id=block.get("tool_use_id") or "",
            text=result[:TOOL_RESULT_MAX_CHARS],
        )

    return UnknownBlock(type=str(block_type), raw=block)


def has_content(blocks: list[ContentBlock]) -> bool:
    """Return True if a message has anything worth rendering."""
    for block in blocks:
        if isinstance(block, TextBlock):
            if block.text.strip() and not block.text.startswith(LOCAL_COMMAND_PREFIX):
                return True
        elif isinstance(block, (ThinkingBlock, ToolUseBlock, ToolResultBlock)):
            return True
    return False


def block_to_dict(block: ContentBlock) -> dict:
    """Convert a content block to a JSON-serializable dict tagged with its type."""
    if isinstance(block, TextBlock):
        return {"type": block.type, "text": block.text}
    if isinstance(block, ThinkingBlock):
        return {"type": block.type, "text": block.text}
    if isinstance(block, ToolUseBlock):
        return {"type": block.type, "name": block.name, "id": block.id, "input": block.input}
    if isinstance(block, ToolResultBlock):
        return {"type": block.type, "tool_use_id": block.tool_use_id, "text": block.text}
    return {"type": block.type, "raw": block.raw}


def message_role(entry: dict) -> str:
    """Return ``message.role``, falling back to the line's ``type``."""
    message = entry.get("message")
    if isinstance(message, dict) and message.get("role"):
        return message["role"]
    return entry.get("type", "")


def message_content(entry: dict):
    message = entry.get("message")
    if isinstance(message, dict):
        return message.get("content")
    return None


# ── Timestamps ───────────────────────────────────────────────────


def parse_iso(value: str | None) -> datetime | None:
    """Parse an ISO 8601 datetime string, assuming UTC when naive."""
    if not value:
        return None
    try:
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        parsed = datetime.fromisoformat(value)
    except (ValueError, TypeError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_iso(value: datetime) -> str:
    """Format as UTC with millisecond precision, e.g. 2025-01-20T10:00:00.000Z."""
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def format_epoch(seconds: float) -> str:
    return format_iso(datetime.fromtimestamp(seconds, tz=timezone.utc))
