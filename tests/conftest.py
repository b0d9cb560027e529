"""Shared test fixtures for claude-session-viewer."""

import json
import os

import pytest

PROJECT_ID = "-Users-testuser-dev-myapp"
SESSION_ID = "session-001"


def write_jsonl(path, entries):
    """Write entries (dicts, or raw strings for malformed lines) as a JSONL file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    lines = [e if isinstance(e, str) else json.dumps(e) for e in entries]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def set_mtime(path, epoch_seconds):
    os.utime(path, (epoch_seconds, epoch_seconds))


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Point every default path at tmp_path so tests never touch ~/.claude."""
    monkeypatch.setenv("CCVIEW_CLAUDE_PATH", str(tmp_path / "projects"))
    monkeypatch.setenv("CCVIEW_TRASH_PATH", str(tmp_path / "trash"))
    monkeypatch.delenv("CCVIEW_RETENTION_DAYS", raising=False)
    monkeypatch.delenv("CCVIEW_CLEANUP_DELAY", raising=False)


@pytest.fixture
def projects_dir(tmp_path):
    path = tmp_path / "projects"
    path.mkdir()
    return path


@pytest.fixture
def trash_dir(tmp_path):
    return tmp_path / "trash"


@pytest.fixture
def session_entries():
    """A realistic Claude Code session with every entry type the viewer meets.

    Includes:
    - User text messages, string and block content
    - Assistant text + tool_use in same entry
    - User tool_result entries, one with an image sub-block
    - Thinking blocks
    - A local command echo
    - A branch: two messages sharing one parent
    - Metadata entries and a malformed line (should be skipped)
    """
    base = {
        "sessionId": SESSION_ID,
        "cwd": "/Users/testuser/dev/myapp",
        "version": "1.0.42",
        "gitBranch": "main",
        "isSidechain": False,
    }
    return [
        # 1. Summary entry, no sessionId (skipped)
        {"type": "summary", "summary": "Refactored auth module", "leafUuid": "uuid-007"},
        # 2. User prompt
        {**base, "type": "user", "uuid": "uuid-001", "parentUuid": None,
         "timestamp": "2025-01-20T10:00:00.000Z",
         "message": {"role": "user", "content": [{"type": "text", "text": "Help me refactor the auth module"}]}},
        # 3. Assistant text + tool_use in same entry
        {**base, "type": "assistant", "uuid": "uuid-002", "parentUuid": "uuid-001",
         "timestamp": "2025-01-20T10:00:30.000Z",
         "message": {"role": "assistant", "model": "claude-sonnet-4", "content": [
             {"type": "text", "text": "I'll help you refactor the auth module. Let me read the current code."},
             {"type": "tool_use", "id": "toolu_001", "name": "Read", "input": {"file_path": "/src/auth.ts"}},
         ]}},
        # 4. Tool result (appears as user type entry)
        {**base, "type": "user", "uuid": "uuid-003", "parentUuid": "uuid-002",
         "timestamp": "2025-01-20T10:00:31.000Z",
         "message": {"role": "user", "content": [
             {"type": "tool_result", "tool_use_id": "toolu_001",
              "content": "export function authenticate(token: string) {\n  return jwt.verify(token);\n}"},
         ]}},
        # 5. Malformed line (skipped)
        '{"type": "assistant", "message": {"role": ',
        # 6. Assistant with thinking block
        {**base, "type": "assistant", "uuid": "uuid-004", "parentUuid": "uuid-003",
         "timestamp": "2025-01-20T10:01:00.000Z",
         "message": {"role": "assistant", "model": "claude-sonnet-4", "content": [
             {"type": "thinking", "thinking": "Split validation and token refresh."},
             {"type": "text", "text": "I can see the auth module. Let me refactor it."},
         ]}},
        # 7. file-history-snapshot (skipped)
        {"type": "file-history-snapshot", "messageId": "uuid-004", "snapshot": {}},
        # 8. Local command echo
        {**base, "type": "user", "uuid": "uuid-005", "parentUuid": "uuid-004",
         "timestamp": "2025-01-20T10:02:00.000Z",
         "message": {"role": "user", "content": "<local-command-stdout>Set model</local-command-stdout>"}},
        # 9. Retry branch: same parent as line 8
        {**base, "type": "user", "uuid": "uuid-006", "parentUuid": "uuid-004",
         "timestamp": "2025-01-20T10:05:00.000Z",
         "message": {"role": "user", "content": "Looks good, now split it into separate files"}},
        # 10. Assistant tool_use with an image tool result
        {**base, "type": "assistant", "uuid": "uuid-007", "parentUuid": "uuid-006",
         "timestamp": "2025-01-20T10:05:30.000Z",
         "message": {"role": "assistant", "content": [
             {"type": "tool_use", "id": "toolu_002", "name": "Bash", "input": {"command": "mkdir -p src/auth"}},
         ]}},
        {**base, "type": "user", "uuid": "uuid-008", "parentUuid": "uuid-007",
         "timestamp": "2025-01-20T10:05:31.000Z",
         "message": {"role": "user", "content": [
             {"type": "tool_result", "tool_use_id": "toolu_002", "content": [
                 {"type": "text", "text": "Directory created"},
                 {"type": "image", "source": {"type": "base64", "media_type": "image/png", "data": "iVBORw0KGgo="}},
             ]},
         ]}},
        # 11. Progress entry (skipped)
        {"type": "progress", "data": {"type": "hook_progress"}},
    ]


@pytest.fixture
def sample_project(projects_dir, session_entries):
    """A projects directory holding one project with one realistic session."""
    write_jsonl(projects_dir / PROJECT_ID / f"{SESSION_ID}.jsonl", session_entries)
    return projects_dir
