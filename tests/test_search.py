"""Tests for keyword search."""

from unittest.mock import patch

import pytest

from claude_session_viewer.errors import InvalidArgumentError
from claude_session_viewer.search import (
    SNIPPET_CONTEXT_CHARS,
    global_search,
    search_in_session,
)

from conftest import PROJECT_ID, SESSION_ID, set_mtime, write_jsonl

JAN_10 = 1704844800  # 2024-01-10T00:00:00Z


def _user(text, ts="2024-01-10T00:00:00Z"):
    return {"type": "user", "timestamp": ts, "message": {"role": "user", "content": text}}


class TestSearchInSession:
    def test_case_insensitive_with_role_and_timestamp(self, sample_project):
        matches = search_in_session(sample_project / PROJECT_ID / f"{SESSION_ID}.jsonl", "AUTH MODULE")
        assert [m.role for m in matches] == ["user", "assistant", "assistant"]
        assert matches[0].timestamp == "2025-01-20T10:00:00.000Z"
        assert matches[0].snippet == "Help me refactor the auth module"

    def test_snippet_window(self, tmp_path):
        text = "a" * 100 + "needle" + "b" * 100
        path = write_jsonl(tmp_path / "s.jsonl", [_user(text)])
        [match] = search_in_session(path, "needle")
        assert match.snippet == "a" * SNIPPET_CONTEXT_CHARS + "needle" + "b" * SNIPPET_CONTEXT_CHARS

    def test_one_match_per_line(self, tmp_path):
        path = write_jsonl(tmp_path / "s.jsonl", [_user("bug here and another bug there"), _user("no match")])
        assert len(search_in_session(path, "bug")) == 1

    def test_tool_output_and_metadata_lines_not_searched(self, sample_project):
        path = sample_project / PROJECT_ID / f"{SESSION_ID}.jsonl"
        # Only present in a tool_result and a summary line
        assert search_in_session(path, "jwt.verify") == []
        assert search_in_session(path, "Refactored auth") == []


class TestGlobalSearch:
    @pytest.fixture
    def corpus(self, projects_dir):
        files = {
            ("-proj-a", "s1"): [_user("deploy the app"), _user("deploy again"), _user("deploy once more")],
            ("-proj-a", "s2"): [_user("unrelated")],
            ("-proj-b", "s3"): [_user("how do I deploy?")],
        }
        for (project, session), entries in files.items():
            path = write_jsonl(projects_dir / project / f"{session}.jsonl", entries)
            set_mtime(path, JAN_10)
        return projects_dir

    def test_ranked_by_match_count(self, corpus):
        results = global_search("deploy", projects_dir=corpus)
        assert [(r.project_id, r.session_id, r.match_count) for r in results] == [
            ("-proj-a", "s1", 3),
            ("-proj-b", "s3", 1),
        ]
        assert results[0].last_modified == "2024-01-10T00:00:00.000Z"

    def test_matches_capped_at_three(self, projects_dir):
        write_jsonl(projects_dir / "p" / "s.jsonl", [_user(f"error {i}") for i in range(5)])
        [result] = global_search("error", projects_dir=projects_dir)
        assert result.match_count == 5
        assert len(result.matches) == 3

    def test_short_keyword_returns_empty(self, corpus):
        assert global_search("d", projects_dir=corpus) == []
        assert global_search(" d ", projects_dir=corpus) == []
        assert global_search("", projects_dir=corpus) == []
        assert global_search(None, projects_dir=corpus) == []

    def test_no_hits(self, corpus):
        assert global_search("ab", projects_dir=corpus) == []

    def test_project_filter(self, corpus):
        results = global_search("deploy", project="-proj-b", projects_dir=corpus)
        assert [r.session_id for r in results] == ["s3"]
        assert global_search("deploy", project="-nope", projects_dir=corpus) == []

    def test_date_range_is_inclusive(self, corpus):
        assert len(global_search("deploy", date_from="2024-01-10", date_to="2024-01-10", projects_dir=corpus)) == 2
        assert global_search("deploy", date_from="2024-01-11", projects_dir=corpus) == []
        assert global_search("deploy", date_to="2024-01-09", projects_dir=corpus) == []

    def test_end_of_day_counts(self, projects_dir):
        path = write_jsonl(projects_dir / "p" / "s.jsonl", [_user("late night deploy")])
        set_mtime(path, JAN_10 + 86399)  # 23:59:59
        assert len(global_search("deploy", date_to="2024-01-10", projects_dir=projects_dir)) == 1

    def test_bad_date(self, corpus):
        with pytest.raises(InvalidArgumentError):
            global_search("deploy", date_from="last week", projects_dir=corpus)

    def test_unreadable_file_is_skipped(self, corpus):
        real = search_in_session

        def flaky(path, keyword):
            if path.stem == "s1":
                raise PermissionError("denied")
            return real(path, keyword)

        with patch("claude_session_viewer.search.search_in_session", side_effect=flaky):
            results = global_search("deploy", projects_dir=corpus)
        assert [r.session_id for r in results] == ["s3"]

    def test_missing_root(self, tmp_path):
        assert global_search("deploy", projects_dir=tmp_path / "nope") == []
