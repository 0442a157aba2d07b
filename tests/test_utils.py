"""Tests for common utilities."""

import pytest

from stud.core.utils import (
    branch_name_for_issue,
    branch_prefix_for_issue_type,
    format_commit_message,
    is_valid_branch_name,
    looks_like_jira_key,
    project_key_from_issue_key,
    slugify,
    truncate,
)


class TestSlugify:
    """Tests for slugify."""

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("Add login form", "add-login-form"),
            ("  Fix: crash on *empty* input!  ", "fix-crash-on-empty-input"),
            ("Already-slugged--text", "already-slugged-text"),
            ("Ünïcode Título", "n-code-t-tulo"),
            ("!!!", ""),
        ],
    )
    def test_slugify(self, text, expected):
        assert slugify(text) == expected


class TestBranchNames:
    """Tests for branch naming."""

    @pytest.mark.parametrize(
        "issue_type, prefix",
        [
            ("Bug", "fix"),
            ("Story", "feat"),
            ("Epic", "feat"),
            ("Task", "chore"),
            ("Sub-task", "chore"),
            ("Spike", "feat"),
            ("", "feat"),
        ],
    )
    def test_prefix(self, issue_type, prefix):
        assert branch_prefix_for_issue_type(issue_type) == prefix

    def test_branch_name_for_issue(self):
        assert branch_name_for_issue("proj-1", "Add login form", "Bug") == "fix/PROJ-1-add-login-form"

    def test_branch_name_without_slug(self):
        assert branch_name_for_issue("PROJ-1", "???", "Task") == "chore/PROJ-1"

    @pytest.mark.parametrize(
        "name, valid",
        [
            ("feat/PROJ-1-login", True),
            ("release/v1.2.0", True),
            ("has space", False),
            ("two..dots", False),
            ("branch.lock", False),
            ("tilde~1", False),
            ("", False),
        ],
    )
    def test_is_valid_branch_name(self, name, valid):
        assert is_valid_branch_name(name) is valid


class TestJiraKeys:
    """Tests for issue key helpers."""

    @pytest.mark.parametrize(
        "value, expected",
        [("PROJ-123", True), ("proj-1", True), ("feat/PROJ-1", False), ("PROJ", False), ("12-3", False)],
    )
    def test_looks_like_jira_key(self, value, expected):
        assert looks_like_jira_key(value) is expected

    def test_project_key(self):
        assert project_key_from_issue_key("abc-9") == "ABC"

    def test_project_key_invalid(self):
        with pytest.raises(ValueError):
            project_key_from_issue_key("nope")


class TestFormatting:
    """Tests for message helpers."""

    def test_commit_message_with_scope(self):
        assert format_commit_message("feat", "Auth", "Add login", "PROJ-1") == "feat(Auth): Add login [PROJ-1]"

    def test_commit_message_without_scope(self):
        assert format_commit_message("fix", None, "Typo", "PROJ-2") == "fix: Typo [PROJ-2]"

    def test_truncate_short(self):
        assert truncate("short") == "short"

    def test_truncate_long(self):
        result = truncate("x" * 200)
        assert len(result) == 120
        assert result.endswith("...")
        assert result[:117] == "x" * 117
