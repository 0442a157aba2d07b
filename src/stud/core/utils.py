"""Common utilities for stud."""

import re

JIRA_KEY_PATTERN = re.compile(r"^[A-Z]+-\d+$")
BRANCH_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9._/-]+$")

MAX_REASON_LENGTH = 120

# Branch prefix per Jira issue type; anything else is a feature
BRANCH_PREFIXES = {
    "bug": "fix",
    "story": "feat",
    "epic": "feat",
    "task": "chore",
    "sub-task": "chore",
}

COMMIT_TYPES = ["feat", "fix", "chore", "docs", "style", "refactor", "perf", "test", "build", "ci"]

# Long-lived branches that are never submitted or deleted
PROTECTED_BRANCHES = ("develop", "main", "master")


def slugify(text: str) -> str:
    """Convert text to a lowercase, dash-separated branch slug.

    Args:
        text: Free text such as an issue title

    Returns:
        Slug containing only ``a-z``, ``0-9`` and single dashes
    """
    slug = re.sub(r"[^a-z0-9-]+", "-", text.lower())
    slug = re.sub(r"-{2,}", "-", slug)
    return slug.strip("-")


def branch_prefix_for_issue_type(issue_type: str) -> str:
    """Branch prefix for a Jira issue type (``bug`` -> ``fix``)."""
    return BRANCH_PREFIXES.get(issue_type.strip().lower(), "feat")


def branch_name_for_issue(key: str, title: str, issue_type: str) -> str:
    """Build ``<prefix>/<KEY>-<slug>`` for an issue."""
    prefix = branch_prefix_for_issue_type(issue_type)
    slug = slugify(title)
    name = f"{prefix}/{key.upper()}"
    return f"{name}-{slug}" if slug else name


def looks_like_jira_key(value: str) -> bool:
    """Check whether ``value`` has the shape of an issue key, e.g. ``PROJ-123``."""
    return bool(JIRA_KEY_PATTERN.match(value.strip().upper()))


def project_key_from_issue_key(issue_key: str) -> str:
    """Get the project part of an issue key (``PROJ-123`` -> ``PROJ``).

    Raises:
        ValueError: If the key is not a valid issue key
    """
    key = issue_key.strip().upper()
    if not JIRA_KEY_PATTERN.match(key):
        raise ValueError(f"Invalid Jira issue key format: {issue_key}")
    return key.split("-", 1)[0]


def is_valid_branch_name(name: str) -> bool:
    """Check a user-supplied branch name against git's naming rules."""
    if not BRANCH_NAME_PATTERN.match(name):
        return False
    if ".." in name:
        return False
    if name.endswith(".lock"):
        return False
    return True


def format_commit_message(commit_type: str, scope: str | None, summary: str, key: str) -> str:
    """Format a conventional commit message: ``type(scope): summary [KEY]``."""
    header = f"{commit_type}({scope})" if scope else commit_type
    return f"{header}: {summary} [{key}]"


def truncate(text: str, max_length: int = MAX_REASON_LENGTH) -> str:
    """Truncate text, marking the cut with ``...``."""
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


def strip_remote(branch: str, remote: str) -> str:
    """Drop a ``<remote>/`` prefix (``origin/develop`` -> ``develop``)."""
    prefix = f"{remote}/"
    return branch[len(prefix):] if branch.startswith(prefix) else branch
