"""Pytest fixtures for stud tests."""

import os
from types import SimpleNamespace
from typing import Generator
from unittest.mock import MagicMock, PropertyMock, patch

import pytest
from click.testing import CliRunner

from stud.clients.jira import WorkItem
from stud.config import GitProviderConfig, JiraConfig, StudConfig
from stud.core.context import StudContext
from stud.core.output import OutputFormat


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a Click CLI runner."""
    return CliRunner()


@pytest.fixture
def mock_config() -> StudConfig:
    """Create a mock configuration."""
    return StudConfig(
        jira=JiraConfig(
            url="https://test.atlassian.net",
            email="dev@example.com",
            api_token="test-token",
        ),
        git=GitProviderConfig(provider="github", token="gh-token", owner="acme", repo="widgets"),
    )


@pytest.fixture
def mock_context(mock_config: StudConfig) -> StudContext:
    """Create a mock stud context."""
    return StudContext(
        config=mock_config,
        output_format=OutputFormat.TABLE,
        verbose=0,
        quiet=False,
        color=False,
    )


@pytest.fixture
def work_item() -> WorkItem:
    """A typical story."""
    return WorkItem(
        key="PROJ-123",
        title="Add login form",
        status="To Do",
        assignee="Dev One",
        description="User Story\nAs a user I want to log in\n---\nAcceptance Criteria:\n[ ] Form\n[x] Button",
        labels=["frontend"],
        issue_type="Story",
        components=["Auth"],
    )


@pytest.fixture
def stud_mocks(mock_config: StudConfig) -> Generator[SimpleNamespace, None, None]:
    """Run CLI commands against mocked Jira, git and git provider collaborators."""
    jira = MagicMock()
    jira.browse_url.side_effect = lambda key: f"https://test.atlassian.net/browse/{key}"
    git = MagicMock()
    git.remote = "origin"
    git.get_porcelain_status.return_value = ""
    git.get_current_branch_name.return_value = "feat/PROJ-123-add-login-form"
    git.get_jira_key_from_branch_name.return_value = "PROJ-123"
    git.read_project_config.return_value = {}
    git.get_project_key_from_issue_key.side_effect = lambda key: key.split("-")[0]
    git.get_commits_behind.return_value = 0
    git.local_branch_exists.return_value = False
    git.remote_branch_exists.return_value = False
    git.push_to_origin.return_value = True
    git.has_commits.return_value = True
    git.is_head_pushed.return_value = False
    git.find_branches_for_key.return_value = ([], [])
    provider = MagicMock()
    provider.head_branch.side_effect = lambda pr: pr.get("head", {}).get("ref", "")
    provider.is_same_repository.return_value = True
    provider.web_url.side_effect = lambda pr: pr.get("html_url", "")

    with patch("stud.cli.load_config", return_value=mock_config), \
         patch.object(StudContext, "jira", new_callable=PropertyMock, return_value=jira), \
         patch.object(StudContext, "git", new_callable=PropertyMock, return_value=git), \
         patch.object(StudContext, "git_provider", new_callable=PropertyMock, return_value=provider):
        yield SimpleNamespace(config=mock_config, jira=jira, git=git, provider=provider)


@pytest.fixture(autouse=True)
def clean_env() -> Generator[None, None, None]:
    """Clean environment variables before each test."""
    env_vars = [
        "STUD_CONFIG",
        "STUD_JIRA_URL",
        "STUD_JIRA_EMAIL",
        "STUD_JIRA_API_TOKEN",
        "STUD_GIT_TOKEN",
        "STUD_BASE_BRANCH",
        "JIRA_URL",
        "JIRA_EMAIL",
        "JIRA_API_TOKEN",
        "GITHUB_TOKEN",
        "GH_TOKEN",
        "GITLAB_TOKEN",
    ]

    original = {k: os.environ.get(k) for k in env_vars}

    # Remove vars for clean test
    for k in env_vars:
        os.environ.pop(k, None)

    yield

    # Restore original values
    for k, v in original.items():
        if v is not None:
            os.environ[k] = v
        else:
            os.environ.pop(k, None)
