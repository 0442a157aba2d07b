"""API clients for external services."""

from stud.clients.github import GitHubClient
from stud.clients.gitlab import GitLabClient
from stud.clients.jira import JiraClient, Project, WorkItem
from stud.config import GitProviderConfig
from stud.core.exceptions import ConfigError

GitProvider = GitHubClient | GitLabClient

PROVIDERS: dict[str, type[GitHubClient] | type[GitLabClient]] = {
    "github": GitHubClient,
    "gitlab": GitLabClient,
}


def create_git_provider(config: GitProviderConfig, owner: str, repo: str) -> GitProvider:
    """Create the client for the configured git provider."""
    try:
        provider_class = PROVIDERS[config.provider]
    except KeyError:
        raise ConfigError(f"Unsupported git provider: {config.provider}")
    return provider_class(config, owner, repo)


__all__ = [
    "GitHubClient",
    "GitLabClient",
    "GitProvider",
    "JiraClient",
    "Project",
    "WorkItem",
    "create_git_provider",
]
