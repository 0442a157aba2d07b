"""Per-invocation state shared by all stud commands."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from stud.config import StudConfig, get_default_config
from stud.core.output import OutputFormat, OutputFormatter
from stud.core.logging import level_for_flags, setup_logging, StructuredLogger

# Rich force_terminal setting per configured color mode; None lets Rich detect a terminal
FORCE_TERMINAL = {"auto": None, "always": True, "never": False}

if TYPE_CHECKING:
    from stud.clients import GitProvider
    from stud.clients.jira import JiraClient
    from stud.core.git import GitRepository
    from stud.description import DescriptionFormatter


class StudContext:
    """Shared context object for stud commands.

    This object is passed through Click's context mechanism and provides
    access to configuration, clients, and the local repository.
    """

    def __init__(
        self,
        config: StudConfig | None = None,
        output_format: OutputFormat | None = None,
        verbose: int = 0,
        quiet: bool = False,
        color: bool = True,
    ):
        self._config = config or get_default_config()

        # Command line flags win over the configured defaults
        self._output_format = output_format or self._config.global_settings.output_format
        self._color = FORCE_TERMINAL["never" if not color else self._config.global_settings.color]

        log_level = level_for_flags(verbose, quiet, self._config.global_settings.verbosity)
        setup_logging(log_level, rich_output=self._color is not False)
        self._logger = StructuredLogger("context")

        self._output = OutputFormatter(
            format=self._output_format,
            color=self._color,
            quiet=quiet,
        )

        # Lazy-loaded collaborators
        self._jira_client: JiraClient | None = None
        self._git_repository: GitRepository | None = None
        self._git_provider: GitProvider | None = None
        self._git_provider_resolved = False
        self._description_formatter: DescriptionFormatter | None = None

    @property
    def config(self) -> StudConfig:
        """Get the loaded configuration."""
        return self._config

    @property
    def output(self) -> OutputFormatter:
        """Get the output formatter."""
        return self._output

    @property
    def output_format(self) -> OutputFormat:
        return self._output_format

    @property
    def color(self) -> bool | None:
        return self._color

    @property
    def logger(self) -> StructuredLogger:
        """Get the context logger."""
        return self._logger

    @property
    def base_branch(self) -> str:
        """Branch new work is cut from and compared against."""
        return self._config.git.get_base_branch()

    @property
    def jira(self) -> "JiraClient":
        """Get or create Jira client."""
        if self._jira_client is None:
            from stud.clients.jira import JiraClient

            self._jira_client = JiraClient(self._config.jira)
        return self._jira_client

    @property
    def git(self) -> "GitRepository":
        """Get or create the repository wrapper for the working directory."""
        if self._git_repository is None:
            from stud.core.git import GitRepository

            self._git_repository = GitRepository(remote=self._config.git.remote)
        return self._git_repository

    @property
    def git_provider(self) -> "GitProvider | None":
        """Get the GitHub/GitLab client, or None when it cannot be used.

        The repository is taken from config or, failing that, from the
        remote URL. Without a token or a repository there is no provider.
        """
        if not self._git_provider_resolved:
            self._git_provider_resolved = True
            self._git_provider = self._create_git_provider()
        return self._git_provider

    def _create_git_provider(self) -> "GitProvider | None":
        from stud.clients import create_git_provider

        git_config = self._config.git
        if not git_config.get_token():
            self._logger.debug("No git provider token configured", provider=git_config.provider)
            return None

        owner, repo = git_config.owner, git_config.repo
        if not (owner and repo):
            parsed = self.git.get_repository_path()
            if parsed is None:
                self._logger.debug("Could not determine repository from remote")
                return None
            owner, repo = owner or parsed[0], repo or parsed[1]

        return create_git_provider(git_config, owner, repo)

    @property
    def description_formatter(self) -> "DescriptionFormatter":
        """Get the description formatter configured with section keywords."""
        if self._description_formatter is None:
            from stud.description import DescriptionFormatter

            description = self._config.description
            self._description_formatter = DescriptionFormatter(
                keywords=description.section_keywords,
                fallback_title=description.fallback_title,
            )
        return self._description_formatter

    def confirm(self, message: str, default: bool = False) -> bool:
        """Ask for user confirmation."""
        return self._output.confirm(message, default)


# Click decorator for passing context
pass_context = click.make_pass_decorator(StudContext, ensure=True)
