"""Core utilities and shared components for stud."""

# Note: Import context lazily to avoid circular imports
# Use: from stud.core.context import StudContext, pass_context
from stud.core.exceptions import StudError, ConfigError, GitError, JiraError, GitProviderError
from stud.core.output import OutputFormatter, console

__all__ = [
    "StudError",
    "ConfigError",
    "GitError",
    "JiraError",
    "GitProviderError",
    "OutputFormatter",
    "console",
]
