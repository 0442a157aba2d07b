"""Exceptions raised by stud.

Everything derives from StudError; the CLI entry point turns an uncaught
StudError into exit status 1.
"""

from typing import Any


class StudError(Exception):
    """Base exception for all stud errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if not self.details:
            return self.message
        extra = ", ".join(f"{key}={value}" for key, value in self.details.items())
        return f"{self.message} ({extra})"


class ConfigError(StudError):
    """Unreadable or invalid configuration."""


class ValidationError(StudError):
    """Bad user input or file content."""


class AuthenticationError(StudError):
    """Missing or rejected credentials."""


class ApiError(StudError):
    """An HTTP API answered with an error or could not be reached."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.status_code = status_code


class JiraError(ApiError):
    """Jira REST API errors."""


class GitProviderError(ApiError):
    """GitHub/GitLab API errors."""


class GitError(StudError):
    """A git command failed or git is unavailable."""

    def __init__(
        self,
        message: str,
        command: list[str] | None = None,
        stderr: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.command = command or []
        self.stderr = stderr
