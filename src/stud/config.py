"""Configuration management for stud using Pydantic.

Settings come from YAML files merged in order (user file, project file,
explicit ``--config`` file; later files win key by key). Connection values
can also be given through environment variables, which win over files.
"""

import os
from functools import reduce
from pathlib import Path
from typing import Any, Iterator

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from stud.core.exceptions import ConfigError
from stud.core.logging import LogLevel
from stud.core.output import OutputFormat

FROM_ENV = "from_env"
SECRET_PLACEHOLDER = "********"
SECRET_KEYS = ("token", "api_token", "password", "secret")
PROVIDER_API_URLS = {
    "github": "https://api.github.com",
    "gitlab": "https://gitlab.com/api/v4",
}
PROVIDER_TOKEN_VARS = {
    "github": ("STUD_GIT_TOKEN", "GITHUB_TOKEN", "GH_TOKEN"),
    "gitlab": ("STUD_GIT_TOKEN", "GITLAB_TOKEN"),
}
COLOR_MODES = ("auto", "always", "never")

DEFAULT_SECTION_KEYWORDS = [
    "Title",
    "User Story",
    "Description & Implementation Logic",
    "Acceptance Criteria",
]


def env_first(*names: str) -> str | None:
    """Value of the first environment variable that is set and non-empty."""
    return next((os.environ[name] for name in names if os.environ.get(name)), None)


def resolve_secret(value: str | None, *env_names: str) -> str | None:
    """A configured secret, or the environment when unset or ``from_env``."""
    if value is None or value == FROM_ENV:
        return env_first(*env_names)
    return value


class JiraConfig(BaseModel):
    """Jira Cloud connection."""

    url: str | None = None
    email: str | None = None
    api_token: str | None = None
    transition_enabled: bool = False
    timeout: int = 30

    def get_url(self) -> str | None:
        url = env_first("STUD_JIRA_URL", "JIRA_URL") or self.url
        return url.rstrip("/") if url else None

    def get_email(self) -> str | None:
        return env_first("STUD_JIRA_EMAIL", "JIRA_EMAIL") or self.email

    def get_api_token(self) -> str | None:
        return resolve_secret(self.api_token, "STUD_JIRA_API_TOKEN", "JIRA_API_TOKEN")


class GitProviderConfig(BaseModel):
    """Git hosting (GitHub or GitLab) and local branch settings.

    ``owner``/``repo`` default to what the remote URL says.
    """

    provider: str = "github"
    token: str | None = None
    base_url: str | None = None
    owner: str | None = None
    repo: str | None = None
    base_branch: str = "origin/develop"
    remote: str = "origin"
    timeout: int = 30

    @field_validator("provider")
    @classmethod
    def validate_provider(cls, v: str) -> str:
        v = v.lower()
        if v not in PROVIDER_API_URLS:
            raise ValueError(f"provider must be one of: {', '.join(PROVIDER_API_URLS)}")
        return v

    def get_token(self) -> str | None:
        return resolve_secret(self.token, *PROVIDER_TOKEN_VARS[self.provider])

    def get_base_url(self) -> str:
        return (self.base_url or PROVIDER_API_URLS[self.provider]).rstrip("/")

    def get_base_branch(self) -> str:
        return env_first("STUD_BASE_BRANCH") or self.base_branch


class DescriptionConfig(BaseModel):
    """How issue descriptions are split into titled sections."""

    section_keywords: list[str] = Field(default_factory=lambda: list(DEFAULT_SECTION_KEYWORDS))
    fallback_title: str = "Details"

    @field_validator("fallback_title")
    @classmethod
    def validate_fallback_title(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("fallback_title must not be empty")
        return v


class GlobalConfig(BaseModel):
    output_format: OutputFormat = OutputFormat.TABLE
    color: str = "auto"
    verbosity: LogLevel = LogLevel.WARNING

    @field_validator("color")
    @classmethod
    def validate_color(cls, v: str) -> str:
        if v not in COLOR_MODES:
            raise ValueError(f"color must be one of: {', '.join(COLOR_MODES)}")
        return v


class StudConfig(BaseModel):
    """Root configuration. The ``global`` YAML key maps to ``global_settings``."""

    model_config = {"populate_by_name": True}

    version: str = "1"
    global_settings: GlobalConfig = Field(default_factory=GlobalConfig, alias="global")
    jira: JiraConfig = Field(default_factory=JiraConfig)
    git: GitProviderConfig = Field(default_factory=GitProviderConfig)
    description: DescriptionConfig = Field(default_factory=DescriptionConfig)

    def redacted(self) -> dict[str, Any]:
        """Dump the configuration with secret values masked."""
        return redact(self.model_dump(by_alias=True, mode="json"))


def redact(data: Any) -> Any:
    """Recursively mask non-empty values whose key names a secret."""
    if isinstance(data, dict):
        return {
            key: SECRET_PLACEHOLDER if str(key).lower() in SECRET_KEYS and value else redact(value)
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [redact(item) for item in data]
    return data


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge ``override`` into a copy of ``base``, recursing into nested mappings."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(merged.get(key), dict) and isinstance(value, dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigLoader:
    """Finds, reads and merges configuration files."""

    PROJECT_FILENAMES = ("stud.yaml", "stud.yml", ".stud.yaml", ".stud.yml")

    def __init__(self):
        self.sources: list[Path] = []

    @staticmethod
    def user_config_path() -> Path:
        config_home = os.environ.get("XDG_CONFIG_HOME")
        base = Path(config_home) if config_home else Path.home() / ".config"
        return base / "stud" / "config.yaml"

    def find_project_config(self, start: Path | None = None) -> Path | None:
        """Nearest project config file in ``start`` or one of its parents."""
        start = start or Path.cwd()
        for directory in (start, *start.parents):
            for filename in self.PROJECT_FILENAMES:
                candidate = directory / filename
                if candidate.is_file():
                    return candidate
        return None

    def _candidates(self, config_file: str | Path | None) -> Iterator[Path]:
        user_config = self.user_config_path()
        if user_config.is_file():
            yield user_config

        project_config = self.find_project_config()
        if project_config:
            yield project_config

        if config_file:
            explicit = Path(config_file)
            if not explicit.is_file():
                raise ConfigError(f"Config file not found: {config_file}")
            yield explicit

    @staticmethod
    def read_file(path: Path) -> dict[str, Any]:
        try:
            content = yaml.safe_load(path.read_text()) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Cannot read {path}: {e}") from e

        if not isinstance(content, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        return content

    def load(self, config_file: str | Path | None = None) -> StudConfig:
        """Merge every config file that exists, lowest priority first.

        ``sources`` lists the files that were read.
        """
        self.sources = list(self._candidates(config_file))
        merged = reduce(deep_merge, (self.read_file(path) for path in self.sources), {})

        try:
            return StudConfig.model_validate(merged)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e


_config_loader = ConfigLoader()


def load_config(config_file: str | Path | None = None) -> StudConfig:
    return _config_loader.load(config_file)


def config_sources() -> list[Path]:
    """Files that contributed to the last loaded configuration."""
    return list(_config_loader.sources)


def get_default_config() -> StudConfig:
    """Get default configuration without loading from files."""
    return StudConfig()
