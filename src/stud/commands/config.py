"""Configuration commands."""

from dataclasses import dataclass
from typing import Any, Callable

import click

from stud.config import config_sources
from stud.core.context import pass_context, StudContext
from stud.core.exceptions import StudError
from stud.core.output import OutputFormat
from stud.core.utils import truncate

STATUS_OK = "ok"
STATUS_FAIL = "fail"
STATUS_SKIPPED = "skipped"


@dataclass
class CheckResult:
    """Outcome of one connectivity check."""

    name: str
    status: str
    reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"check": self.name, "status": self.status, "reason": self.reason or ""}


@click.group("config")
@pass_context
def config_group(ctx: StudContext) -> None:
    """Configuration - show and validate.

    \b
    Configuration files (later ones win):
        ~/.config/stud/config.yaml    User configuration
        ./stud.yaml                   Project configuration
        --config FILE                 Explicit file
    """
    pass


def flatten_config(data: dict[str, Any], prefix: str = "") -> dict[str, Any]:
    """Flatten nested mappings into dotted keys."""
    flat: dict[str, Any] = {}
    for key, value in data.items():
        dotted = f"{prefix}{key}"
        if isinstance(value, dict):
            flat.update(flatten_config(value, f"{dotted}."))
        elif isinstance(value, list):
            flat[dotted] = ", ".join(str(item) for item in value)
        else:
            flat[dotted] = "" if value is None else value
    return flat


@config_group.command("show")
@pass_context
def show_config(ctx: StudContext) -> None:
    """Show the effective configuration with secrets masked."""
    data = ctx.config.redacted()

    if ctx.output_format == OutputFormat.TABLE:
        ctx.output.print_data(flatten_config(data), title="Current Configuration")
        sources = config_sources()
        if sources:
            ctx.output.print_info("Loaded from: " + ", ".join(str(path) for path in sources))
        else:
            ctx.output.print_info("No configuration files found, using defaults.")
    else:
        ctx.output.print_data(data)


def run_check(name: str, skip: bool, check: Callable[[], Any]) -> CheckResult:
    """Run ``check`` and record ok/fail/skipped."""
    if skip:
        return CheckResult(name, STATUS_SKIPPED)
    try:
        check()
    except StudError as e:
        return CheckResult(name, STATUS_FAIL, truncate(str(e)))
    return CheckResult(name, STATUS_OK)


def _check_jira(ctx: StudContext) -> None:
    if not ctx.config.jira.get_url():
        raise StudError("Jira not configured")
    ctx.jira.get_projects()


def _check_git_provider(ctx: StudContext) -> None:
    provider = ctx.git_provider
    if provider is None:
        raise StudError("Git provider not configured")
    provider.get_labels()


@config_group.command("validate")
@click.option("--skip-jira", is_flag=True, help="Do not check Jira")
@click.option("--skip-git", is_flag=True, help="Do not check the git provider")
@pass_context
def validate_config(ctx: StudContext, skip_jira: bool, skip_git: bool) -> None:
    """Check that Jira and the git provider accept the configured credentials.

    Exits with status 1 if any check fails.
    """
    results = [
        run_check("jira", skip_jira, lambda: _check_jira(ctx)),
        run_check(ctx.config.git.provider, skip_git, lambda: _check_git_provider(ctx)),
    ]

    ctx.output.print_data(
        [result.to_dict() for result in results],
        headers=["check", "status", "reason"],
        title="Configuration Checks",
    )

    if any(result.status == STATUS_FAIL for result in results):
        raise click.exceptions.Exit(1)
