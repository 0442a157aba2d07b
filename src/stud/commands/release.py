"""Release command."""

import re
from datetime import date
from pathlib import Path

import click

from stud.core.context import pass_context, StudContext
from stud.core.exceptions import GitError, ValidationError
from stud.core.utils import is_valid_branch_name

UNRELEASED_HEADER = "## [Unreleased]"
PYPROJECT_VERSION_PATTERN = re.compile(r'^(version\s*=\s*)(["\'])[^"\']*\2', re.MULTILINE)


def release_branch_name(version: str) -> str:
    return f"release/v{version}"


def bump_pyproject_version(path: Path, version: str) -> None:
    """Set the first ``version = "..."`` entry of a pyproject.toml."""
    content = path.read_text()
    updated, count = PYPROJECT_VERSION_PATTERN.subn(
        lambda m: f"{m.group(1)}{m.group(2)}{version}{m.group(2)}",
        content,
        count=1,
    )
    if count == 0:
        raise ValidationError(f"No version field found in {path}")
    path.write_text(updated)


def add_changelog_release(path: Path, version: str, release_date: date | None = None) -> bool:
    """Insert ``## [VERSION] - DATE`` below the Unreleased header.

    Returns:
        False when the changelog has no Unreleased header
    """
    content = path.read_text()
    if UNRELEASED_HEADER not in content:
        return False
    release_date = release_date or date.today()
    header = f"## [{version}] - {release_date.isoformat()}"
    path.write_text(content.replace(UNRELEASED_HEADER, f"{UNRELEASED_HEADER}\n\n{header}", 1))
    return True


@click.command()
@click.argument("version")
@click.option("--publish", "-p", is_flag=True, help="Push the release branch without asking")
@click.option(
    "--pyproject",
    default="pyproject.toml",
    type=click.Path(dir_okay=False, path_type=Path),
    show_default=True,
    help="Project file whose version is bumped",
)
@click.option(
    "--changelog",
    default="CHANGELOG.md",
    type=click.Path(dir_okay=False, path_type=Path),
    show_default=True,
    help="Changelog to add the release header to",
)
@pass_context
def release(
    ctx: StudContext,
    version: str,
    publish: bool,
    pyproject: Path,
    changelog: Path,
) -> None:
    """Cut a release branch for VERSION.

    Creates release/vVERSION from the base branch, bumps the project
    version, dates the changelog and commits the result.

    \b
    Examples:
        stud release 1.4.0
        stud release 1.4.0 --publish
    """
    branch = release_branch_name(version)
    if not is_valid_branch_name(branch):
        raise click.BadParameter(f"'{version}' cannot be used in a branch name", param_hint="VERSION")

    git = ctx.git
    ctx.output.print(f"Starting release process for version {version}")

    try:
        git.fetch()
        git.create_branch(branch, ctx.base_branch)
        ctx.output.print(f"Created release branch: {branch}")

        if pyproject.exists():
            bump_pyproject_version(pyproject, version)
            ctx.output.print(f"Updated version in {pyproject} to {version}")
        else:
            ctx.output.print_warning(f"{pyproject} not found, version not bumped.")

        if not changelog.exists():
            ctx.output.print_warning(f"{changelog} not found, changelog not updated.")
        elif add_changelog_release(changelog, version):
            ctx.output.print(f"Updated {changelog} with version {version}")
        else:
            ctx.output.print_warning(f"No '{UNRELEASED_HEADER}' section in {changelog}, changelog not updated.")

        git.stage_all_changes()
        git.commit(f"chore(Version): Bump version to {version}")
        ctx.output.print("Committed version bump.")

    except (GitError, ValidationError) as e:
        ctx.output.print_error(f"Release failed: {e}")
        raise click.Abort()

    if publish or ctx.confirm("Would you like to publish the release branch to remote?", False):
        if git.push_to_origin(branch):
            ctx.output.print("Release branch published to remote.")
        else:
            ctx.output.print_warning(f"Could not push {branch}. Push it manually.")

    ctx.output.print_success(f"Release {version} is ready to be deployed.")
