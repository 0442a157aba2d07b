"""Flatten command."""

import click

from stud.core.context import pass_context, StudContext
from stud.core.exceptions import GitError


@click.command()
@pass_context
def flatten(ctx: StudContext) -> None:
    """Squash fixup! and squash! commits into their targets.

    Rewrites the branch history since it diverged from the base branch.
    """
    git = ctx.git

    try:
        if git.get_porcelain_status().strip():
            ctx.output.print_error("Working directory is not clean. Commit or stash your changes first.")
            raise click.Abort()

        base_sha = git.get_merge_base(ctx.base_branch, "HEAD")
        if not git.has_fixup_commits(base_sha):
            ctx.output.print_note("No fixup commits to flatten.")
            return

        ctx.output.print_warning("This rewrites the branch history. Force-push afterwards if it is already published.")
        git.rebase_autosquash(base_sha)

    except GitError as e:
        ctx.output.print_error(f"Flatten failed: {e}")
        raise click.Abort()

    ctx.output.print_success("Fixup commits flattened.")
