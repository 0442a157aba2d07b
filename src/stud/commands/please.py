"""Please command: force-push with lease."""

import click

from stud.core.context import pass_context, StudContext
from stud.core.exceptions import GitError


@click.command()
@pass_context
def please(ctx: StudContext) -> None:
    """Force-push the current branch with --force-with-lease.

    Use after flatten or a rebase. The push is refused when the remote has
    commits you have not fetched.
    """
    git = ctx.git

    try:
        upstream = git.get_upstream_branch()
        if upstream is None:
            ctx.output.print_error("The current branch has no upstream. Push it with 'stud submit' first.")
            raise click.Abort()

        ctx.output.print_warning(f"Force-pushing to {upstream} (with lease).")
        git.force_push_with_lease()
    except GitError as e:
        ctx.output.print_error(str(e))
        raise click.Abort()

    ctx.output.print_success(f"Pushed to {upstream}.")
