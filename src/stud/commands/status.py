"""Status command."""

import click
from rich.markup import escape

from stud.core.context import pass_context, StudContext
from stud.core.exceptions import GitError, StudError


@click.command()
@pass_context
def status(ctx: StudContext) -> None:
    """Show the branch's Jira issue, the current branch and local changes."""
    git = ctx.git

    try:
        branch = git.get_current_branch_name()
        changes = [line for line in git.get_porcelain_status().splitlines() if line.strip()]
    except GitError as e:
        ctx.output.print_error(str(e))
        raise click.Abort()

    key = git.get_jira_key_from_branch_name()
    if key:
        try:
            item = ctx.jira.get_issue(key)
            ctx.output.print(
                f"Jira:   [yellow]\\[{escape(item.status)}][/yellow] {escape(item.key)}: {escape(item.title)}"
            )
        except StudError as e:
            ctx.output.print(f"Jira:   [red]Could not fetch Jira issue details: {escape(str(e))}[/red]")
    else:
        ctx.output.print("Jira:   [dim]No Jira key found in branch name.[/dim]")

    ctx.output.print(f"Git:    On branch [cyan]'{escape(branch)}'[/cyan]")

    if changes:
        ctx.output.print(f"Local:  You have [red]{len(changes)} uncommitted changes.[/red]")
    else:
        ctx.output.print("Local:  [green]Working directory is clean.[/green]")
