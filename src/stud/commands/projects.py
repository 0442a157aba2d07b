"""Jira project commands."""

import click

from stud.core.context import pass_context, StudContext
from stud.core.exceptions import StudError


@click.group()
@pass_context
def projects(ctx: StudContext) -> None:
    """Jira projects visible to you."""
    pass


@projects.command("list")
@pass_context
def list_projects(ctx: StudContext) -> None:
    """List Jira projects.

    \b
    Examples:
        stud projects list
        stud -o json projects list
    """
    try:
        result = ctx.jira.get_projects()
    except StudError as e:
        ctx.output.print_error(f"Failed to list projects: {e}")
        raise click.Abort()

    if not result:
        ctx.output.print_info("No projects found.")
        return

    ctx.output.print_data(
        [{"key": project.key, "name": project.name} for project in result],
        headers=["key", "name"],
        title="Projects",
    )
