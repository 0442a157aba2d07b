"""Pull request commands."""

import click

from stud.core.context import pass_context, StudContext
from stud.core.exceptions import GitError, StudError


@click.group()
@pass_context
def pr(ctx: StudContext) -> None:
    """Pull requests - comment on the current branch's pull request.

    \b
    Examples:
        stud pr comment "Ready for another look"
        make test 2>&1 | stud pr comment
    """
    pass


def read_comment_body(message: str | None) -> str | None:
    """The MESSAGE argument, or piped stdin when it is omitted or ``-``."""
    if message is not None and message != "-":
        return message.strip() or None

    stdin = click.get_text_stream("stdin")
    if stdin.isatty():
        return None
    return stdin.read().strip() or None


@pr.command("comment")
@click.argument("message", required=False)
@pass_context
def comment(ctx: StudContext, message: str | None) -> None:
    """Post a comment on the open pull request of the current branch.

    Without MESSAGE (or with -) the comment is read from stdin.

    \b
    Examples:
        stud pr comment "Addressed the review notes"
        cat notes.md | stud pr comment
    """
    provider = ctx.git_provider
    if provider is None:
        ctx.output.print_error("No git provider configured. Set git.provider and a token.")
        raise click.Abort()

    body = read_comment_body(message)
    if not body:
        ctx.output.print_error("Nothing to post. Pass a MESSAGE or pipe the comment on stdin.")
        raise click.Abort()

    try:
        branch = ctx.git.get_current_branch_name()
    except GitError as e:
        ctx.output.print_error(str(e))
        raise click.Abort()

    try:
        pull_request = provider.find_pull_request_by_branch(branch)
    except StudError as e:
        ctx.logger.debug("Pull request lookup failed", branch=branch, error=str(e))
        pull_request = None
    if pull_request is None:
        ctx.output.print_error(f"No open pull request found for {branch}.")
        raise click.Abort()

    number = pull_request["number"]
    try:
        provider.create_comment(number, body)
    except StudError as e:
        ctx.output.print_error(f"Could not post the comment: {e}")
        raise click.Abort()

    ctx.output.print_success(f"Comment posted on pull request #{number}.")
