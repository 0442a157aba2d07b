"""Submit command: push the branch and open its pull request."""

import re

import click

from stud.core.context import pass_context, StudContext
from stud.core.exceptions import GitError, GitProviderError, StudError
from stud.core.utils import PROTECTED_BRANCHES, strip_remote

COMMIT_KEY_PATTERN = re.compile(r"\[([A-Za-z]+-\d+)\]")
DUPLICATE_STATUS_CODES = (409, 422)


def key_from_commit_subject(subject: str) -> str | None:
    """Issue key in the ``[KEY]`` suffix of a conventional commit subject."""
    match = COMMIT_KEY_PATTERN.search(subject)
    return match.group(1).upper() if match else None


def pull_request_body(key: str, link: str, description: str | None) -> str:
    """Link to the issue followed by its description."""
    return f"**Jira issue:** [{key}]({link})\n\n{description or f'Resolves: {link}'}"


def is_duplicate_pull_request(error: GitProviderError) -> bool:
    return error.status_code in DUPLICATE_STATUS_CODES and "already exists" in str(error).lower()


def parse_labels(labels: str | None) -> list[str]:
    return [label.strip() for label in (labels or "").split(",") if label.strip()]


@click.command()
@click.option("--draft", "-d", is_flag=True, help="Open the pull request as a draft")
@click.option("--labels", "-l", metavar="LABELS", help="Comma-separated labels for the pull request")
@pass_context
def submit(ctx: StudContext, draft: bool, labels: str | None) -> None:
    """Push the current branch and open a pull request.

    The title is the branch's first logical commit; the body links the Jira
    issue named in that commit and carries its description.

    \b
    Examples:
        stud submit
        stud submit --draft --labels "frontend,needs-review"
    """
    git = ctx.git

    try:
        if git.get_porcelain_status().strip():
            ctx.output.print_error("Working directory is not clean. Commit or stash your changes first.")
            raise click.Abort()

        branch = git.get_current_branch_name()
        base = strip_remote(ctx.base_branch, git.remote)
        if branch in PROTECTED_BRANCHES or branch == base:
            ctx.output.print_error(f"Refusing to submit '{branch}'. Switch to a work branch first.")
            raise click.Abort()

        ctx.output.print(f"Pushing {branch} to {git.remote}...")
        if not git.push_to_origin(branch):
            ctx.output.print_error(f"Could not push {branch}. Pull or rebase, then try again.")
            raise click.Abort()

        first_sha = git.find_first_logical_sha(git.get_merge_base(ctx.base_branch))
        if first_sha is None:
            ctx.output.print_error(f"No logical commit found on {branch}. Run 'stud commit' first.")
            raise click.Abort()
        title = git.get_commit_subject(first_sha)
    except GitError as e:
        ctx.output.print_error(str(e))
        raise click.Abort()

    key = key_from_commit_subject(title) or git.get_jira_key_from_branch_name()
    if key is None:
        ctx.output.print_error("No Jira key found in the first commit or the branch name.")
        raise click.Abort()

    description = None
    try:
        description = ctx.jira.get_issue(key).description
    except StudError as e:
        ctx.output.print_warning(f"Could not fetch {key} for the pull request body: {e}")
    body = pull_request_body(key, ctx.jira.browse_url(key), description)

    provider = ctx.git_provider
    if provider is None:
        ctx.output.print_warning("No git provider configured. Branch pushed; open the pull request manually.")
        return

    ctx.logger.info("Creating pull request", head=branch, base=base, draft=draft)
    try:
        pull_request = provider.create_pull_request(
            title, branch, base, body, draft=draft, labels=parse_labels(labels)
        )
    except GitProviderError as e:
        if is_duplicate_pull_request(e):
            ctx.output.print_note("A pull request for this branch already exists.")
            ctx.output.print_success(f"Pushed {branch}.")
            return
        ctx.output.print_error(f"Could not create the pull request: {e}")
        raise click.Abort()
    except StudError as e:
        ctx.output.print_error(f"Could not create the pull request: {e}")
        raise click.Abort()

    ctx.output.print_success(f"Pull request created: {provider.web_url(pull_request)}")
