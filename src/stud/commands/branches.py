"""Local branch commands."""

from typing import Any

import click

from stud.core.context import pass_context, StudContext
from stud.core.exceptions import GitError, StudError
from stud.core.git import jira_key_from_branch
from stud.core.utils import (
    branch_name_for_issue,
    is_valid_branch_name,
    looks_like_jira_key,
    PROTECTED_BRANCHES,
    strip_remote,
)

STATUS_ACTIVE_PR = "active-pr"
STATUS_MERGED = "merged"
STATUS_STALE = "stale"
STATUS_ACTIVE = "active"


@click.group()
@pass_context
def branches(ctx: StudContext) -> None:
    """Branch operations - list, rename and clean.

    \b
    Examples:
        stud branches list
        stud branches clean
        stud branches rename PROJ-123
        stud branches rename feat/old-name --name feat/PROJ-1-new-name
    """
    pass


def branch_status(has_pr: bool, is_merged: bool, remote_exists: bool) -> str:
    """Classify a local branch.

    A branch with an open pull request is ``active-pr``. A merged branch is
    ``merged`` while it still exists on the remote and ``stale`` once it does
    not. Everything else is ``active``.
    """
    if has_pr:
        return STATUS_ACTIVE_PR
    if is_merged:
        return STATUS_MERGED if remote_exists else STATUS_STALE
    return STATUS_ACTIVE


def _pull_requests_by_branch(ctx: StudContext) -> dict[str, dict[str, Any]]:
    provider = ctx.git_provider
    if provider is None:
        return {}

    try:
        pull_requests = provider.list_pull_requests("open")
    except StudError as e:
        ctx.logger.warning("Could not fetch pull requests", error=str(e))
        return {}

    by_branch = {}
    for pull_request in pull_requests:
        head = provider.head_branch(pull_request)
        if head and provider.is_same_repository(pull_request):
            by_branch[head] = pull_request
    ctx.logger.debug("Indexed pull requests", count=len(by_branch))
    return by_branch


@branches.command("list")
@pass_context
def list_branches(ctx: StudContext) -> None:
    """List local branches with their merge, remote and pull request status.

    \b
    Statuses:
        active-pr   has an open pull request
        merged      merged into the base branch, still on the remote
        stale       merged and gone from the remote
        active      anything else
    """
    try:
        local_branches = ctx.git.get_all_local_branches()
        current_branch = ctx.git.get_current_branch_name()
    except GitError as e:
        ctx.output.print_error(str(e))
        raise click.Abort()

    if not local_branches:
        ctx.output.print_info("No local branches found.")
        return

    remote_branches = set(ctx.git.get_all_remote_branches())
    pull_requests = _pull_requests_by_branch(ctx)
    base_branch = ctx.base_branch

    rows = []
    for branch in local_branches:
        remote_exists = branch in remote_branches
        has_pr = branch in pull_requests
        is_merged = ctx.git.is_branch_merged_into(branch, base_branch)
        rows.append({
            "branch": f"{branch} (current)" if branch == current_branch else branch,
            "status": branch_status(has_pr, is_merged, remote_exists),
            "remote": "✓" if remote_exists else "✗",
            "pr": "✓" if has_pr else "✗",
        })

    ctx.output.print_data(rows, headers=["branch", "status", "remote", "pr"], title="Branches")


def _resolve_target(ctx: StudContext, branch: str | None, key: str | None) -> tuple[str, str | None]:
    """Work out which branch to rename and which issue key to name it after.

    A positional argument shaped like an issue key is taken as the key for
    the current branch.
    """
    if branch and not key and looks_like_jira_key(branch):
        return ctx.git.get_current_branch_name(), branch.upper()
    return branch or ctx.git.get_current_branch_name(), key.upper() if key else None


def _new_branch_name(
    ctx: StudContext,
    target: str,
    key: str | None,
    explicit_name: str | None,
) -> str:
    if explicit_name:
        if not is_valid_branch_name(explicit_name):
            raise click.BadParameter(f"'{explicit_name}' is not a valid branch name", param_hint="--name")
        return explicit_name

    key = key or jira_key_from_branch(target)
    if key is None:
        ctx.output.print_error(f"No Jira key found in branch name '{target}'. Use --key or --name.")
        raise click.Abort()

    try:
        item = ctx.jira.get_issue(key)
    except StudError as e:
        ctx.logger.debug("Issue lookup failed", key=key, error=str(e))
        ctx.output.print_error(f'Could not find Jira issue with key "{key}".')
        raise click.Abort()
    return branch_name_for_issue(item.key, item.title, item.issue_type)


def _find_pull_request(ctx: StudContext, branch: str) -> dict[str, Any] | None:
    provider = ctx.git_provider
    if provider is None:
        return None
    try:
        return provider.find_pull_request_by_branch(branch)
    except StudError as e:
        ctx.logger.debug("Pull request lookup failed", branch=branch, error=str(e))
        return None


@branches.command("rename")
@click.argument("branch", required=False)
@click.option("--key", "-k", help="Jira key to name the branch after")
@click.option("--name", "-n", "explicit_name", help="Explicit new branch name")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompts")
@pass_context
def rename_branch(
    ctx: StudContext,
    branch: str | None,
    key: str | None,
    explicit_name: str | None,
    yes: bool,
) -> None:
    """Rename a branch locally and on the remote.

    BRANCH defaults to the current branch. Without --name the new name is
    generated from the Jira issue, taken from --key or from the branch name.

    \b
    Examples:
        stud branches rename
        stud branches rename PROJ-123
        stud branches rename old-branch --key PROJ-123
        stud branches rename --name feat/PROJ-123-better-name -y
    """
    git = ctx.git

    try:
        if git.get_porcelain_status().strip():
            ctx.output.print_error("Working directory is not clean. Commit or stash your changes first.")
            raise click.Abort()

        target, key = _resolve_target(ctx, branch, key)
        new_name = _new_branch_name(ctx, target, key, explicit_name)

        if new_name == target:
            ctx.output.print_note(f"Branch is already named '{new_name}'.")
            return

        if git.local_branch_exists(new_name) or git.remote_branch_exists(new_name):
            ctx.output.print_error(f"A branch named '{new_name}' already exists.")
            raise click.Abort()

        has_local = git.local_branch_exists(target)
        has_remote = git.remote_branch_exists(target)
        if not has_local and not has_remote:
            ctx.output.print_error(f"Branch '{target}' not found locally or on {git.remote}.")
            raise click.Abort()

        if has_remote and not has_local:
            ctx.output.print_note(f"Branch '{target}' only exists on {git.remote}.")
            if not yes and not ctx.confirm("Rename the remote branch only?", True):
                return

        if has_local and has_remote:
            behind = git.get_commits_behind(target, f"{git.remote}/{target}")
            if behind > 0:
                ctx.output.print_warning(f"{git.remote}/{target} has {behind} commit(s) not in your local branch.")
                if target == git.get_current_branch_name() and (
                    yes or ctx.confirm("Rebase onto the remote branch first?", True)
                ):
                    try:
                        git.rebase(f"{git.remote}/{target}")
                    except GitError as e:
                        ctx.output.print_error(f"Rebase failed: {e}")
                        ctx.output.print(f"Resolve the conflicts, then run 'git rebase --continue' on {target}.")
                        raise click.Abort()

        pull_request = _find_pull_request(ctx, target)

        ctx.output.print(f"Renaming '{target}' to '{new_name}':")
        if has_local:
            ctx.output.print("  - local branch")
        if has_remote:
            ctx.output.print(f"  - branch on {git.remote}")
        if pull_request:
            ctx.output.print(f"  - comment on pull request #{pull_request.get('number')}")
        if not yes and not ctx.confirm("Proceed?", True):
            ctx.output.print_info("Operation cancelled")
            return

        if has_local:
            git.rename_local_branch(target, new_name)
        if has_remote:
            try:
                git.rename_remote_branch(target, new_name)
            except GitError as e:
                ctx.output.print_warning(f"Could not rename the remote branch: {e}")

    except GitError as e:
        ctx.output.print_error(str(e))
        raise click.Abort()

    if pull_request and ctx.git_provider is not None:
        try:
            ctx.git_provider.create_comment(
                pull_request["number"],
                f"Branch renamed from `{target}` to `{new_name}`",
            )
        except StudError as e:
            ctx.output.print_warning(f"Could not comment on the pull request: {e}")

    ctx.output.print_success(f"Renamed '{target}' to '{new_name}'.")


def _has_open_pull_request(ctx: StudContext, branch: str) -> bool:
    return _find_pull_request(ctx, branch) is not None


def branches_to_clean(ctx: StudContext) -> tuple[list[str], list[str], bool]:
    """Merged branches that are safe to delete.

    Returns:
        Local-only branches, branches that also exist on the remote, and
        whether the current branch was skipped
    """
    git = ctx.git
    base_branch = ctx.base_branch
    protected = set(PROTECTED_BRANCHES) | {strip_remote(base_branch, git.remote)}
    current_branch = git.get_current_branch_name()
    remote_branches = set(git.get_all_remote_branches())

    local_only: list[str] = []
    with_remote: list[str] = []
    current_skipped = False
    for branch in git.get_all_local_branches():
        if branch in protected:
            continue
        if not git.is_branch_merged_into(branch, base_branch):
            continue
        if branch == current_branch:
            current_skipped = True
            continue
        if _has_open_pull_request(ctx, branch):
            ctx.logger.debug("Keeping branch with open pull request", branch=branch)
            continue
        (with_remote if branch in remote_branches else local_only).append(branch)
    return local_only, with_remote, current_skipped


@branches.command("clean")
@click.option("--yes", "-y", is_flag=True, help="Delete local branches without asking")
@pass_context
def clean_branches(ctx: StudContext, yes: bool) -> None:
    """Delete local branches already merged into the base branch.

    Protected branches, the current branch and branches with an open pull
    request are kept. For branches that also exist on the remote you are
    asked whether to delete the remote copy too.

    \b
    Examples:
        stud branches clean
        stud branches clean -y
    """
    git = ctx.git

    try:
        local_only, with_remote, current_skipped = branches_to_clean(ctx)
    except GitError as e:
        ctx.output.print_error(str(e))
        raise click.Abort()

    if current_skipped:
        ctx.output.print_note("The current branch is merged but was kept. Switch away to clean it.")

    candidates = local_only + with_remote
    if not candidates:
        ctx.output.print_info("No merged branches to clean.")
        return

    ctx.output.print(f"Merged branches ({len(candidates)}):")
    for branch in candidates:
        suffix = f" (also on {git.remote})" if branch in with_remote else ""
        ctx.output.print(f"  - {branch}{suffix}")

    if not yes and not ctx.confirm(f"Delete {len(candidates)} local branch(es)?", True):
        ctx.output.print_info("Operation cancelled")
        return

    deleted = 0
    for branch in candidates:
        try:
            git.delete_branch(branch)
            deleted += 1
        except GitError as e:
            ctx.output.print_warning(f"Could not delete {branch}: {e}")
            continue

        if branch in with_remote and ctx.confirm(f"Also delete {branch} on {git.remote}?", False):
            try:
                git.delete_remote_branch(branch)
            except GitError as e:
                ctx.output.print_warning(f"Could not delete {branch} on {git.remote}: {e}")

    ctx.output.print_success(f"Deleted {deleted} branch(es).")
