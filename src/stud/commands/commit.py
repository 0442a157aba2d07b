"""Commit command."""

import click

from stud.core.context import pass_context, StudContext
from stud.core.exceptions import GitError, StudError
from stud.core.utils import branch_prefix_for_issue_type, COMMIT_TYPES, format_commit_message


@click.group(invoke_without_command=True)
@click.option("--new", "is_new", is_flag=True, help="Always create a new logical commit")
@click.option("--message", "-m", help="Commit with this message as-is")
@pass_context
def commit(ctx: StudContext, is_new: bool, message: str | None) -> None:
    """Commit all changes.

    With -m the message is used as-is. Otherwise changes become a fixup of
    the latest logical commit on the branch, or, when there is none (or with
    --new), a conventional commit built from the branch's Jira issue:
    ``type(scope): summary [KEY]``.

    \b
    Examples:
        stud commit
        stud commit --new
        stud commit -m "docs: fix typo"
        stud commit undo
    """
    if click.get_current_context().invoked_subcommand:
        return

    git = ctx.git

    try:
        if not git.get_porcelain_status().strip():
            ctx.output.print_note("Working directory is clean. Nothing to commit.")
            return

        if message:
            git.stage_all_changes()
            git.commit(message)
            ctx.output.print_success("Changes committed.")
            return

        if not is_new:
            latest_sha = git.find_latest_logical_sha(ctx.base_branch)
            if latest_sha:
                ctx.logger.info("Found logical commit", sha=latest_sha)
                git.stage_all_changes()
                git.commit_fixup(latest_sha)
                ctx.output.print_success(f"Created fixup commit for {latest_sha[:8]}.")
                return

        ctx.output.print_note("No logical commit found on this branch, creating a new one.")

        key = git.get_jira_key_from_branch_name()
        if not key:
            ctx.output.print_error(
                "No Jira key found in branch name. Use 'stud items start' or commit with -m."
            )
            raise click.Abort()

        try:
            item = ctx.jira.get_issue(key)
        except StudError as e:
            ctx.logger.debug("Issue lookup failed", key=key, error=str(e))
            ctx.output.print_error(f'Could not find Jira issue with key "{key}".')
            raise click.Abort()

        default_type = branch_prefix_for_issue_type(item.issue_type)
        default_scope = item.components[0] if item.components else None

        commit_type = ctx.output.ask("Commit type", default_type) or default_type
        if commit_type not in COMMIT_TYPES:
            ctx.output.print_error(f'Unknown commit type "{commit_type}". Use one of: {", ".join(COMMIT_TYPES)}.')
            raise click.Abort()
        scope = ctx.output.ask("Scope (optional)", default_scope)
        summary = ctx.output.ask("Summary", item.title) or item.title

        commit_message = format_commit_message(commit_type, scope, summary, key)
        ctx.logger.info("Generated commit message", commit_message=commit_message)

        git.stage_all_changes()
        git.commit(commit_message)

    except GitError as e:
        ctx.output.print_error(str(e))
        raise click.Abort()

    ctx.output.print_success(f"Committed: {commit_message}")


@commit.command("undo")
@pass_context
def undo(ctx: StudContext) -> None:
    """Undo the last commit, keeping its changes staged.

    Asks first when the commit has already been pushed.
    """
    git = ctx.git

    try:
        if not git.has_commits():
            ctx.output.print_error("There is no commit to undo.")
            raise click.Abort()

        if git.is_head_pushed():
            ctx.output.print_warning("The last commit has already been pushed. Undoing it rewrites shared history.")
            if not ctx.confirm("Undo it anyway?", False):
                raise click.Abort()

        git.undo_last_commit()
    except GitError as e:
        ctx.output.print_error(str(e))
        raise click.Abort()

    ctx.output.print_success("Last commit undone. Its changes are still staged.")
