"""Jira work item commands."""

from typing import Any

import click

from stud.core.context import pass_context, StudContext
from stud.core.exceptions import GitError, JiraError, StudError
from stud.core.output import OutputFormat
from stud.core.utils import branch_name_for_issue, looks_like_jira_key

IN_PROGRESS_CATEGORY = "in_progress"
SORT_FIELDS = ("key", "status")


@click.group()
@pass_context
def items(ctx: StudContext) -> None:
    """Work items - list, search, show, start, transition and take over Jira issues.

    \b
    Examples:
        stud items list
        stud items search "project = PROJ"
        stud items list --all --project PROJ --sort status
        stud items show PROJ-123
        stud items start PROJ-123
    """
    pass


def build_item_list_jql(all_items: bool = False, project: str | None = None) -> str:
    """JQL for open work items, optionally restricted to one project."""
    parts = []
    if not all_items:
        parts.append("assignee = currentUser()")
    parts.append("statusCategory in ('To Do', 'In Progress')")
    if project:
        parts.append(f"project = {project.upper()}")
    return " AND ".join(parts) + " ORDER BY updated DESC"


@items.command("list")
@click.option("--all", "-a", "all_items", is_flag=True, help="Include items assigned to anyone")
@click.option("--project", "-p", metavar="KEY", help="Only items of this project")
@click.option(
    "--sort",
    "-s",
    type=click.Choice(SORT_FIELDS, case_sensitive=False),
    help="Sort by key or status",
)
@pass_context
def list_items(
    ctx: StudContext,
    all_items: bool,
    project: str | None,
    sort: str | None,
) -> None:
    """List open work items assigned to you.

    \b
    Examples:
        stud items list
        stud items list --all
        stud items list -p PROJ --sort key
    """
    jql = build_item_list_jql(all_items, project)
    ctx.logger.info("Searching work items", jql=jql)

    try:
        work_items = ctx.jira.search_issues(jql)
    except StudError as e:
        ctx.output.print_error(f"Failed to list work items: {e}")
        raise click.Abort()

    if sort:
        attribute = sort.lower()
        work_items = sorted(work_items, key=lambda item: getattr(item, attribute))

    if not work_items:
        ctx.output.print_info("No work items found.")
        return

    ctx.output.print_data(
        [item.to_dict() for item in work_items],
        headers=["key", "status", "type", "title"],
        title="Work Items",
    )


@items.command("show")
@click.argument("key")
@pass_context
def show_item(ctx: StudContext, key: str) -> None:
    """Show a work item and its formatted description.

    \b
    Examples:
        stud items show PROJ-123
        stud -o json items show PROJ-123
    """
    key = key.upper()
    ctx.logger.info("Fetching work item", key=key)

    try:
        item = ctx.jira.get_issue(key)
    except StudError as e:
        ctx.logger.debug("Issue lookup failed", key=key, error=str(e))
        ctx.output.print_error(f'Could not find Jira issue with key "{key}".')
        raise click.Abort()

    formatter = ctx.description_formatter
    link = ctx.jira.browse_url(item.key)

    if ctx.output_format != OutputFormat.TABLE:
        data: dict[str, Any] = {
            **item.to_dict(),
            "link": link,
            "sections": [
                {"title": section.title, "content": section.content_lines}
                for section in formatter.format(item.description)
            ],
        }
        ctx.output.print_data(data)
        return

    ctx.output.section(f"Details for issue {item.key}")
    ctx.output.definition_list([
        ("Key", item.key),
        ("Title", item.title),
        ("Status", item.status),
        ("Assignee", item.assignee),
        ("Type", item.issue_type),
        ("Labels", ", ".join(item.labels) if item.labels else "None"),
        None,
        ("Link", link),
    ])
    formatter.display(ctx.output, item.description)


def in_progress_transitions(transitions: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Transitions whose target status is in the "In Progress" category."""
    return [
        transition
        for transition in transitions
        if (transition.get("to") or {}).get("statusCategory", {}).get("key") == IN_PROGRESS_CATEGORY
    ]


def _cached_transition_id(ctx: StudContext, project_key: str) -> int | None:
    project_config = ctx.git.read_project_config()
    if project_config.get("projectKey") != project_key:
        return None
    transition_id = project_config.get("transitionId")
    try:
        return int(transition_id) if transition_id is not None else None
    except (TypeError, ValueError):
        return None


def _choose_transition(ctx: StudContext, key: str, project_key: str) -> int | None:
    """Ask which transition starts work on ``key`` and optionally remember it."""
    transitions = in_progress_transitions(ctx.jira.get_transitions(key))
    if not transitions:
        ctx.output.print_warning(f"No 'In Progress' transition available for {key}.")
        return None

    options = {f"{t.get('name', '')} (ID: {t['id']})": int(t["id"]) for t in transitions}
    selected = ctx.output.choice("Select the transition that starts work:", list(options))
    if selected is None:
        ctx.output.print_warning("No transition selected, skipping.")
        return None

    transition_id = options[selected]
    if ctx.confirm(f"Use this transition for all {project_key} items in this repository?", True):
        ctx.git.write_project_config({"projectKey": project_key, "transitionId": transition_id})
        ctx.logger.info("Saved transition", project=project_key, transition_id=transition_id)
    return transition_id


def transition_to_in_progress(ctx: StudContext, key: str) -> None:
    """Assign ``key`` to the current user and move it to "In Progress".

    Every failure is reported as a warning; starting work goes on regardless.
    """
    try:
        ctx.jira.assign_issue_to_current_user(key)
    except StudError as e:
        ctx.output.print_warning(f"Could not assign {key} to you: {e}")

    try:
        project_key = ctx.git.get_project_key_from_issue_key(key)
        transition_id = _cached_transition_id(ctx, project_key)
        if transition_id is None:
            transition_id = _choose_transition(ctx, key, project_key)
        else:
            ctx.logger.info("Using cached transition", transition_id=transition_id)
    except StudError as e:
        ctx.output.print_warning(f"Could not look up transitions: {e}")
        return

    if transition_id is None:
        return

    try:
        ctx.jira.transition_issue(key, transition_id)
        ctx.output.print_success(f"Moved {key} to In Progress.")
    except JiraError as e:
        ctx.output.print_warning(f"Could not transition {key}: {e}")


@items.command("start")
@click.argument("key")
@pass_context
def start_item(ctx: StudContext, key: str) -> None:
    """Start work on an item by creating its branch.

    The branch is named ``<prefix>/<KEY>-<title-slug>`` where the prefix
    follows the issue type (bug -> fix, task -> chore, otherwise feat).

    \b
    Examples:
        stud items start PROJ-123
    """
    key = key.upper()

    try:
        item = ctx.jira.get_issue(key)
    except StudError as e:
        ctx.logger.debug("Issue lookup failed", key=key, error=str(e))
        ctx.output.print_error(f'Could not find Jira issue with key "{key}".')
        raise click.Abort()

    if ctx.config.jira.transition_enabled:
        transition_to_in_progress(ctx, key)

    branch_name = branch_name_for_issue(item.key, item.title, item.issue_type)
    base_branch = ctx.base_branch
    ctx.logger.info("Generated branch name", branch=branch_name)

    try:
        ctx.output.print("Fetching latest changes...")
        ctx.git.fetch()
        ctx.output.print(f"Creating branch {branch_name}...")
        ctx.git.create_branch(branch_name, base_branch)
    except GitError as e:
        ctx.output.print_error(f"Failed to create branch: {e}")
        raise click.Abort()

    ctx.output.print_success(f"Switched to new branch {branch_name} (from {base_branch}).")


@items.command("search")
@click.argument("jql")
@pass_context
def search_items(ctx: StudContext, jql: str) -> None:
    """Search work items with a JQL query.

    \b
    Examples:
        stud items search "project = PROJ AND status = 'In Review'"
        stud -o json items search "assignee = currentUser()"
    """
    ctx.logger.info("Searching work items", jql=jql)

    try:
        work_items = ctx.jira.search_issues(jql)
    except StudError as e:
        ctx.output.print_error(f"Search failed: {e}")
        raise click.Abort()

    if not work_items:
        ctx.output.print_info(f"No work items match: {jql}")
        return

    ctx.output.print_data(
        [item.to_dict() for item in work_items],
        headers=["key", "status", "assignee", "title"],
        title=f"Search results ({len(work_items)})",
    )


def _resolve_item_key(ctx: StudContext, key: str | None) -> str:
    """Key given on the command line, else the current branch's, else asked for."""
    if not key:
        detected = ctx.git.get_jira_key_from_branch_name()
        if detected and ctx.confirm(f"Use {detected} from the current branch?", True):
            return detected
        key = ctx.output.ask("Jira issue key")

    if not key or not looks_like_jira_key(key):
        ctx.output.print_error(f'"{key or ""}" is not a valid Jira key.')
        raise click.Abort()
    return key.strip().upper()


@items.command("transition")
@click.argument("key", required=False)
@pass_context
def transition_item(ctx: StudContext, key: str | None) -> None:
    """Move a work item to another status.

    KEY defaults to the issue of the current branch.

    \b
    Examples:
        stud items transition
        stud items transition PROJ-123
    """
    key = _resolve_item_key(ctx, key)

    try:
        ctx.jira.get_issue(key)
    except StudError as e:
        ctx.logger.debug("Issue lookup failed", key=key, error=str(e))
        ctx.output.print_error(f'Could not find Jira issue with key "{key}".')
        raise click.Abort()

    try:
        transitions = ctx.jira.get_transitions(key)
    except StudError as e:
        ctx.output.print_error(f"Could not fetch transitions: {e}")
        raise click.Abort()

    if not transitions:
        ctx.output.print_warning(f"No transitions available for {key}.")
        return

    options = {
        f"{t.get('name', '')} -> {(t.get('to') or {}).get('name', '?')} (ID: {t['id']})": int(t["id"])
        for t in transitions
    }
    selected = ctx.output.choice(f"Select a transition for {key}:", list(options))
    if selected is None:
        ctx.output.print_info("No transition selected.")
        return

    try:
        ctx.jira.transition_issue(key, options[selected])
    except StudError as e:
        ctx.output.print_error(f"Transition failed: {e}")
        raise click.Abort()

    ctx.output.print_success(f"Transitioned {key}.")


def _select_takeover_branch(ctx: StudContext, local: list[str], remote: list[str]) -> str | None:
    labels = {f"{name} ({ctx.git.remote})": name for name in remote}
    labels.update({f"{name} (local)": name for name in local if name not in remote})

    if len(labels) == 1:
        name = next(iter(labels.values()))
        if name in local or ctx.confirm(f"Take over {name} from {ctx.git.remote}?", True):
            return name
        return None

    selected = ctx.output.choice("Several branches match. Which one?", list(labels))
    return labels.get(selected) if selected else None


def _sync_with_remote(ctx: StudContext, branch: str) -> None:
    """Pull remote commits into ``branch`` unless both sides have diverged."""
    git = ctx.git
    remote_branch = f"{git.remote}/{branch}"
    behind = git.get_commits_behind(branch, remote_branch)
    if behind == 0:
        return
    if git.get_commits_behind(remote_branch, branch) > 0:
        ctx.output.print_warning(f"{branch} and {remote_branch} have diverged. Reconcile them manually.")
        return
    ctx.output.print(f"Pulling {behind} commit(s) from {remote_branch}...")
    git.pull_rebase(branch)


@items.command("takeover")
@click.argument("key")
@pass_context
def takeover_item(ctx: StudContext, key: str) -> None:
    """Continue work someone else started on an item.

    Assigns the item to you and checks out its existing branch, pulling
    remote commits. Without a branch it offers to start one.

    \b
    Examples:
        stud items takeover PROJ-123
    """
    key = key.upper()
    git = ctx.git

    try:
        if git.get_porcelain_status().strip():
            ctx.output.print_error("Working directory is not clean. Commit or stash your changes first.")
            raise click.Abort()

        try:
            ctx.jira.get_issue(key)
        except StudError as e:
            ctx.logger.debug("Issue lookup failed", key=key, error=str(e))
            ctx.output.print_error(f'Could not find Jira issue with key "{key}".')
            raise click.Abort()

        try:
            ctx.jira.assign_issue_to_current_user(key)
        except StudError as e:
            ctx.output.print_warning(f"Could not assign {key} to you: {e}")

        git.fetch()
        local, remote = git.find_branches_for_key(key)
        if not local and not remote:
            ctx.output.print_info(f"No branch found for {key}.")
            if ctx.confirm("Start a new branch?", True):
                click.get_current_context().invoke(start_item, key=key)
            return

        branch = _select_takeover_branch(ctx, local, remote)
        if branch is None:
            ctx.output.print_info("Operation cancelled")
            return

        if branch == git.get_current_branch_name():
            ctx.output.print_note(f"Already on {branch}.")
        elif branch in local:
            git.switch_branch(branch)
        else:
            git.switch_to_remote_branch(branch)

        if branch in remote:
            _sync_with_remote(ctx, branch)

    except GitError as e:
        ctx.output.print_error(str(e))
        raise click.Abort()

    ctx.output.print_success(f"Took over {key} on branch {branch}.")
