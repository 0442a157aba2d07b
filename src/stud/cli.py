"""Command line entry point: the ``stud`` group and its global options."""

import sys
from typing import NoReturn

import click
from rich.console import Console
from rich.markup import escape

from stud import __version__
from stud.config import load_config
from stud.core.context import StudContext
from stud.core.exceptions import ConfigError, StudError
from stud.core.output import OutputFormat

CONTEXT_SETTINGS = {
    "help_option_names": ["-h", "--help"],
    "max_content_width": 120,
}

EXIT_ERROR = 1
EXIT_INTERRUPTED = 130


def _fail(message: str, code: int = EXIT_ERROR) -> NoReturn:
    Console(stderr=True).print(message)
    sys.exit(code)


@click.group(context_settings=CONTEXT_SETTINGS)
@click.option(
    "-o",
    "--output",
    "output_format",
    type=click.Choice([f.value for f in OutputFormat], case_sensitive=False),
    help="Output format (defaults to global.output_format)",
)
@click.option("-v", "--verbose", count=True, help="Increase verbosity (-v for info, -vv for debug)")
@click.option("-q", "--quiet", is_flag=True, help="Suppress non-essential output")
@click.option("--no-color", is_flag=True, help="Disable colored output")
@click.option(
    "-c",
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False),
    metavar="FILE",
    envvar="STUD_CONFIG",
    help="Path to config file",
)
@click.version_option(__version__, "--version", prog_name="stud", message="%(prog)s version %(version)s")
@click.pass_context
def cli(
    ctx: click.Context,
    output_format: str | None,
    verbose: int,
    quiet: bool,
    no_color: bool,
    config_file: str | None,
) -> None:
    """stud - branch-per-ticket workflow for git, Jira and GitHub/GitLab.

    \b
    Examples:
        stud items list
        stud items show PROJ-123
        stud items start PROJ-123
        stud commit
        stud flatten
        stud please
        stud submit

    \b
    Configuration:
        ~/.config/stud/config.yaml    User configuration
        ./stud.yaml                   Project configuration
        STUD_*, JIRA_*, GITHUB_TOKEN  Environment variables
    """
    try:
        config = load_config(config_file)
    except ConfigError as e:
        _fail(f"[red]Configuration error:[/red] {escape(str(e))}")

    ctx.obj = StudContext(
        config=config,
        output_format=OutputFormat(output_format.lower()) if output_format else None,
        verbose=verbose,
        quiet=quiet,
        color=not no_color,
    )


def register_commands() -> None:
    """Attach every command group to ``cli``."""
    from stud.commands.branches import branches
    from stud.commands.commit import commit
    from stud.commands.config import config_group
    from stud.commands.flatten import flatten
    from stud.commands.items import items
    from stud.commands.please import please
    from stud.commands.pr import pr
    from stud.commands.projects import projects
    from stud.commands.release import release
    from stud.commands.status import status
    from stud.commands.submit import submit

    for command in (items, projects, branches, commit, flatten, please, submit, pr, status, release, config_group):
        cli.add_command(command)


register_commands()


def main() -> None:
    """Console script entry point."""
    try:
        cli()
    except StudError as e:
        _fail(f"[red]Error:[/red] {escape(str(e))}")
    except KeyboardInterrupt:
        _fail("\n[yellow]Interrupted[/yellow]", EXIT_INTERRUPTED)


if __name__ == "__main__":
    main()
