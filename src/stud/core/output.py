"""Console output for stud commands.

``OutputFormatter`` prints messages, structured data in the selected
``OutputFormat`` and rendered issue descriptions. Prompts read plain lines
from stdin so they work the same under a terminal and under test runners.
"""

import json
from enum import Enum
from typing import Any, Callable

import yaml
from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table

console = Console()
error_console = Console(stderr=True)

Data = list[dict[str, Any]] | dict[str, Any]


class OutputFormat(str, Enum):
    """Supported output formats."""

    TABLE = "table"
    JSON = "json"
    YAML = "yaml"
    RAW = "raw"


class OutputFormatter:
    """Prints command results and acts as the description sink.

    In quiet mode only errors and machine-readable data are printed.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.TABLE,
        color: bool | None = True,
        quiet: bool = False,
    ):
        self.format = format
        self.quiet = quiet
        self._console = Console(force_terminal=color, no_color=color is False, highlight=False)
        self._renderers: dict[OutputFormat, Callable[[Data, list[str] | None, str | None], None]] = {
            OutputFormat.TABLE: self._render_table,
            OutputFormat.JSON: self._render_json,
            OutputFormat.YAML: self._render_yaml,
            OutputFormat.RAW: self._render_raw,
        }

    @property
    def color(self) -> bool:
        """Whether styles reach the output. ``color=None`` leaves it to terminal detection."""
        return self._console.is_terminal and not self._console.no_color

    # Messages

    def _say(self, message: str, *, prefix: str = "", style: str | None = None) -> None:
        if self.quiet:
            return
        self._console.print(f"{prefix}{message}", style=style)

    def print(self, message: str, style: str | None = None) -> None:
        self._say(message, style=style)

    def print_error(self, message: str) -> None:
        """Errors go to stderr and are printed even in quiet mode."""
        error_console.print(f"[red]Error:[/red] {escape(message)}")

    def print_warning(self, message: str) -> None:
        self._say(escape(message), prefix="[yellow]Warning:[/yellow] ")

    def print_success(self, message: str) -> None:
        self._say(escape(message), prefix="[green]✓[/green] ")

    def print_info(self, message: str) -> None:
        self._say(escape(message), prefix="[blue]ℹ[/blue] ")

    def print_note(self, message: str) -> None:
        self._say(escape(message), prefix="[cyan]Note:[/cyan] ")

    # Description sink

    def section(self, title: str) -> None:
        """Heading underlined with dashes, preceded by a blank line."""
        if self.quiet:
            return
        self._console.print()
        self._console.print(escape(title), style="bold yellow")
        self._console.print("-" * len(title), style="yellow")

    def text(self, lines: list[str]) -> None:
        if self.quiet:
            return
        for line in lines:
            self._console.print(f" {escape(line)}" if line else "")
        self._console.print()

    def listing(self, items: list[str]) -> None:
        """Bulleted list; lines after the first line of an item are indented under it."""
        if self.quiet:
            return
        for item in items:
            first, *continuation = item.split("\n")
            self._console.print(f" * {escape(first)}")
            for line in continuation:
                self._console.print(f"   {escape(line)}")
        self._console.print()

    def definition_list(self, rows: list[tuple[str, str] | None]) -> None:
        """Borderless key/value table; a ``None`` row starts a new section."""
        if self.quiet:
            return
        table = Table(show_header=False, box=None, padding=(0, 1))
        table.add_column("Field", style="green")
        table.add_column("Value")
        for row in rows:
            if row is None:
                table.add_section()
            else:
                table.add_row(escape(str(row[0])), escape(str(row[1])))
        self._console.print(table)

    # Structured data

    def print_data(self, data: Data, headers: list[str] | None = None, title: str | None = None) -> None:
        """Print records in the configured format. ``headers`` and ``title`` only affect tables."""
        self._renderers[self.format](data, headers, title)

    def _render_json(self, data: Data, headers: list[str] | None, title: str | None) -> None:
        text = json.dumps(data, indent=2, default=str)
        if self.color:
            self._console.print(Syntax(text, "json", theme="monokai"))
        else:
            print(text)

    def _render_yaml(self, data: Data, headers: list[str] | None, title: str | None) -> None:
        text = yaml.safe_dump(data, default_flow_style=False, allow_unicode=True, sort_keys=False)
        if self.color:
            self._console.print(Syntax(text, "yaml", theme="monokai"))
        else:
            print(text, end="")

    def _render_raw(self, data: Data, headers: list[str] | None, title: str | None) -> None:
        if isinstance(data, dict):
            for key, value in data.items():
                print(f"{key}: {value}")
        else:
            for record in data:
                print("\t".join(str(value) for value in record.values()))

    def _render_table(self, data: Data, headers: list[str] | None, title: str | None) -> None:
        if isinstance(data, dict):
            table = Table(title=title, header_style="bold cyan")
            table.add_column("Field", style="dim")
            table.add_column("Value")
            for key, value in data.items():
                table.add_row(escape(str(key)), escape(str(value)))
            self._console.print(table)
            return

        if not data:
            self._console.print("[dim]No data to display[/dim]")
            return

        columns = headers or list(data[0])
        table = Table(title=title, header_style="bold cyan")
        for column in columns:
            table.add_column(column)
        for record in data:
            table.add_row(*(escape(str(record.get(column, ""))) for column in columns))
        self._console.print(table)

    # Prompts

    def _read_line(self) -> str | None:
        try:
            return input().strip()
        except (EOFError, KeyboardInterrupt):
            return None

    def confirm(self, message: str, default: bool = False) -> bool:
        """Yes/no question. Quiet mode answers with ``default``; closed stdin answers no."""
        if self.quiet:
            return default
        hint = "[Y/n]" if default else "[y/N]"
        self._console.print(f"{escape(message)} {escape(hint)}", end=" ")
        response = self._read_line()
        if response is None:
            return False
        if not response:
            return default
        return response.lower() in ("y", "yes")

    def ask(self, message: str, default: str | None = None) -> str | None:
        """Free-text answer, ``default`` on empty input."""
        if self.quiet:
            return default
        hint = f" [{default}]" if default else ""
        self._console.print(f"{escape(message)}{escape(hint)}", end=" ")
        return self._read_line() or default

    def choice(self, message: str, options: list[str]) -> str | None:
        """Pick one of ``options`` by number.

        Empty input takes the first option, as does quiet mode without asking.
        """
        if not options:
            return None
        if self.quiet:
            return options[0]
        self._console.print(escape(message))
        for number, option in enumerate(options, start=1):
            self._console.print(f"  [cyan]{number}[/cyan]) {escape(option)}")
        self._console.print("Choice [1]", end=" ")

        response = self._read_line()
        if response is None:
            return None
        if not response:
            return options[0]
        if response.isdigit() and 1 <= int(response) <= len(options):
            return options[int(response) - 1]
        return None
