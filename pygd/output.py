"""Terminal output for the gd command line."""

import json
from collections import Counter
from collections.abc import Sequence
from typing import Any, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .sync.changes import OP_STYLES, Change, Op, op_to_string
from .utils import format_size


class OutputFormatter:
    """Formats messages, tables and change lists with rich."""

    def __init__(
        self,
        json_output: bool = False,
        quiet: bool = False,
        console: Optional[Console] = None,
    ):
        """Initialize output formatter.

        Args:
            json_output: Emit machine-readable JSON instead of text
            quiet: Suppress informational messages
            console: Console to write to (default: stdout)
        """
        self.json_output = json_output
        self.quiet = quiet
        self.console = console or Console(highlight=False)
        self.err_console = Console(stderr=True, highlight=False)

    def print(self, message: str = "") -> None:
        if not self.json_output:
            self.console.print(message)

    def info(self, message: str) -> None:
        if not self.quiet and not self.json_output:
            self.console.print(message)

    def success(self, message: str) -> None:
        if not self.quiet and not self.json_output:
            self.console.print(f"[green]{message}[/green]")

    def warning(self, message: str) -> None:
        self.err_console.print(f"[yellow]Warning:[/yellow] {message}")

    def error(self, message: str) -> None:
        self.err_console.print(f"[red]Error:[/red] {message}")

    def output_json(self, data: Any) -> None:
        self.console.print_json(json.dumps(data, default=str))

    def format_size(self, size_bytes: int) -> str:
        return format_size(size_bytes)

    def output_table(
        self,
        rows: Sequence[Sequence[Any]],
        headers: Sequence[str],
        title: Optional[str] = None,
    ) -> None:
        """Print rows as a table (or as a list of objects in JSON mode)."""
        if self.json_output:
            self.output_json([dict(zip(headers, row)) for row in rows])
            return
        table = Table(title=title)
        for header in headers:
            table.add_column(header)
        for row in rows:
            table.add_row(*[str(cell) for cell in row])
        self.console.print(table)

    def print_summary(self, title: str, items: Sequence[tuple[str, Any]]) -> None:
        """Print a titled key/value summary."""
        if self.json_output:
            self.output_json({key: value for key, value in items})
            return
        table = Table(title=title, show_header=False)
        table.add_column("Key", style="bold")
        table.add_column("Value")
        for key, value in items:
            table.add_row(key, str(value))
        self.console.print(table)

    def print_changes(self, changes: Sequence[Change]) -> None:
        """Print one line per change, then a count per operation.

        Example output::

            +  docs/new.txt
            M  docs/report.pdf

            1 Addition, 1 Modification
        """
        ops = [(change, change.op()) for change in changes]
        ops = [(change, op) for change, op in ops if op != Op.NONE]

        if self.json_output:
            self.output_json([change.to_dict() for change, _ in ops])
            return

        if not ops:
            self.info("Everything is up-to-date.")
            return

        for change, op in ops:
            symbol, _ = op_to_string(op)
            style = OP_STYLES[op]
            self.console.print(f"[{style}]{symbol}[/{style}]  {escape(change.path)}")

        self.console.print("")
        self.console.print(summarize_ops(op for _, op in ops))


def summarize_ops(ops: Any) -> str:
    """Describe operation counts, e.g. "2 Additions, 1 Deletion"."""
    counts = Counter(ops)
    parts = []
    for op in (Op.DELETE, Op.ADD, Op.MODIFY):
        count = counts.get(op, 0)
        if count:
            word = op_to_string(op)[1]
            parts.append(f"{count} {word}{'s' if count != 1 else ''}")
    return ", ".join(parts)
