"""Human-readable output for the wpsyncz CLI."""

from contextlib import contextmanager
from typing import Iterator, Optional

from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table


class OutputFormatter:
    """Prints progress, warnings and results.

    Informational output goes to stdout and is suppressed by ``quiet``;
    warnings and errors always go to stderr.
    """

    def __init__(
        self,
        quiet: bool = False,
        console: Optional[Console] = None,
        err_console: Optional[Console] = None,
    ):
        """Initialize output formatter.

        Args:
            quiet: Suppress informational messages
            console: Console for regular output
            err_console: Console for warnings and errors
        """
        self.quiet = quiet
        self.console = console or Console(highlight=False)
        self.err_console = err_console or Console(stderr=True, highlight=False)

    def info(self, message: str) -> None:
        """Print an informational message."""
        if not self.quiet:
            self.console.print(escape(message), soft_wrap=True)

    def success(self, message: str) -> None:
        """Print a success message."""
        if not self.quiet:
            self.console.print(f"[green]{escape(message)}[/green]", soft_wrap=True)

    def warning(self, message: str) -> None:
        """Print a warning message."""
        self.err_console.print(
            f"[yellow]Warning:[/yellow] {escape(message)}", soft_wrap=True
        )

    def error(self, message: str) -> None:
        """Print an error message."""
        self.err_console.print(f"[red]Error:[/red] {escape(message)}", soft_wrap=True)

    def print_summary(self, title: str, items: list[tuple[str, str]]) -> None:
        """Print a two-column summary table."""
        if self.quiet:
            return
        table = Table(title=title, show_header=False)
        table.add_column("Field", style="bold")
        table.add_column("Value")
        for label, value in items:
            table.add_row(escape(label), escape(value))
        self.console.print(table)

    @contextmanager
    def status(self, message: str) -> Iterator[None]:
        """Show a transient spinner while a blocking step runs."""
        if self.quiet or not self.console.is_terminal:
            self.info(message)
            yield
            return

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=self.console,
            transient=True,
        ) as progress:
            progress.add_task(escape(message), total=None)
            yield
