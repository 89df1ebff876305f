"""
Progress indicators and the end-of-run summary.
"""
from __future__ import annotations

from typing import Optional

from rich.console import Console
from rich.live import Live
from rich.markup import escape
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.spinner import Spinner as RichSpinner
from rich.table import Table
from rich.text import Text

from glance.orchestrator import DirectoryResult, RunReport


def make_console(stderr: bool = False) -> Console:
    return Console(stderr=stderr)


class Spinner:
    """Context manager showing a spinner while the tree is scanned."""

    def __init__(self, message: str = "Scanning...", console: Optional[Console] = None):
        self.message = message
        self.console = console or make_console()
        self.live: Optional[Live] = None

    def __enter__(self):
        spinner = RichSpinner("dots", text=self.message, style="cyan")
        self.live = Live(spinner, console=self.console, transient=True)
        self.live.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.live:
            self.live.stop()
        return False


class ProgressBar:
    """Directory progress; feed it from the orchestrator's progress callback."""

    def __init__(self, console: Optional[Console] = None, description: str = "Summarizing"):
        self.console = console or make_console()
        self.description = description
        self.progress: Optional[Progress] = None
        self._task = None

    def __enter__(self):
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=self.console,
            transient=True,
        )
        self.progress.__enter__()
        self._task = self.progress.add_task(self.description, total=None)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.progress:
            self.progress.__exit__(exc_type, exc_val, exc_tb)
        return False

    def __call__(self, processed: int, total: int, result: DirectoryResult) -> None:
        if self.progress is None:
            return
        self.progress.update(
            self._task,
            completed=processed,
            total=total,
            description=f"{self.description} {escape(result.directory.name or str(result.directory))}",
        )


def _relative(report: RunReport, result: DirectoryResult) -> str:
    try:
        rel = result.directory.relative_to(report.root)
    except ValueError:
        return str(result.directory)
    return rel.as_posix() if rel.parts else "."


def print_summary(report: RunReport, console: Optional[Console] = None) -> None:
    """Totals, then one line per failed directory."""
    console = console or make_console()
    console.print(
        f"Processed {report.total} directories: "
        f"[green]{report.succeeded} succeeded[/green], "
        f"[red]{report.failed} failed[/red] "
        f"({report.regenerated} regenerated)"
    )

    failures = report.failures()
    if not failures:
        return

    table = Table(title="Failures", show_lines=False)
    table.add_column("Directory", style="yellow")
    table.add_column("Attempts", justify="right")
    table.add_column("Error", style="red")
    for result in failures:
        table.add_row(
            Text(_relative(report, result)),
            str(result.attempts),
            Text(str(result.error)),
        )
    console.print(table)
