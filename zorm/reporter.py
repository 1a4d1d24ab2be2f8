from __future__ import annotations

from typing import Any, Dict, List, Optional

from rich import box
from rich.console import Console
from rich.table import Table

from zorm.config import Settings
from zorm.domain.record import Record


def format_cell(value: Any) -> str:
    """Render one result cell; records show as ``table:id``."""
    if value is None:
        return "[dim]NULL[/dim]"
    if isinstance(value, Record):
        return repr(value)
    return str(value)


def print_settings(settings: Settings, console: Optional[Console] = None) -> None:
    """Render the effective configuration as a two-column table."""
    console = console or Console()
    table = Table(title="zorm configuration", box=box.ROUNDED, show_header=True)
    table.add_column("Setting", style="cyan", no_wrap=True)
    table.add_column("Value", style="green")
    for name, value in settings.model_dump().items():
        table.add_row(name, str(value))
    console.print(table)


def print_query_result(
    sql: str,
    result: Dict[str, List[Any]],
    console: Optional[Console] = None,
) -> None:
    """
    Render the column arrays returned by ``SelectQuery.execute()`` as a rich table.

    Each key becomes a column; all arrays have one cell per row.
    """
    console = console or Console()

    if not result:
        console.print("[yellow]No columns to display.[/yellow]")
        return

    labels = list(result.keys())
    row_count = len(result[labels[0]])

    table = Table(
        title=f"[dim]{sql}[/dim]",
        box=box.ROUNDED,
        show_header=True,
        header_style="bold cyan",
    )
    for label in labels:
        table.add_column(label, overflow="fold")
    for row in range(row_count):
        table.add_row(*(format_cell(result[label][row]) for label in labels))

    console.print(table)
    console.print(f"[dim]{row_count} row(s)[/dim]")


__all__ = ["format_cell", "print_settings", "print_query_result"]
