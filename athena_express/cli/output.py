"""Output formatting utilities for CLI."""

import csv
import json
from io import StringIO
from typing import Any

from rich.console import Console
from rich.table import Table

console = Console()
console_err = Console(stderr=True)


def print_table(
    data: list[dict[str, Any]],
    title: str | None = None,
    columns: list[str] | None = None,
) -> None:
    """Print records as a Rich table.

    Records may omit keys (empty cells are dropped), so the columns are
    the union of all keys in first-seen order.

    Args:
        data: List of dictionaries to display
        title: Optional table title
        columns: Optional list of column names (defaults to all keys)
    """
    if not data:
        console.print("[yellow]No data to display[/yellow]")
        return

    if columns is None:
        columns = _collect_columns(data)

    table = Table(title=title, show_header=True, header_style="bold cyan")

    for col in columns:
        table.add_column(col, style="white", no_wrap=False)

    for row in data:
        table.add_row(*[_format_cell(row.get(col)) for col in columns])

    console.print(table)


def print_lines(lines: list[str]) -> None:
    """Print raw result lines unchanged."""
    for line in lines:
        console.print(line, markup=False, highlight=False)


def print_json(data: Any, indent: int = 2) -> None:
    """Print data as JSON.

    Args:
        data: Data to print as JSON
        indent: Number of spaces for indentation
    """
    console.print_json(json.dumps(data, indent=indent, default=str))


def print_csv(data: list[dict[str, Any]], columns: list[str] | None = None) -> None:
    """Print data as CSV.

    Args:
        data: List of dictionaries to display
        columns: Optional list of column names
    """
    if not data:
        return

    if columns is None:
        columns = _collect_columns(data)

    output = StringIO()
    writer = csv.DictWriter(output, fieldnames=columns)
    writer.writeheader()
    writer.writerows(data)

    console.print(output.getvalue(), end="", markup=False, highlight=False)


def print_dict(data: dict[str, Any], title: str | None = None) -> None:
    """Print dictionary as a formatted table.

    Args:
        data: Dictionary to display
        title: Optional table title
    """
    table = Table(title=title, show_header=False)
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Value", style="white")

    for key, value in data.items():
        table.add_row(key, str(value))

    console.print(table)


def print_success(message: str) -> None:
    console.print(f"[green]✓[/green] {message}")


def print_error(message: str) -> None:
    console_err.print(f"[red]✗[/red] {message}")


def print_warning(message: str) -> None:
    console.print(f"[yellow]⚠[/yellow] {message}")


def print_info(message: str) -> None:
    console.print(f"[blue]ℹ[/blue] {message}")


def _collect_columns(data: list[dict[str, Any]]) -> list[str]:
    columns: dict[str, None] = {}
    for row in data:
        columns.update(dict.fromkeys(row))
    return list(columns)


def _format_cell(value: Any) -> str:
    if value is None:
        return ""
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)
