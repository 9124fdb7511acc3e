"""Output formatting utilities for CLI."""

import datetime as dt
import json
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional

import click


def format_success(message: str) -> str:
    """Format a success message with green color."""
    return click.style(f"✓ {message}", fg="green", bold=True)


def format_error(message: str) -> str:
    """Format an error message with red color."""
    return click.style(f"✗ {message}", fg="red", bold=True)


def format_warning(message: str) -> str:
    """Format a warning message with yellow color."""
    return click.style(f"⚠ {message}", fg="yellow", bold=True)


def format_info(message: str) -> str:
    """Format an info message with blue color."""
    return click.style(f"ℹ {message}", fg="blue")


def format_hours(value: Optional[Decimal]) -> str:
    """Format hours or amounts with two decimals.

    Example:
        >>> format_hours(Decimal("7.5"))
        '7.50'
    """
    if value is None:
        return "-"
    return f"{value:.2f}"


def format_table(headers: List[str], rows: List[List[str]], max_width: int = 40) -> str:
    """Format data as a table.

    Args:
        headers: List of column headers
        rows: List of data rows (each row is a list of cell values)
        max_width: Maximum width for each column

    Returns:
        Formatted table as a string
    """
    if not headers:
        return ""

    col_widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row[: len(col_widths)]):
            col_widths[i] = max(col_widths[i], len(str(cell)))
    col_widths = [min(w, max_width) for w in col_widths]

    separator = "+" + "+".join("-" * (w + 2) for w in col_widths) + "+"

    def render(cells: List[Any]) -> str:
        formatted = [
            f" {str(cell)[: col_widths[i]]:<{col_widths[i]}} "
            for i, cell in enumerate(cells[: len(col_widths)])
        ]
        return "|" + "|".join(formatted) + "|"

    table_lines = [separator, render(headers), separator]
    if rows:
        table_lines.extend(render(row) for row in rows)
        table_lines.append(separator)

    return "\n".join(table_lines)


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (dt.date, dt.datetime)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def format_json(data: Any) -> str:
    """Serialize a result dictionary; Decimals are written as strings.

    Example:
        >>> format_json({"hours": Decimal("7.50"), "date": dt.date(2024, 6, 3)})
        '{\\n  "hours": "7.50",\\n  "date": "2024-06-03"\\n}'
    """
    return json.dumps(data, default=_json_default, indent=2)
