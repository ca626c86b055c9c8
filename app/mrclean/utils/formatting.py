"""Rich console formatting utilities.

Provides consistent formatting for CLI output using Rich.
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from mrclean.core.theme import get_theme

if TYPE_CHECKING:
    from pathlib import Path

    from mrclean.models.item import CleanItem

_SIZE_UNITS = ("B", "kB", "MB", "GB", "TB", "PB")


def _detect_color_system() -> str | None:
    """Detect the best color system for the current terminal.

    Returns "truecolor" for interactive terminals to enable full hex color support,
    None otherwise to let Rich auto-detect.
    """
    if sys.stdout.isatty():
        return "truecolor"
    return None


# Shared console instances (theme loaded once at import)
console = Console(theme=get_theme(), color_system=_detect_color_system())
err_console = Console(theme=get_theme(), stderr=True, color_system=_detect_color_system())


def format_size(size: int) -> str:
    """Format a byte count using decimal units.

    Args:
        size: Number of bytes.

    Returns:
        Human-readable size such as ``512 B`` or ``1.5 MB``.
    """
    if size < 1000:
        return f"{size} B"
    value = float(size)
    for unit in _SIZE_UNITS[1:]:
        value /= 1000
        if value < 1000 or unit == _SIZE_UNITS[-1]:
            return f"{value:.1f} {unit}"
    return f"{size} B"  # pragma: no cover


def create_items_table(title: str = "Items to Clean") -> Table:
    """Create a pre-configured table for displaying matched items.

    Args:
        title: Table title.

    Returns:
        Rich Table configured for item display.
    """
    table = Table(
        title=title,
        show_header=True,
        header_style="bold_header",
        border_style="border",
        row_styles=["", "on grey7"],
    )
    table.add_column("Kind", width=4, justify="center")
    table.add_column("Path", overflow="fold")
    table.add_column("Size", style="size", justify="right")
    table.add_column("Pattern", style="muted")
    table.add_column("Category", style="info")
    return table


def format_item_row(item: CleanItem, root: Path | None = None) -> tuple[str, str, str, str, str]:
    """Format an item as a table row with proper styling.

    Args:
        item: The item to format.
        root: When given, paths are shown relative to it.

    Returns:
        Tuple of (kind, path, size, pattern, category) with Rich markup.
    """
    kind = item.kind.value
    style = f"kind.{kind}"
    icon = {"directory": "D", "file": "F", "symlink": "L"}[kind]

    path = item.path
    if root is not None and path.is_relative_to(root):
        path = path.relative_to(root)

    return (
        f"[{style}]{icon}[/]",
        f"[{style}]{escape(str(path))}[/]",
        format_size(item.size),
        escape(item.pattern.pattern),
        item.pattern.category.label,
    )


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[info]{escape(message)}[/]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    err_console.print(f"[warning]Warning:[/] {escape(message)}")


def print_error(message: str) -> None:
    """Print an error message."""
    err_console.print(f"[error]Error:[/] {escape(message)}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[success]{escape(message)}[/]")
