"""Shared Rich display functions for items and reports.

Provides the item preview table, the run summary and the bounded error
listing used by the clean and list commands.
"""

from collections.abc import Sequence
from pathlib import Path

from rich.markup import escape

from mrclean.models.item import CleanItem
from mrclean.models.report import CleanReport, PathError
from mrclean.utils.formatting import (
    console,
    create_items_table,
    err_console,
    format_item_row,
    format_size,
    print_success,
)
from mrclean.utils.progress import CategoryTracker

# Rows shown in the item preview before truncating
MAX_ITEMS_SHOWN = 20

# Errors listed before truncating
MAX_ERRORS_SHOWN = 10


def print_items_table(
    items: Sequence[CleanItem],
    root: Path | None = None,
    title: str = "Items to Clean",
    limit: int | None = MAX_ITEMS_SHOWN,
) -> None:
    """Print matched items as a table.

    Args:
        items: Items to show.
        root: When given, paths are shown relative to it.
        title: Table title.
        limit: Maximum number of rows; None shows all.
    """
    shown = items if limit is None else items[:limit]
    table = create_items_table(title)
    for item in shown:
        table.add_row(*format_item_row(item, root))
    console.print(table)

    hidden = len(items) - len(shown)
    if hidden > 0:
        console.print(f"[muted]... and {hidden} more[/]")

    total = sum(item.size for item in items)
    console.print(f"\n[bold_header]Total:[/] {len(items)} items, [size]{format_size(total)}[/]")


def print_errors(errors: Sequence[PathError], title: str, limit: int = MAX_ERRORS_SHOWN) -> None:
    """Print a bounded list of per-path errors.

    Args:
        errors: Errors to show.
        title: Heading printed above the list.
        limit: Maximum number of errors listed.
    """
    if not errors:
        return
    err_console.print(f"\n[warning]{title} ({len(errors)}):[/]")
    for error in errors[:limit]:
        err_console.print(f"  [error]✗[/] {escape(str(error))}")
    if len(errors) > limit:
        err_console.print(f"  [muted]... and {len(errors) - limit} more[/]")


def print_report(report: CleanReport) -> None:
    """Print the summary of a finished run.

    Processed items are reported first, then scan errors and deletion
    errors as separate bounded lists.

    Args:
        report: Final report of the run.
    """
    size = format_size(report.bytes_freed)
    if report.dry_run:
        console.print(
            f"\n[warning]Dry run:[/] would remove {report.items_deleted} items "
            f"({report.dirs_deleted} directories, {report.files_deleted} files), "
            f"freeing [size]{size}[/]"
        )
    elif report.items_deleted:
        print_success(
            f"Removed {report.items_deleted} items "
            f"({report.dirs_deleted} directories, {report.files_deleted} files), freed {size}"
        )
    else:
        console.print("\n[muted]Nothing was removed.[/]")

    console.print(
        f"[muted]Scanned {report.entries_scanned} entries in "
        f"{report.scan_duration.total_seconds():.2f}s, "
        f"total {report.total_duration.total_seconds():.2f}s[/]"
    )

    if report.has_errors:
        print_errors(report.scan_errors, "Scan errors")
        print_errors(report.errors, "Failed to delete")


def print_statistics(tracker: CategoryTracker) -> None:
    """Print the per-category breakdown, if anything was tracked."""
    breakdown = tracker.format_breakdown()
    if breakdown:
        console.print(f"\n[bold_header]By category:[/] {breakdown}")
