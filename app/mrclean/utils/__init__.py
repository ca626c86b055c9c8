"""Utility modules for mrclean.

This module exports commonly used console and progress helpers.
"""

from mrclean.utils.formatting import (
    console,
    create_items_table,
    err_console,
    format_item_row,
    format_size,
    print_error,
    print_info,
    print_success,
    print_warning,
)
from mrclean.utils.progress import (
    CategoryTracker,
    CompactProgress,
    NoOpProgress,
    ProgressSink,
    TerminalProgress,
)

__all__ = [
    "CategoryTracker",
    "CompactProgress",
    "NoOpProgress",
    "ProgressSink",
    "TerminalProgress",
    "console",
    "create_items_table",
    "err_console",
    "format_item_row",
    "format_size",
    "print_error",
    "print_info",
    "print_success",
    "print_warning",
]
