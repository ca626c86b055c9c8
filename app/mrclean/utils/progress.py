"""Progress reporting for long-running scans and cleans.

The engine depends only on the ProgressSink protocol. Interchangeable
implementations are provided: NoOpProgress for quiet runs and tests,
TerminalProgress (a Rich progress bar) and CompactProgress (a Rich
spinner line with a per-category breakdown).
"""

import threading
from typing import Protocol, runtime_checkable

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)

from mrclean.models.item import CleanItem, PatternCategory
from mrclean.utils.formatting import err_console, format_size


@runtime_checkable
class ProgressSink(Protocol):
    """Receiver of progress updates.

    Implementations must be safe to call from worker threads.
    """

    def increment(self, n: int = 1) -> None:
        """Advance progress by ``n`` completed units."""
        ...

    def set_message(self, text: str) -> None:
        """Replace the status message."""
        ...

    def finish(self) -> None:
        """Stop reporting and release the display."""
        ...


class NoOpProgress:
    """Progress sink that does nothing."""

    def increment(self, n: int = 1) -> None:
        pass

    def set_message(self, text: str) -> None:
        pass

    def finish(self) -> None:
        pass


class CategoryTracker:
    """Thread-safe per-category item counts and byte totals."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counts: dict[PatternCategory, int] = {}
        self._sizes: dict[PatternCategory, int] = {}

    def add_item(self, category: PatternCategory, size: int) -> None:
        """Count one item of ``size`` bytes in ``category``."""
        with self._lock:
            self._counts[category] = self._counts.get(category, 0) + 1
            self._sizes[category] = self._sizes.get(category, 0) + size

    def track(self, item: CleanItem) -> None:
        """Count a matched item under its pattern's category."""
        self.add_item(item.pattern.category, item.size)

    def get_count(self, category: PatternCategory) -> int:
        """Get the item count for a category."""
        with self._lock:
            return self._counts.get(category, 0)

    def get_size(self, category: PatternCategory) -> int:
        """Get the byte total for a category."""
        with self._lock:
            return self._sizes.get(category, 0)

    @property
    def total_count(self) -> int:
        """Item count across all categories."""
        with self._lock:
            return sum(self._counts.values())

    @property
    def total_size(self) -> int:
        """Byte total across all categories."""
        with self._lock:
            return sum(self._sizes.values())

    def format_breakdown(self) -> str:
        """Format non-empty categories as Rich markup.

        Returns:
            A single line such as ``Dependencies: 3 (1.2 MB)  Cache: 1 (4.1 kB)``,
            or an empty string when nothing was tracked.
        """
        parts: list[str] = []
        for category in PatternCategory:
            count = self.get_count(category)
            if count:
                size = format_size(self.get_size(category))
                parts.append(f"[info]{category.label}[/]: {count} ([success]{size}[/])")
        return "  ".join(parts)


class TerminalProgress:
    """Rich progress bar for a known number of items.

    Args:
        total: Number of items expected.
        description: Text shown before the bar.
        console: Console to render on (stderr by default).
    """

    def __init__(self, total: int, description: str = "Cleaning", console: Console | None = None) -> None:
        self._progress = Progress(
            SpinnerColumn(style="success"),
            TextColumn("{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            TextColumn("[muted]{task.fields[message]}[/]"),
            console=console or err_console,
            transient=True,
        )
        self._task = self._progress.add_task(description, total=total, message="")
        self._progress.start()

    def increment(self, n: int = 1) -> None:
        self._progress.advance(self._task, n)

    def set_message(self, text: str) -> None:
        self._progress.update(self._task, message=text)

    def finish(self) -> None:
        self._progress.stop()


class CompactProgress:
    """Single spinner line with a per-category breakdown.

    Used while scanning, when the total is unknown. The message is
    refreshed with the tracker's breakdown whenever it changes.

    Args:
        tracker: Category tracker fed by the scanner.
        description: Leading text of the status line.
        console: Console to render on (stderr by default).
    """

    def __init__(
        self,
        tracker: CategoryTracker | None = None,
        description: str = "Scanning",
        console: Console | None = None,
    ) -> None:
        self.tracker = tracker or CategoryTracker()
        self._description = description
        self._message = ""
        self._progress = Progress(
            SpinnerColumn(style="info"),
            TextColumn("{task.description}"),
            console=console or err_console,
            transient=True,
        )
        self._task = self._progress.add_task(self._render(), total=None)
        self._progress.start()

    def _render(self) -> str:
        line = f"[info]{self._description}[/]  {self._message}"
        breakdown = self.tracker.format_breakdown()
        if breakdown:
            line = f"{line}\n  {breakdown}"
        return line

    def increment(self, n: int = 1) -> None:
        self._progress.update(self._task, advance=n, description=self._render())

    def set_message(self, text: str) -> None:
        self._message = text
        self._progress.update(self._task, description=self._render())

    def finish(self) -> None:
        self._progress.stop()
