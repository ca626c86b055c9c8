"""Scan, prune and clean pipeline.

A CleanPipeline drives one run at a time through a fixed sequence of
states::

    IDLE -> SCANNING -> PRUNING -> PREVIEWING -> REPORTING -> IDLE
                                \\-> DELETING --/

A run that is inspected and then abandoned may go from PRUNING back to
IDLE through :meth:`CleanPipeline.cancel`. Any other transition raises
PipelineStateError.

The module also provides the plain functions ``scan``, ``prune`` and
``clean`` for callers that do not need the state machine.
"""

import logging
import time
from collections.abc import Callable
from datetime import timedelta
from enum import Enum
from pathlib import Path
from types import TracebackType

from mrclean.core.config import Config, PatternSources, merge_cli_args
from mrclean.core.errors import MrCleanError
from mrclean.engine.cleaner import ParallelCleaner, clean, default_thread_count
from mrclean.engine.pruner import prune
from mrclean.engine.scanner import Scanner, ScanResult
from mrclean.models.item import CleanItem
from mrclean.models.report import CleanReport, ScanError
from mrclean.utils.progress import ProgressSink

logger = logging.getLogger(__name__)

__all__ = ["CleanPipeline", "PipelineStateError", "RunState", "clean", "prune", "scan"]


class PipelineStateError(MrCleanError):
    """Raised when a pipeline step is called out of order."""


class RunState(str, Enum):
    """Lifecycle state of a cleaning run."""

    IDLE = "idle"
    SCANNING = "scanning"
    PRUNING = "pruning"
    PREVIEWING = "previewing"
    DELETING = "deleting"
    REPORTING = "reporting"


_TRANSITIONS: dict[RunState, frozenset[RunState]] = {
    RunState.IDLE: frozenset({RunState.SCANNING}),
    RunState.SCANNING: frozenset({RunState.PRUNING}),
    RunState.PRUNING: frozenset({RunState.PREVIEWING, RunState.DELETING, RunState.IDLE}),
    RunState.PREVIEWING: frozenset({RunState.REPORTING}),
    RunState.DELETING: frozenset({RunState.REPORTING}),
    RunState.REPORTING: frozenset({RunState.IDLE}),
}


def _build_scanner(
    config: Config,
    sources: PatternSources | None = None,
    progress: ProgressSink | None = None,
    on_match: Callable[[CleanItem], None] | None = None,
) -> Scanner:
    sources = sources or merge_cli_args(config)
    return Scanner(
        sources.build_matcher(),
        max_depth=config.scan.max_depth,
        follow_symlinks=config.scan.follow_symlinks,
        progress=progress,
        on_match=on_match,
    )


def scan(root: str | Path, config: Config | None = None) -> tuple[list[CleanItem], list[ScanError]]:
    """Scan a tree with the patterns and limits of a configuration.

    Args:
        root: Directory to scan.
        config: Configuration to use (defaults when None).

    Returns:
        Tuple of (items, scan_errors).

    Raises:
        PatternError: If a configured pattern is malformed.
    """
    return _build_scanner(config or Config()).scan(root)


class CleanPipeline:
    """Runs the scan, prune and clean steps as one tracked run.

    One ParallelCleaner is kept for the lifetime of the pipeline, so its
    worker pool is shared by every run. Use the pipeline as a context
    manager, or call :meth:`close`, to shut the pool down.

    Args:
        config: Effective configuration.
        sources: Pattern sets to match with. Built from ``config`` when None.
        scan_progress: Sink for scan progress.
        on_match: Called with each match while the scan is running.

    Raises:
        PatternError: If any pattern is malformed.
    """

    def __init__(
        self,
        config: Config,
        *,
        sources: PatternSources | None = None,
        scan_progress: ProgressSink | None = None,
        on_match: Callable[[CleanItem], None] | None = None,
    ) -> None:
        self.config = config
        self._scanner = _build_scanner(config, sources, scan_progress, on_match)
        self._cleaner = ParallelCleaner(
            thread_count=config.cleaner.thread_count,
            chunk_size=config.cleaner.chunk_size,
        )
        self._state = RunState.IDLE
        self._scan_result: ScanResult | None = None
        self._scan_duration = timedelta()
        self._items: list[CleanItem] = []
        self._report: CleanReport | None = None

    @property
    def state(self) -> RunState:
        """Current run state."""
        return self._state

    @property
    def items(self) -> list[CleanItem]:
        """Pruned items of the current run."""
        return list(self._items)

    def _transition(self, target: RunState) -> None:
        if target not in _TRANSITIONS[self._state]:
            msg = f"Cannot go from {self._state.value} to {target.value}"
            raise PipelineStateError(msg)
        logger.debug("Pipeline %s -> %s", self._state.value, target.value)
        self._state = target

    def _require_scan(self) -> ScanResult:
        if self._scan_result is None:
            msg = "No scan result available"
            raise PipelineStateError(msg)
        return self._scan_result

    def scan(self, root: str | Path) -> ScanResult:
        """Start a run by scanning ``root``."""
        self._transition(RunState.SCANNING)
        self._report = None
        start = time.monotonic()
        try:
            self._scan_result = self._scanner.scan_tree(root)
        except BaseException:
            self._state = RunState.IDLE
            raise
        self._scan_duration = timedelta(seconds=time.monotonic() - start)
        return self._scan_result

    def prune(self) -> list[CleanItem]:
        """Drop nested matches from the scan result."""
        self._transition(RunState.PRUNING)
        self._items = prune(self._require_scan().items)
        return self.items

    def cancel(self) -> None:
        """Abandon the run after pruning."""
        self._transition(RunState.IDLE)
        self._items = []
        self._scan_result = None

    def preview(self) -> CleanReport:
        """Count what would be deleted without touching the filesystem."""
        self._transition(RunState.PREVIEWING)
        report = self._cleaner.clean(self._items, dry_run=True)
        return self._finish_report(report)

    def delete(self, progress: ProgressSink | None = None) -> CleanReport:
        """Delete the pruned items."""
        self._transition(RunState.DELETING)
        settings = self.config.cleaner
        # The setter only rebuilds the pool when the count differs
        self._cleaner.thread_count = settings.thread_count or default_thread_count()
        self._cleaner.chunk_size = settings.chunk_size
        report = self._cleaner.clean(self._items, progress=progress)
        return self._finish_report(report)

    def close(self) -> None:
        """Shut down the deletion worker pool."""
        self._cleaner.close()

    def __enter__(self) -> "CleanPipeline":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _finish_report(self, report: CleanReport) -> CleanReport:
        self._transition(RunState.REPORTING)
        result = self._require_scan()
        report.scan_errors = list(result.errors)
        report.scan_duration = self._scan_duration
        report.entries_scanned = result.entries_scanned
        self._report = report
        return report

    def finish(self) -> CleanReport:
        """Close the run and return its report."""
        self._transition(RunState.IDLE)
        report = self._report
        if report is None:
            msg = "No report available"
            raise PipelineStateError(msg)
        self._items = []
        self._scan_result = None
        return report

    def run(self, root: str | Path, dry_run: bool = False, progress: ProgressSink | None = None) -> CleanReport:
        """Execute a complete run.

        Args:
            root: Directory to clean.
            dry_run: Preview instead of deleting.
            progress: Sink for deletion progress.

        Returns:
            The final CleanReport.
        """
        self.scan(root)
        self.prune()
        if dry_run:
            self.preview()
        else:
            self.delete(progress)
        return self.finish()
