"""Parallel deletion of pruned items.

The cleaner receives an already pruned list, so no two items overlap
and workers never race on the same subtree. Items are sorted by size
(largest first) so big directories start early, split into batches of
at least ``chunk_size`` items and dispatched to a reusable thread pool.

A failed deletion is recorded against its path and never stops the
other workers. The only shared mutable state is the Statistics
object, whose counters and error map each have their own short lock.
"""

import logging
import os
import shutil
import stat
import threading
import time
from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from pathlib import Path
from types import TracebackType

from mrclean.models.item import CleanItem, ItemKind
from mrclean.models.report import CleanError, CleanReport
from mrclean.utils.progress import NoOpProgress, ProgressSink

logger = logging.getLogger(__name__)


def default_thread_count() -> int:
    """Number of worker threads used when none is configured."""
    return os.cpu_count() or 4


class Statistics:
    """Thread-safe counters shared by the deletion workers.

    Each counter and the error map is guarded by its own lock, held only
    for a single update.
    """

    def __init__(self) -> None:
        self._items_lock = threading.Lock()
        self._bytes_lock = threading.Lock()
        self._errors_lock = threading.Lock()
        self._items_deleted = 0
        self._dirs_deleted = 0
        self._bytes_freed = 0
        self._errors: dict[Path, CleanError] = {}

    def record_deleted(self, item: CleanItem) -> None:
        """Count a successful deletion."""
        with self._items_lock:
            self._items_deleted += 1
            if item.is_directory:
                self._dirs_deleted += 1
        with self._bytes_lock:
            self._bytes_freed += item.size

    def record_error(self, error: CleanError) -> None:
        """Store the error for a path, replacing any earlier one."""
        with self._errors_lock:
            self._errors[error.path] = error

    @property
    def items_deleted(self) -> int:
        with self._items_lock:
            return self._items_deleted

    @property
    def dirs_deleted(self) -> int:
        with self._items_lock:
            return self._dirs_deleted

    @property
    def bytes_freed(self) -> int:
        with self._bytes_lock:
            return self._bytes_freed

    @property
    def errors(self) -> list[CleanError]:
        """Errors sorted by path."""
        with self._errors_lock:
            return [self._errors[path] for path in sorted(self._errors)]


def remove_symlink(path: Path) -> None:
    """Remove a symbolic link without touching its target.

    On Windows a link to a directory is a directory entry and has to be
    removed with rmdir; everywhere else unlink removes any link.

    Args:
        path: Path of the link.

    Raises:
        OSError: If the link cannot be removed.
    """
    if os.name == "nt":
        attributes = getattr(os.lstat(path), "st_file_attributes", 0)
        if attributes & getattr(stat, "FILE_ATTRIBUTE_DIRECTORY", 0x10):
            os.rmdir(path)
            return
    os.unlink(path)


def delete_item(item: CleanItem) -> None:
    """Delete one item according to its kind.

    Raises:
        OSError: If the deletion fails.
    """
    if item.kind == ItemKind.DIRECTORY:
        shutil.rmtree(item.path)
    elif item.kind == ItemKind.SYMLINK:
        remove_symlink(item.path)
    else:
        os.remove(item.path)


def _batches(items: Sequence[CleanItem], chunk_size: int) -> list[Sequence[CleanItem]]:
    return [items[i : i + chunk_size] for i in range(0, len(items), chunk_size)]


class ParallelCleaner:
    """Deletes items concurrently on a reusable thread pool.

    The pool is created on first use and kept across calls to
    :meth:`clean`. It is rebuilt only when the thread count changes.
    Use the cleaner as a context manager, or call :meth:`close`, to shut
    the pool down.

    Args:
        thread_count: Worker threads; None uses the CPU count.
        chunk_size: Minimum number of items per dispatched batch.
    """

    def __init__(self, thread_count: int | None = None, chunk_size: int = 1) -> None:
        if chunk_size < 1:
            msg = f"chunk_size must be at least 1, got {chunk_size}"
            raise ValueError(msg)
        self._thread_count = self._check_thread_count(thread_count or default_thread_count())
        self.chunk_size = chunk_size
        self._executor: ThreadPoolExecutor | None = None
        self._lock = threading.Lock()

    @staticmethod
    def _check_thread_count(count: int) -> int:
        if count < 1:
            msg = f"thread_count must be at least 1, got {count}"
            raise ValueError(msg)
        return count

    @property
    def thread_count(self) -> int:
        """Number of worker threads."""
        return self._thread_count

    @thread_count.setter
    def thread_count(self, count: int) -> None:
        count = self._check_thread_count(count)
        with self._lock:
            if count == self._thread_count:
                return
            self._thread_count = count
            if self._executor is not None:
                logger.debug("Rebuilding cleaner pool with %d threads", count)
                self._executor.shutdown(wait=True)
                self._executor = None

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self._thread_count,
                    thread_name_prefix="mrclean-clean",
                )
            return self._executor

    def close(self) -> None:
        """Shut down the worker pool."""
        with self._lock:
            if self._executor is not None:
                self._executor.shutdown(wait=True)
                self._executor = None

    def __enter__(self) -> "ParallelCleaner":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def clean(
        self,
        items: Iterable[CleanItem],
        dry_run: bool = False,
        progress: ProgressSink | None = None,
    ) -> CleanReport:
        """Delete (or preview deleting) the given items.

        Args:
            items: Pruned items; no item may lie inside another.
            dry_run: Only count what would be deleted.
            progress: Sink advanced once per processed item.

        Returns:
            CleanReport with counters and per-path errors. Scan fields
            are left for the caller to fill in.
        """
        sink = progress or NoOpProgress()
        item_list = tuple(items)

        if dry_run:
            return self._preview(item_list, sink)

        ordered = tuple(sorted(item_list, key=lambda item: item.size, reverse=True))
        stats = Statistics()
        start = time.monotonic()

        if ordered:
            executor = self._get_executor()
            futures = [
                executor.submit(self._delete_batch, batch, stats, sink)
                for batch in _batches(ordered, self.chunk_size)
            ]
            for future in futures:
                future.result()

        elapsed = timedelta(seconds=time.monotonic() - start)
        items_deleted = stats.items_deleted
        dirs_deleted = stats.dirs_deleted
        report = CleanReport(
            items_deleted=items_deleted,
            bytes_freed=stats.bytes_freed,
            errors=stats.errors,
            duration=elapsed,
            dry_run=False,
            dirs_deleted=dirs_deleted,
            files_deleted=items_deleted - dirs_deleted,
        )
        logger.info(
            "Deleted %d of %d items (%d bytes) with %d errors",
            report.items_deleted,
            len(ordered),
            report.bytes_freed,
            len(report.errors),
        )
        return report

    def _preview(self, items: tuple[CleanItem, ...], sink: ProgressSink) -> CleanReport:
        dirs = sum(1 for item in items if item.is_directory)
        for item in items:
            sink.increment(1)
            sink.set_message(str(item.path.name))
        logger.info("Dry run: %d items would be deleted", len(items))
        return CleanReport(
            items_deleted=len(items),
            bytes_freed=sum(item.size for item in items),
            dry_run=True,
            dirs_deleted=dirs,
            files_deleted=len(items) - dirs,
        )

    def _delete_batch(self, batch: Sequence[CleanItem], stats: Statistics, sink: ProgressSink) -> None:
        for item in batch:
            try:
                delete_item(item)
            except FileNotFoundError as e:
                if os.path.lexists(item.path):
                    stats.record_error(CleanError.from_os_error(item.path, e))
                else:
                    logger.debug("Already gone: %s", item.path)
            except OSError as e:
                logger.warning("Failed to delete %s: %s", item.path, e)
                stats.record_error(CleanError.from_os_error(item.path, e))
            else:
                stats.record_deleted(item)
            sink.increment(1)
            sink.set_message(str(item.path.name))


def clean(
    items: Iterable[CleanItem],
    dry_run: bool = False,
    progress: ProgressSink | None = None,
    *,
    thread_count: int | None = None,
    chunk_size: int = 1,
) -> CleanReport:
    """Delete items with a one-off ParallelCleaner.

    Args:
        items: Pruned items.
        dry_run: Only count what would be deleted.
        progress: Optional progress sink.
        thread_count: Worker threads; None uses the CPU count.
        chunk_size: Minimum items per batch.

    Returns:
        CleanReport for the run.
    """
    with ParallelCleaner(thread_count=thread_count, chunk_size=chunk_size) as cleaner:
        return cleaner.clean(items, dry_run=dry_run, progress=progress)
