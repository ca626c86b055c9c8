"""Parallel filesystem scanner.

Walks a directory tree from a root path, classifies every visited entry
with a PatternMatcher and returns the matched items together with the
recoverable errors met along the way.

Each directory is one unit of work for a bounded thread pool. A unit
lists its directory once, classifies the entries and returns a partial
result plus the subdirectories still to visit, which the coordinating
thread submits back to the pool. Partial results are combined with an
associative, commutative merge, so the outcome does not depend on the
worker count or on completion order.

Matched directories are not re-classified below their root. The walk
still descends into them to record the size of every regular file, and
after the walk each matched directory's size is the sum of the records
found beneath it.

Followed directory links are walked under their resolved target, so a
directory reached both directly and through a link yields one item.
"""

import logging
import os
from collections.abc import Callable, Iterable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from pathlib import Path, PurePath

from mrclean.models.item import CleanItem, ItemKind
from mrclean.models.report import ErrorKind, ScanError
from mrclean.patterns.matcher import PatternMatcher
from mrclean.utils.progress import NoOpProgress, ProgressSink

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 10

# (st_dev, st_ino) of a directory, used for symlink cycle detection
_DirId = tuple[int, int]


@dataclass(slots=True)
class ScanPartial:
    """Partial scan result built by one unit of work.

    Attributes:
        items: Matched items (directory sizes still provisional).
        file_sizes: (path, size) of regular files inside matched directories.
        errors: Recoverable errors.
        entries_scanned: Number of entries visited.
    """

    items: list[CleanItem] = field(default_factory=list)
    file_sizes: list[tuple[Path, int]] = field(default_factory=list)
    errors: list[ScanError] = field(default_factory=list)
    entries_scanned: int = 0

    def merge(self, other: "ScanPartial") -> "ScanPartial":
        """Combine two partial results into a new one.

        Lists are concatenated and counters summed, so merging is
        associative and, up to list order, commutative.
        """
        return ScanPartial.combine((self, other))

    @classmethod
    def combine(cls, partials: Iterable["ScanPartial"]) -> "ScanPartial":
        """Merge any number of partial results in a single pass."""
        result = cls()
        for partial in partials:
            result.items.extend(partial.items)
            result.file_sizes.extend(partial.file_sizes)
            result.errors.extend(partial.errors)
            result.entries_scanned += partial.entries_scanned
        return result


@dataclass(frozen=True, slots=True)
class ScanResult:
    """Final outcome of a scan.

    Attributes:
        items: Matched items with aggregated sizes, sorted by path.
        errors: Recoverable errors, sorted by path.
        entries_scanned: Number of entries visited.
    """

    items: list[CleanItem]
    errors: list[ScanError]
    entries_scanned: int = 0


@dataclass(frozen=True, slots=True)
class _DirTask:
    """A directory waiting to be listed."""

    path: Path
    rel: PurePath
    depth: int
    inside_match: bool = False
    ancestors: frozenset[_DirId] = frozenset()


class Scanner:
    """Identifies items to clean below a root directory.

    Args:
        matcher: Compiled pattern rules.
        max_depth: Deepest level visited for classification; children of
            the root are at depth 1. Size accumulation inside matched
            directories is not limited by this value.
        follow_symlinks: Descend into symlinked directories. Cycles are
            detected and reported instead of followed.
        workers: Size of the worker pool.
        progress: Sink notified once per listed directory.
        on_match: Callback invoked from the coordinating thread with each
            match as soon as its directory has been listed. Directory
            sizes are still 0 at that point.
    """

    def __init__(
        self,
        matcher: PatternMatcher,
        *,
        max_depth: int = DEFAULT_MAX_DEPTH,
        follow_symlinks: bool = False,
        workers: int | None = None,
        progress: ProgressSink | None = None,
        on_match: Callable[[CleanItem], None] | None = None,
    ) -> None:
        if max_depth < 0:
            msg = f"max_depth cannot be negative, got {max_depth}"
            raise ValueError(msg)
        if workers is not None and workers < 1:
            msg = f"workers must be at least 1, got {workers}"
            raise ValueError(msg)
        self._matcher = matcher
        self._max_depth = max_depth
        self._follow_symlinks = follow_symlinks
        self._workers = workers or min(32, (os.cpu_count() or 1) + 4)
        self._progress: ProgressSink = progress or NoOpProgress()
        self._on_match = on_match

    def scan(self, root: str | Path) -> tuple[list[CleanItem], list[ScanError]]:
        """Scan a tree and return matched items and scan errors.

        Args:
            root: Directory to scan. The root itself is never an item.

        Returns:
            Tuple of (items, scan_errors).
        """
        result = self.scan_tree(root)
        return result.items, result.errors

    def scan_tree(self, root: str | Path) -> ScanResult:
        """Scan a tree and return the full result including counters.

        Args:
            root: Directory to scan.

        Returns:
            ScanResult with items, errors and the entry count.
        """
        root_path = Path(root).resolve()
        logger.debug("Scanning %s (max_depth=%d, workers=%d)", root_path, self._max_depth, self._workers)

        ancestors: frozenset[_DirId] = frozenset()
        if self._follow_symlinks:
            try:
                st = root_path.stat()
                ancestors = frozenset({(st.st_dev, st.st_ino)})
            except OSError as e:
                return ScanResult(items=[], errors=[ScanError.from_os_error(root_path, e)])

        partials: list[ScanPartial] = []
        if self._max_depth > 0:
            root_task = _DirTask(path=root_path, rel=PurePath(), depth=0, ancestors=ancestors)
            partials = self._run(root_task)

        combined = ScanPartial.combine(partials)
        items = sorted(
            _aggregate_sizes(_unique_items(combined.items), combined.file_sizes),
            key=lambda i: i.path,
        )
        errors = sorted(set(combined.errors), key=lambda e: (str(e.path), e.kind.value))

        logger.info(
            "Scanned %d entries under %s: %d matched, %d errors",
            combined.entries_scanned,
            root_path,
            len(items),
            len(errors),
        )
        return ScanResult(items=items, errors=errors, entries_scanned=combined.entries_scanned)

    def _run(self, root_task: _DirTask) -> list[ScanPartial]:
        """Drive the worker pool until no directory is left to list."""
        partials: list[ScanPartial] = []
        entries = 0
        matched = 0

        with ThreadPoolExecutor(max_workers=self._workers, thread_name_prefix="mrclean-scan") as executor:
            pending: set[Future[tuple[ScanPartial, list[_DirTask]]]] = {
                executor.submit(self._scan_directory, root_task)
            }
            while pending:
                done, pending = wait(pending, return_when=FIRST_COMPLETED)
                for future in done:
                    partial, subtasks = future.result()
                    partials.append(partial)
                    for task in subtasks:
                        pending.add(executor.submit(self._scan_directory, task))
                    if self._on_match is not None:
                        for item in partial.items:
                            self._on_match(item)

                    entries += partial.entries_scanned
                    matched += len(partial.items)
                    self._progress.increment(1)
                    self._progress.set_message(f"{entries} entries scanned, {matched} matched")

        return partials

    def _scan_directory(self, task: _DirTask) -> tuple[ScanPartial, list[_DirTask]]:
        """List one directory and classify its entries."""
        partial = ScanPartial()
        subtasks: list[_DirTask] = []

        try:
            with os.scandir(task.path) as it:
                entries = list(it)
        except OSError as e:
            logger.debug("Cannot list %s: %s", task.path, e)
            partial.errors.append(ScanError.from_os_error(task.path, e))
            return partial, subtasks

        for entry in entries:
            partial.entries_scanned += 1
            try:
                if task.inside_match:
                    self._accumulate_entry(task, entry, partial, subtasks)
                else:
                    self._classify_entry(task, entry, partial, subtasks)
            except OSError as e:
                logger.debug("Cannot inspect %s: %s", entry.path, e)
                partial.errors.append(ScanError.from_os_error(Path(entry.path), e))

        return partial, subtasks

    def _accumulate_entry(
        self,
        task: _DirTask,
        entry: os.DirEntry[str],
        partial: ScanPartial,
        subtasks: list[_DirTask],
    ) -> None:
        """Record sizes below a matched directory without classifying."""
        path = task.path / entry.name
        if entry.is_dir(follow_symlinks=False):
            subtasks.append(
                _DirTask(path=path, rel=task.rel / entry.name, depth=task.depth + 1, inside_match=True)
            )
        elif entry.is_file(follow_symlinks=False):
            partial.file_sizes.append((path, entry.stat(follow_symlinks=False).st_size))

    def _classify_entry(
        self,
        task: _DirTask,
        entry: os.DirEntry[str],
        partial: ScanPartial,
        subtasks: list[_DirTask],
    ) -> None:
        """Classify one entry outside any matched directory."""
        path = task.path / entry.name
        rel = task.rel / entry.name
        depth = task.depth + 1

        if self._matcher.is_excluded(rel):
            return

        is_link = entry.is_symlink()
        link_to_dir = is_link and self._follow_symlinks and entry.is_dir(follow_symlinks=True)

        if is_link:
            kind = ItemKind.SYMLINK
            hint = ItemKind.DIRECTORY if link_to_dir else ItemKind.SYMLINK
        elif entry.is_dir(follow_symlinks=False):
            kind = hint = ItemKind.DIRECTORY
        else:
            kind = hint = ItemKind.FILE

        match = self._matcher.classify(rel, hint)
        if match is not None:
            if kind == ItemKind.DIRECTORY:
                partial.items.append(CleanItem(path=path, size=0, kind=kind, pattern=match))
                subtasks.append(_DirTask(path=path, rel=rel, depth=depth, inside_match=True))
            else:
                # Links are removed as links, so only the link entry's size counts
                size = entry.stat(follow_symlinks=False).st_size
                partial.items.append(CleanItem(path=path, size=size, kind=kind, pattern=match))
            return

        if depth >= self._max_depth:
            return

        if kind == ItemKind.DIRECTORY:
            ancestors = task.ancestors
            if self._follow_symlinks:
                st = entry.stat(follow_symlinks=False)
                ancestors = ancestors | {(st.st_dev, st.st_ino)}
            subtasks.append(_DirTask(path=path, rel=rel, depth=depth, ancestors=ancestors))
        elif link_to_dir:
            st = entry.stat(follow_symlinks=True)
            dir_id = (st.st_dev, st.st_ino)
            if dir_id in task.ancestors:
                logger.debug("Symlink cycle at %s", path)
                partial.errors.append(ScanError(path=path, kind=ErrorKind.SYMLINK_CYCLE))
                return
            subtasks.append(
                _DirTask(path=path.resolve(), rel=rel, depth=depth, ancestors=task.ancestors | {dir_id})
            )


def _unique_items(items: list[CleanItem]) -> list[CleanItem]:
    """Collapse items found more than once to the best-ranked match."""
    best: dict[Path, CleanItem] = {}
    for item in items:
        current = best.get(item.path)
        if current is None or item.pattern.sort_key < current.pattern.sort_key:
            best[item.path] = item
    return list(best.values())


def _aggregate_sizes(items: list[CleanItem], file_sizes: list[tuple[Path, int]]) -> list[CleanItem]:
    """Set each matched directory's size from the recorded file sizes.

    A file counts toward every matched directory that is a proper
    ancestor of it, comparing whole path segments. A file recorded more
    than once counts once.

    Args:
        items: Matched items with provisional directory sizes.
        file_sizes: (path, size) records gathered during the walk.

    Returns:
        Items with final sizes.
    """
    totals: dict[Path, int] = {item.path: 0 for item in items if item.kind == ItemKind.DIRECTORY}
    if not totals:
        return list(items)

    for path, size in dict(file_sizes).items():
        for parent in path.parents:
            if parent in totals:
                totals[parent] += size

    return [item.with_size(totals[item.path]) if item.kind == ItemKind.DIRECTORY else item for item in items]
