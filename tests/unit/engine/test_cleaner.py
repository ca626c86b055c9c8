"""Unit tests for ParallelCleaner.

Tests deletion of directories, files and symlinks, dry-run mode,
per-item error isolation, pool reuse and thread-count independence.
"""

import os
import shutil
from collections.abc import Callable
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from mrclean.engine.cleaner import ParallelCleaner, Statistics, clean, remove_symlink
from mrclean.models.item import CleanItem, ItemKind
from mrclean.models.report import CleanError, ErrorKind

ItemFactory = Callable[..., CleanItem]


class TestDeletion:
    """Tests for live deletion."""

    def test_delete_directory(self, tmp_path: Path, item_factory: ItemFactory) -> None:
        """Directories are removed recursively."""
        target = tmp_path / "node_modules"
        (target / "pkg").mkdir(parents=True)
        (target / "pkg" / "index.js").write_bytes(b"x" * 10)

        report = clean([item_factory(target, size=10)], thread_count=2)

        assert not target.exists()
        assert report.items_deleted == 1
        assert report.bytes_freed == 10
        assert report.dirs_deleted == 1
        assert report.files_deleted == 0
        assert report.errors == []
        assert report.dry_run is False

    def test_delete_file(self, tmp_path: Path, item_factory: ItemFactory) -> None:
        """Files are removed."""
        target = tmp_path / "app.log"
        target.write_bytes(b"abc")

        report = clean([item_factory(target, size=3, kind=ItemKind.FILE, pattern="*.log")])

        assert not target.exists()
        assert report.files_deleted == 1

    def test_delete_symlink_keeps_target(self, tmp_path: Path, item_factory: ItemFactory) -> None:
        """Only the link is removed, never the target."""
        real = tmp_path / "real"
        real.mkdir()
        (real / "keep.txt").write_text("keep")
        link = tmp_path / "link"
        link.symlink_to(real, target_is_directory=True)

        report = clean([item_factory(link, kind=ItemKind.SYMLINK)])

        assert not link.is_symlink()
        assert (real / "keep.txt").exists()
        assert report.items_deleted == 1

    def test_failure_does_not_stop_others(self, tmp_path: Path, item_factory: ItemFactory) -> None:
        """A failing item is recorded and the rest are still deleted."""
        good = tmp_path / "dist"
        good.mkdir()
        bad = tmp_path / "build"
        bad.mkdir()

        real_rmtree = shutil.rmtree

        def flaky_rmtree(path: Path) -> None:
            if Path(path) == bad:
                raise PermissionError(13, "Permission denied", str(path))
            real_rmtree(path)

        with patch("mrclean.engine.cleaner.shutil.rmtree", side_effect=flaky_rmtree):
            report = clean([item_factory(good, size=1), item_factory(bad, size=2)], thread_count=2)

        assert not good.exists()
        assert bad.exists()
        assert report.items_deleted == 1
        assert report.bytes_freed == 1
        assert len(report.errors) == 1
        assert report.errors[0].path == bad
        assert report.errors[0].kind == ErrorKind.PERMISSION_DENIED

    def test_vanished_item_is_neither_deleted_nor_failed(self, tmp_path: Path, item_factory: ItemFactory) -> None:
        """A path that no longer exists is skipped silently."""
        report = clean([item_factory(tmp_path / "gone", size=5)])

        assert report.items_deleted == 0
        assert report.bytes_freed == 0
        assert report.errors == []

    def test_second_run_is_noop(self, tmp_path: Path, item_factory: ItemFactory) -> None:
        """Cleaning the same items twice reports nothing the second time."""
        target = tmp_path / "dist"
        target.mkdir()
        (target / "x").write_bytes(b"12345")
        items = [item_factory(target, size=5)]

        first = clean(items)
        second = clean(items)

        assert (first.items_deleted, first.bytes_freed) == (1, 5)
        assert (second.items_deleted, second.bytes_freed, second.errors) == (0, 0, [])

    def test_progress_incremented_per_item(self, tmp_path: Path, item_factory: ItemFactory) -> None:
        """The progress sink is advanced once per processed item."""
        items = []
        for name in ("a", "b", "c"):
            (tmp_path / name).mkdir()
            items.append(item_factory(tmp_path / name))
        progress = MagicMock()

        clean(items, progress=progress)

        assert sum(call.args[0] for call in progress.increment.call_args_list) == 3


class TestDryRun:
    """Tests for dry-run previews."""

    def test_dry_run_touches_nothing(
        self,
        tmp_path: Path,
        item_factory: ItemFactory,
        snapshot: Callable[[Path], dict[str, bytes | None]],
    ) -> None:
        """A dry run leaves the tree byte-identical."""
        (tmp_path / "dist").mkdir()
        (tmp_path / "dist" / "a.js").write_bytes(b"aaaa")
        (tmp_path / "x.log").write_bytes(b"bb")
        before = snapshot(tmp_path)

        report = clean(
            [
                item_factory(tmp_path / "dist", size=4),
                item_factory(tmp_path / "x.log", size=2, kind=ItemKind.FILE),
            ],
            dry_run=True,
        )

        assert snapshot(tmp_path) == before
        assert report.dry_run is True
        assert report.items_deleted == 2
        assert report.bytes_freed == 6
        assert report.dirs_deleted == 1
        assert report.files_deleted == 1

    def test_dry_run_matches_live_counts(self, tmp_path: Path, item_factory: ItemFactory) -> None:
        """A dry run predicts the counts of a clean live run."""
        items = []
        for i in range(5):
            target = tmp_path / f"d{i}"
            target.mkdir()
            (target / "f").write_bytes(b"x" * i)
            items.append(item_factory(target, size=i))

        preview = clean(items, dry_run=True)
        live = clean(items)

        assert (preview.items_deleted, preview.bytes_freed) == (live.items_deleted, live.bytes_freed)

    def test_dry_run_progress_per_item(self, tmp_path: Path, item_factory: ItemFactory) -> None:
        """A dry run advances the sink once for every item, as a live run does."""
        items = [item_factory(tmp_path / name) for name in ("a", "b", "c")]
        progress = MagicMock()

        clean(items, dry_run=True, progress=progress)

        assert [call.args for call in progress.increment.call_args_list] == [(1,), (1,), (1,)]


class TestThreadCounts:
    """Tests for thread-count independence."""

    @pytest.mark.parametrize("threads", [1, 4, 16])
    def test_bytes_freed_independent_of_threads(
        self, tmp_path: Path, item_factory: ItemFactory, threads: int
    ) -> None:
        """10,000 files across 50 directories give the same totals."""
        items = []
        expected = 0
        for d in range(50):
            directory = tmp_path / f"pkg{d}" / "node_modules"
            directory.mkdir(parents=True)
            size = 0
            for f in range(200):
                data = b"x" * ((d + f) % 7)
                (directory / f"f{f}.js").write_bytes(data)
                size += len(data)
            expected += size
            items.append(item_factory(directory, size=size))

        report = clean(items, thread_count=threads, chunk_size=4)

        assert report.items_deleted == 50
        assert report.bytes_freed == expected
        assert report.errors == []
        assert not any(item.path.exists() for item in items)


class TestParallelCleaner:
    """Tests for pool management."""

    def test_invalid_arguments(self) -> None:
        """Thread count and chunk size must be positive."""
        with pytest.raises(ValueError, match="chunk_size"):
            ParallelCleaner(chunk_size=0)
        with pytest.raises(ValueError, match="thread_count"):
            ParallelCleaner(thread_count=-1)

    def test_pool_reused_between_runs(self, tmp_path: Path, item_factory: ItemFactory) -> None:
        """The same executor serves consecutive runs."""
        with ParallelCleaner(thread_count=2) as cleaner:
            (tmp_path / "a").mkdir()
            cleaner.clean([item_factory(tmp_path / "a")])
            first = cleaner._executor
            (tmp_path / "b").mkdir()
            cleaner.clean([item_factory(tmp_path / "b")])
            assert cleaner._executor is first

    def test_pool_rebuilt_on_thread_change(self, tmp_path: Path, item_factory: ItemFactory) -> None:
        """Changing the thread count replaces the executor."""
        with ParallelCleaner(thread_count=2) as cleaner:
            (tmp_path / "a").mkdir()
            cleaner.clean([item_factory(tmp_path / "a")])
            first = cleaner._executor

            cleaner.thread_count = 2
            assert cleaner._executor is first

            cleaner.thread_count = 3
            assert cleaner._executor is None
            (tmp_path / "b").mkdir()
            report = cleaner.clean([item_factory(tmp_path / "b")])
            assert cleaner._executor is not first
            assert report.items_deleted == 1

    def test_close_shuts_down_pool(self, tmp_path: Path, item_factory: ItemFactory) -> None:
        """close releases the executor."""
        cleaner = ParallelCleaner(thread_count=1)
        (tmp_path / "a").mkdir()
        cleaner.clean([item_factory(tmp_path / "a")])
        cleaner.close()
        assert cleaner._executor is None


class TestStatistics:
    """Tests for Statistics."""

    def test_errors_keyed_by_path(self) -> None:
        """A second error for the same path replaces the first."""
        stats = Statistics()
        stats.record_error(CleanError(path=Path("/b"), kind=ErrorKind.IO_ERROR, message="one"))
        stats.record_error(CleanError(path=Path("/a"), kind=ErrorKind.IO_ERROR))
        stats.record_error(CleanError(path=Path("/b"), kind=ErrorKind.IO_ERROR, message="two"))

        errors = stats.errors
        assert [e.path for e in errors] == [Path("/a"), Path("/b")]
        assert errors[1].message == "two"


class TestRemoveSymlink:
    """Tests for remove_symlink."""

    def test_removes_dangling_link(self, tmp_path: Path) -> None:
        """Dangling links can be removed."""
        link = tmp_path / "dangling"
        link.symlink_to(tmp_path / "missing")
        remove_symlink(link)
        assert not os.path.lexists(link)

    def test_windows_directory_link_uses_rmdir(self, tmp_path: Path) -> None:
        """On Windows a directory link is removed with rmdir."""
        fake_stat = MagicMock(st_file_attributes=0x10)
        with (
            patch("mrclean.engine.cleaner.os.name", "nt"),
            patch("mrclean.engine.cleaner.os.lstat", return_value=fake_stat),
            patch("mrclean.engine.cleaner.os.rmdir") as mock_rmdir,
            patch("mrclean.engine.cleaner.os.unlink") as mock_unlink,
        ):
            remove_symlink(tmp_path / "dirlink")

        mock_rmdir.assert_called_once_with(tmp_path / "dirlink")
        mock_unlink.assert_not_called()
