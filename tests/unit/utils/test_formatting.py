"""Unit tests for console formatting helpers."""

from collections.abc import Callable
from pathlib import Path

import pytest
from mrclean.models.item import CleanItem, ItemKind
from mrclean.utils.formatting import create_items_table, format_item_row, format_size

ItemFactory = Callable[..., CleanItem]


class TestFormatSize:
    """Tests for format_size."""

    @pytest.mark.parametrize(
        ("size", "expected"),
        [
            (0, "0 B"),
            (999, "999 B"),
            (1000, "1.0 kB"),
            (1500, "1.5 kB"),
            (2_500_000, "2.5 MB"),
            (3_000_000_000, "3.0 GB"),
        ],
    )
    def test_decimal_units(self, size: int, expected: str) -> None:
        """Sizes use powers of 1000."""
        assert format_size(size) == expected

    def test_largest_unit_caps(self) -> None:
        """Values past the last unit stay in the last unit."""
        assert format_size(10**19).endswith(" PB")


class TestItemsTable:
    """Tests for create_items_table and format_item_row."""

    def test_columns(self) -> None:
        """The table has the expected columns."""
        table = create_items_table("Title")

        assert [column.header for column in table.columns] == ["Kind", "Path", "Size", "Pattern", "Category"]
        assert table.title == "Title"

    def test_row_relative_to_root(self, item_factory: ItemFactory) -> None:
        """Paths under root are shown relative to it."""
        item = item_factory(Path("/r/a/node_modules"), size=1500)

        kind, path, size, pattern, category = format_item_row(item, root=Path("/r"))

        assert kind == "[kind.directory]D[/]"
        assert path == f"[kind.directory]{Path('a/node_modules')}[/]"
        assert size == "1.5 kB"
        assert pattern == "node_modules"
        assert category == "Dependencies"

    def test_row_outside_root_is_absolute(self, item_factory: ItemFactory) -> None:
        """Paths outside root are shown unchanged."""
        item = item_factory(Path("/elsewhere/x.log"), kind=ItemKind.FILE, pattern="*.log")

        kind, path, *_ = format_item_row(item, root=Path("/r"))

        assert kind == "[kind.file]F[/]"
        assert path == f"[kind.file]{Path('/elsewhere/x.log')}[/]"

    def test_symlink_icon(self, item_factory: ItemFactory) -> None:
        """Symlinks use the L icon."""
        kind, *_ = format_item_row(item_factory(Path("/r/link"), kind=ItemKind.SYMLINK))

        assert kind == "[kind.symlink]L[/]"
