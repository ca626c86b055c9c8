"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

import os
from collections.abc import Callable
from pathlib import Path

import pytest
from mrclean.models.item import CleanItem, ItemKind, PatternCategory, PatternMatch, PatternSource


@pytest.fixture(autouse=True)
def isolated_config_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point XDG_CONFIG_HOME at a temporary directory.

    Keeps a real ~/.config/mrclean from leaking into tests.
    """
    config_home = tmp_path / "xdg-config"
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))
    return config_home


@pytest.fixture
def make_tree(tmp_path: Path) -> Callable[[dict[str, int]], Path]:
    """Build a directory tree from a {relative_path: size} mapping.

    Paths ending in "/" create empty directories. Every file is filled
    with ``size`` bytes.
    """

    def _make(layout: dict[str, int], root_name: str = "project") -> Path:
        root = tmp_path / root_name
        root.mkdir(exist_ok=True)
        for rel, size in layout.items():
            target = root / rel
            if rel.endswith("/"):
                target.mkdir(parents=True, exist_ok=True)
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(b"x" * size)
        return root

    return _make


def make_item(
    path: str | Path,
    size: int = 0,
    kind: ItemKind = ItemKind.DIRECTORY,
    pattern: str = "node_modules",
) -> CleanItem:
    """Create a test CleanItem."""
    return CleanItem(
        path=Path(path),
        size=size,
        kind=kind,
        pattern=PatternMatch(
            pattern=pattern,
            priority=0,
            source=PatternSource.BUILTIN,
            category=PatternCategory.DEPENDENCIES,
        ),
    )


@pytest.fixture
def item_factory() -> Callable[..., CleanItem]:
    """Factory for CleanItem instances."""
    return make_item


def tree_snapshot(root: Path) -> dict[str, bytes | None]:
    """Map every entry below root to its content (None for directories)."""
    snapshot: dict[str, bytes | None] = {}
    for dirpath, dirnames, filenames in os.walk(root):
        for name in dirnames:
            snapshot[os.path.relpath(os.path.join(dirpath, name), root)] = None
        for name in filenames:
            full = os.path.join(dirpath, name)
            snapshot[os.path.relpath(full, root)] = Path(full).read_bytes()
    return snapshot


@pytest.fixture
def snapshot() -> Callable[[Path], dict[str, bytes | None]]:
    """Snapshot helper for byte-identical tree comparisons."""
    return tree_snapshot
