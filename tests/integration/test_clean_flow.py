"""Integration tests for a complete scan, prune and clean cycle.

Uses the public API and the CLI on a real temporary tree.
"""

from collections.abc import Callable
from pathlib import Path

import pytest
from mrclean import Config, clean, prune, scan
from mrclean.cli.main import app
from mrclean.core.config import ScanConfig
from mrclean.engine import CleanPipeline
from typer.testing import CliRunner

runner = CliRunner()

TreeFactory = Callable[[dict[str, int]], Path]


@pytest.fixture
def workspace(make_tree: TreeFactory) -> Path:
    """Tree with a dependency folder, a build output and a git directory."""
    return make_tree(
        {
            "a/node_modules/left-pad/index.js": 10,
            "a/node_modules/left-pad/dist/": 0,
            "a/dist/bundle.js": 20,
            "a/.git/HEAD": 3,
            "a/src/index.ts": 7,
        }
    )


class TestLibraryFlow:
    """scan, prune and clean used as plain functions."""

    def test_full_cycle(self, workspace: Path) -> None:
        """A dry run predicts the live run and a second run finds nothing."""
        items, errors = scan(workspace)
        pruned = prune(items)

        assert errors == []
        assert sorted((item.path.name, item.size) for item in pruned) == [("dist", 20), ("node_modules", 10)]

        preview = clean(pruned, dry_run=True)
        assert (preview.items_deleted, preview.bytes_freed) == (2, 30)
        assert (workspace / "a" / "dist").exists()

        report = clean(pruned)
        assert (report.items_deleted, report.bytes_freed, report.errors) == (2, 30, [])
        assert (workspace / "a" / ".git" / "HEAD").read_bytes() == b"xxx"
        assert (workspace / "a" / "src" / "index.ts").exists()

        items, _ = scan(workspace)
        again = clean(prune(items))
        assert (again.items_deleted, again.bytes_freed, again.errors) == (0, 0, [])

    def test_pipeline_matches_functions(self, workspace: Path) -> None:
        """The pipeline reports the same totals as the plain functions."""
        items, _ = scan(workspace)
        expected = sum(item.size for item in prune(items))

        report = CleanPipeline(Config()).run(workspace, dry_run=True)

        assert report.bytes_freed == expected

    def test_link_alias_counted_once(self, make_tree: TreeFactory) -> None:
        """Following a link to an already scanned directory adds no duplicate."""
        root = make_tree({"a/node_modules/x.js": 10}, root_name="aliased")
        (root / "alias").symlink_to(root / "a", target_is_directory=True)
        config = Config(scan=ScanConfig(follow_symlinks=True))

        items, _ = scan(root, config)
        pruned = prune(items)
        preview = clean(pruned, dry_run=True)
        report = clean(pruned)

        assert [(item.path, item.size) for item in pruned] == [(root.resolve() / "a" / "node_modules", 10)]
        assert (preview.items_deleted, preview.bytes_freed) == (report.items_deleted, report.bytes_freed) == (1, 10)
        assert report.errors == []


class TestCliFlow:
    """The same cycle driven through the command line."""

    def test_list_then_clean(self, workspace: Path, tmp_path: Path) -> None:
        """list shows the items, clean removes them, list is then empty."""
        config = tmp_path / "ci.toml"
        config.write_text("[safety]\nmin_free_space_gb = 0\n\n[options]\nrequire_confirmation = false\n")

        listed = runner.invoke(app, ["list", str(workspace), "-c", str(config)])
        cleaned = runner.invoke(app, ["clean", str(workspace), "-c", str(config)])
        relisted = runner.invoke(app, ["list", str(workspace), "-c", str(config)])

        assert listed.exit_code == 0
        assert "Total: 2 items, 30 B" in listed.output
        assert cleaned.exit_code == 0
        assert "Removed 2 items" in cleaned.output
        assert relisted.exit_code == 0
        assert "Nothing to clean" in relisted.output
        assert (workspace / "a" / ".git").is_dir()
