"""Unit tests for pre-flight safety checks."""

from pathlib import Path
from unittest.mock import patch

import pytest
from mrclean.core.safety import SafetyError, SafetyGuard, find_git_root


class _Usage:
    def __init__(self, free: int) -> None:
        self.total = free * 2
        self.used = free
        self.free = free


class TestFindGitRoot:
    """Tests for find_git_root."""

    def test_directory_with_git(self, tmp_path: Path) -> None:
        """The directory holding .git is returned."""
        (tmp_path / ".git").mkdir()
        nested = tmp_path / "src" / "pkg"
        nested.mkdir(parents=True)

        assert find_git_root(nested) == tmp_path.resolve()

    def test_git_file_counts(self, tmp_path: Path) -> None:
        """A .git file (worktree or submodule) counts too."""
        (tmp_path / ".git").write_text("gitdir: ../elsewhere\n")

        assert find_git_root(tmp_path) == tmp_path.resolve()


class TestSafetyGuard:
    """Tests for SafetyGuard.validate."""

    def test_missing_path(self, tmp_path: Path) -> None:
        """A path that does not exist is refused."""
        guard = SafetyGuard(check_git_repo=False, min_free_space_gb=0)
        with pytest.raises(SafetyError, match="does not exist"):
            guard.validate(tmp_path / "missing")

    def test_git_repo_refused(self, tmp_path: Path) -> None:
        """Paths inside a git working tree are refused by default."""
        (tmp_path / ".git").mkdir()
        guard = SafetyGuard(min_free_space_gb=0)

        with pytest.raises(SafetyError, match="--no-git-check"):
            guard.validate(tmp_path)

    def test_git_check_disabled(self, tmp_path: Path) -> None:
        """The git check can be switched off."""
        (tmp_path / ".git").mkdir()
        SafetyGuard(check_git_repo=False, min_free_space_gb=0).validate(tmp_path)

    def test_git_check_passes_outside_repo(self, tmp_path: Path) -> None:
        """Paths outside any repository pass."""
        with patch("mrclean.core.safety.find_git_root", return_value=None):
            SafetyGuard(min_free_space_gb=0).validate(tmp_path)

    def test_insufficient_free_space(self, tmp_path: Path) -> None:
        """Too little free space is refused."""
        guard = SafetyGuard(check_git_repo=False, min_free_space_gb=2.0)
        with (
            patch("mrclean.core.safety.shutil.disk_usage", return_value=_Usage(free=1_500_000_000)),
            pytest.raises(SafetyError, match="1.50 GB available"),
        ):
            guard.validate(tmp_path)

    def test_enough_free_space(self, tmp_path: Path) -> None:
        """Enough free space passes."""
        guard = SafetyGuard(check_git_repo=False, min_free_space_gb=1.0)
        with patch("mrclean.core.safety.shutil.disk_usage", return_value=_Usage(free=5_000_000_000)):
            guard.validate(tmp_path)

    def test_zero_threshold_skips_check(self, tmp_path: Path) -> None:
        """A threshold of zero disables the free space check."""
        guard = SafetyGuard(check_git_repo=False, min_free_space_gb=0)
        with patch("mrclean.core.safety.shutil.disk_usage") as mock_usage:
            guard.validate(tmp_path)
        mock_usage.assert_not_called()

    def test_disk_usage_failure(self, tmp_path: Path) -> None:
        """An OSError while reading disk usage becomes a SafetyError."""
        guard = SafetyGuard(check_git_repo=False, min_free_space_gb=1.0)
        with (
            patch("mrclean.core.safety.shutil.disk_usage", side_effect=OSError("boom")),
            pytest.raises(SafetyError, match="Cannot determine free space"),
        ):
            guard.validate(tmp_path)
