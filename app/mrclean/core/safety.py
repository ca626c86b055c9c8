"""Pre-flight safety checks.

Run before a scan starts. A failed check raises SafetyError and the
run never begins.
"""

import logging
import shutil
from pathlib import Path

from mrclean.core.errors import MrCleanError

logger = logging.getLogger(__name__)

_BYTES_PER_GB = 1_000_000_000


class SafetyError(MrCleanError):
    """Raised when a pre-flight safety check fails."""


class SafetyGuard:
    """Validates a target path before it is cleaned.

    Args:
        check_git_repo: Refuse paths inside a git working tree.
        min_free_space_gb: Minimum free space on the target filesystem.
    """

    def __init__(self, check_git_repo: bool = True, min_free_space_gb: float = 1.0) -> None:
        self.check_git_repo = check_git_repo
        self.min_free_space_gb = min_free_space_gb

    def validate(self, path: Path) -> None:
        """Run all enabled checks.

        Args:
            path: Directory about to be cleaned.

        Raises:
            SafetyError: If any check fails.
        """
        if not path.exists():
            msg = f"Path does not exist: {path}"
            raise SafetyError(msg)

        if self.check_git_repo:
            repo = find_git_root(path)
            if repo is not None:
                msg = (
                    f"{path} is inside a git repository ({repo}). "
                    "Use --no-git-check to clean it anyway."
                )
                raise SafetyError(msg)

        if self.min_free_space_gb > 0:
            self._check_free_space(path)

    def _check_free_space(self, path: Path) -> None:
        try:
            usage = shutil.disk_usage(path)
        except OSError as e:
            msg = f"Cannot determine free space for {path}: {e}"
            raise SafetyError(msg) from e

        free_gb = usage.free / _BYTES_PER_GB
        logger.debug("Free space at %s: %.2f GB", path, free_gb)
        if free_gb < self.min_free_space_gb:
            msg = (
                f"Insufficient free space: {free_gb:.2f} GB available, "
                f"{self.min_free_space_gb:.2f} GB required"
            )
            raise SafetyError(msg)


def find_git_root(path: Path) -> Path | None:
    """Find the git working tree containing ``path``.

    Args:
        path: Path to start from.

    Returns:
        The nearest directory holding a ``.git`` entry, or None.
    """
    current = path.resolve()
    for directory in (current, *current.parents):
        if (directory / ".git").exists():
            return directory
    return None
