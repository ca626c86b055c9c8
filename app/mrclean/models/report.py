"""Error records and the run report.

Per-path errors found while scanning or deleting never abort a run.
They are collected as ScanError / CleanError records and returned in
the CleanReport together with the aggregate counters.
"""

from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import Any


class ErrorKind(str, Enum):
    """Kind of a recoverable per-path error.

    Attributes:
        PERMISSION_DENIED: The entry could not be read or removed.
        IO_ERROR: Any other operating system error.
        SYMLINK_CYCLE: Following a symlink led back to one of its ancestors.
    """

    PERMISSION_DENIED = "permission_denied"
    IO_ERROR = "io_error"
    SYMLINK_CYCLE = "symlink_cycle"


def _classify_os_error(exc: OSError) -> ErrorKind:
    if isinstance(exc, PermissionError):
        return ErrorKind.PERMISSION_DENIED
    return ErrorKind.IO_ERROR


@dataclass(frozen=True, slots=True)
class PathError:
    """A recoverable error attached to exactly one path.

    Attributes:
        path: Path the error occurred at.
        kind: Error classification.
        message: Human-readable detail (OS error text for IO errors).
    """

    path: Path
    kind: ErrorKind
    message: str = ""

    def __str__(self) -> str:
        if self.kind == ErrorKind.PERMISSION_DENIED:
            return f"Permission denied: {self.path}"
        if self.kind == ErrorKind.SYMLINK_CYCLE:
            return f"Symbolic link cycle detected at {self.path}"
        return f"IO error at {self.path}: {self.message}"

    @classmethod
    def from_os_error(cls, path: Path, exc: OSError) -> "PathError":
        """Build an error record from an OSError raised for ``path``."""
        message = exc.strerror or str(exc)
        return cls(path=path, kind=_classify_os_error(exc), message=message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"path": str(self.path), "kind": self.kind.value, "message": self.message}


class ScanError(PathError):
    """Error found while walking the tree."""

    __slots__ = ()


class CleanError(PathError):
    """Error raised while deleting an item."""

    __slots__ = ()


@dataclass(slots=True)
class CleanReport:
    """Summary of a cleaning run.

    Attributes:
        items_deleted: Items removed (or that would be removed in a dry run).
        bytes_freed: Bytes freed (or that would be freed in a dry run).
        errors: Deletion errors, one per failed path.
        scan_errors: Errors recorded during the scan.
        duration: Wall time of the clean phase.
        dry_run: Whether the run was a preview.
        scan_duration: Wall time of the scan phase.
        dirs_deleted: Directory items among ``items_deleted``.
        files_deleted: File and symlink items among ``items_deleted``.
        entries_scanned: Entries visited by the scanner.
    """

    items_deleted: int = 0
    bytes_freed: int = 0
    errors: list[CleanError] = field(default_factory=list)
    scan_errors: list[ScanError] = field(default_factory=list)
    duration: timedelta = field(default_factory=timedelta)
    dry_run: bool = False
    scan_duration: timedelta = field(default_factory=timedelta)
    dirs_deleted: int = 0
    files_deleted: int = 0
    entries_scanned: int = 0

    @property
    def has_errors(self) -> bool:
        """Check if any scan or deletion error was recorded."""
        return bool(self.errors or self.scan_errors)

    @property
    def succeeded(self) -> bool:
        """Check if every item was deleted without error."""
        return not self.errors

    @property
    def total_duration(self) -> timedelta:
        """Combined scan and clean wall time."""
        return self.scan_duration + self.duration

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "items_deleted": self.items_deleted,
            "bytes_freed": self.bytes_freed,
            "dirs_deleted": self.dirs_deleted,
            "files_deleted": self.files_deleted,
            "entries_scanned": self.entries_scanned,
            "dry_run": self.dry_run,
            "duration_seconds": self.duration.total_seconds(),
            "scan_duration_seconds": self.scan_duration.total_seconds(),
            "errors": [e.to_dict() for e in self.errors],
            "scan_errors": [e.to_dict() for e in self.scan_errors],
        }
