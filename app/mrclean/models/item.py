"""Clean item models.

This module defines the data structures describing filesystem entries
selected for cleaning and the pattern match that selected them.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any


class ItemKind(str, Enum):
    """Type of filesystem entry selected for cleaning.

    Attributes:
        DIRECTORY: Regular directory, removed recursively.
        FILE: Regular file.
        SYMLINK: Symbolic link; only the link entry is ever removed.
    """

    DIRECTORY = "directory"
    FILE = "file"
    SYMLINK = "symlink"


class PatternSource(str, Enum):
    """Origin of a pattern rule.

    The declaration order is the tie-break order used when several
    include rules match the same path: a command-line rule beats a
    user config rule, which beats a built-in default.
    """

    COMMAND_LINE = "cli"
    USER_CONFIG = "config"
    BUILTIN = "builtin"

    @property
    def rank(self) -> int:
        """Tie-break rank (lower wins)."""
        return _SOURCE_RANK[self]


_SOURCE_RANK: dict[PatternSource, int] = {
    PatternSource.COMMAND_LINE: 0,
    PatternSource.USER_CONFIG: 1,
    PatternSource.BUILTIN: 2,
}


class PatternCategory(str, Enum):
    """Grouping category of a pattern, used for display breakdowns."""

    DEPENDENCIES = "dependencies"
    BUILD_OUTPUTS = "build"
    CACHE = "cache"
    IDE = "ide"
    LOGS = "logs"
    OTHER = "other"

    @property
    def label(self) -> str:
        """Human-readable label for the category."""
        return _CATEGORY_LABELS[self]


_CATEGORY_LABELS: dict[PatternCategory, str] = {
    PatternCategory.DEPENDENCIES: "Dependencies",
    PatternCategory.BUILD_OUTPUTS: "Build",
    PatternCategory.CACHE: "Cache",
    PatternCategory.IDE: "IDE",
    PatternCategory.LOGS: "Logs",
    PatternCategory.OTHER: "Other",
}


@dataclass(frozen=True, slots=True)
class PatternMatch:
    """Details of the rule that selected an item.

    Attributes:
        pattern: The glob text that matched.
        priority: Position of the rule within its source list (lower wins).
        source: Where the rule came from.
        category: Display category of the rule.
    """

    pattern: str
    priority: int
    source: PatternSource
    category: PatternCategory

    @property
    def sort_key(self) -> tuple[int, int]:
        """Ordering key for tie-breaks between competing matches."""
        return (self.source.rank, self.priority)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "pattern": self.pattern,
            "priority": self.priority,
            "source": self.source.value,
            "category": self.category.value,
        }


@dataclass(frozen=True, slots=True)
class CleanItem:
    """A filesystem entry selected for deletion.

    Instances are immutable. The scanner creates directory items with a
    provisional size and replaces them once, via :meth:`with_size`, after
    the walk has aggregated the bytes recorded beneath them.

    Attributes:
        path: Absolute path of the entry.
        size: Size in bytes (recursive total for directories).
        kind: Type of the entry.
        pattern: The pattern match that selected this entry.
    """

    path: Path
    size: int
    kind: ItemKind
    pattern: PatternMatch

    def __post_init__(self) -> None:
        """Validate item data after initialization."""
        if not str(self.path):
            msg = "Item path cannot be empty"
            raise ValueError(msg)
        if self.size < 0:
            msg = f"Item size cannot be negative, got {self.size}"
            raise ValueError(msg)

    @property
    def is_directory(self) -> bool:
        """Check if this item is a directory."""
        return self.kind == ItemKind.DIRECTORY

    def with_size(self, size: int) -> "CleanItem":
        """Return a copy of this item carrying the aggregated size."""
        return CleanItem(path=self.path, size=size, kind=self.kind, pattern=self.pattern)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "path": str(self.path),
            "size": self.size,
            "kind": self.kind.value,
            "pattern": self.pattern.to_dict(),
        }
