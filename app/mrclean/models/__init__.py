"""Data models for mrclean."""

from mrclean.models.item import CleanItem, ItemKind, PatternCategory, PatternMatch, PatternSource
from mrclean.models.report import CleanError, CleanReport, ErrorKind, PathError, ScanError

__all__ = [
    "CleanError",
    "CleanItem",
    "CleanReport",
    "ErrorKind",
    "ItemKind",
    "PathError",
    "PatternCategory",
    "PatternMatch",
    "PatternSource",
    "ScanError",
]
