"""Removal of redundant nested matches.

Deleting a directory removes everything beneath it, so a matched item
that lives inside another matched item must not be handed to the
cleaner. Two workers would otherwise race on the same subtree.
"""

import logging
from collections.abc import Iterable
from pathlib import Path

from mrclean.models.item import CleanItem

logger = logging.getLogger(__name__)


def prune(items: Iterable[CleanItem]) -> list[CleanItem]:
    """Drop items that are descendants of other items.

    Items are visited shallowest first (ties broken by path), so every
    potential ancestor is decided before its descendants. An item is kept
    unless one of its path-segment ancestors has already been kept.
    Duplicate paths collapse to the first one seen.

    Args:
        items: Matched items in any order.

    Returns:
        Items with no ancestor/descendant pairs, ordered by depth then path.
    """
    ordered = sorted(items, key=lambda item: (len(item.path.parts), item.path))

    kept: list[CleanItem] = []
    kept_paths: set[Path] = set()
    for item in ordered:
        if item.path in kept_paths:
            continue
        if any(parent in kept_paths for parent in item.path.parents):
            continue
        kept.append(item)
        kept_paths.add(item.path)

    dropped = len(ordered) - len(kept)
    if dropped:
        logger.debug("Pruned %d nested or duplicate items", dropped)
    return kept
