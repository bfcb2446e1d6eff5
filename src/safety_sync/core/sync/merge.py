"""Merge engine for syncable collections.

Reconciles a local and a remote collection into one, keyed by item ``id``:
- Items known on one side only are kept
- Items known on both sides keep whichever has the strictly newer timestamp
- Ties keep the local item
- Items without a usable id are skipped, never coalesced
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from typing import Any, Dict, Generic, Iterable, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def item_id(item: Any) -> Optional[str]:
    """Return the identity of an item, or None when it has no usable id."""
    if isinstance(item, Mapping):
        value = item.get("id")
    else:
        value = getattr(item, "id", None)
    if not isinstance(value, str) or not value.strip():
        return None
    return value


def item_timestamp(item: Any) -> int:
    """Return the recency timestamp of an item, 0 when missing or invalid."""
    if isinstance(item, Mapping):
        value = item.get("timestamp")
    else:
        value = getattr(item, "timestamp", None)
    if value is None or isinstance(value, bool):
        return 0
    try:
        return max(int(value), 0)
    except (TypeError, ValueError):
        return 0


@dataclass
class MergeResult(Generic[T]):
    """Outcome of merging two collections."""

    items: List[T] = dataclass_field(default_factory=list)
    inserted: int = 0
    updated: int = 0
    kept: int = 0
    skipped: List[str] = dataclass_field(default_factory=list)

    @property
    def changed(self) -> bool:
        """Whether the merge took anything from the remote side."""
        return (self.inserted + self.updated) > 0

    def get_summary(self) -> Dict[str, int]:
        """Get counters for display and logging."""
        return {
            "total": len(self.items),
            "inserted": self.inserted,
            "updated": self.updated,
            "kept": self.kept,
            "skipped": len(self.skipped),
        }


def merge_collections(
    local: Iterable[T], remote: Iterable[T], name: str = "collection"
) -> MergeResult[T]:
    """Merge ``remote`` into ``local`` using newer-wins per id.

    Args:
        local: Items currently held locally
        remote: Items received from the remote store
        name: Collection name used in log messages

    Returns:
        MergeResult whose ``items`` are sorted newest first
    """
    result: MergeResult[T] = MergeResult()
    merged: Dict[str, T] = {}

    for item in local:
        key = item_id(item)
        if key is None:
            result.skipped.append(f"local {name} item without id")
            logger.warning("Skipping local %s item without a valid id", name)
            continue
        if key in merged:
            logger.debug("Duplicate local %s id %s, keeping the later one", name, key)
        merged[key] = item

    seen_remote = set()
    for item in remote:
        key = item_id(item)
        if key is None:
            result.skipped.append(f"remote {name} item without id")
            logger.warning("Skipping remote %s item without a valid id", name)
            continue
        if key in seen_remote:
            logger.debug("Duplicate remote %s id %s", name, key)
        seen_remote.add(key)
        current = merged.get(key)
        if current is None:
            merged[key] = item
            result.inserted += 1
        elif item_timestamp(item) > item_timestamp(current):
            merged[key] = item
            result.updated += 1
        else:
            result.kept += 1

    # sorted() is stable: equal timestamps keep insertion order
    result.items = sorted(merged.values(), key=item_timestamp, reverse=True)

    if result.changed:
        logger.debug("Merged %s: %s", name, result.get_summary())
    return result


def merge(local: Iterable[T], remote: Iterable[T]) -> List[T]:
    """Merge two collections and return the merged items newest first."""
    return merge_collections(local, remote).items
