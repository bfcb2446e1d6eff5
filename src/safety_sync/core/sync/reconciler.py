"""Applies remote snapshots to the application state and builds outgoing ones."""

import logging
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from typing import Any, Dict, List, Optional

from ...models import now_ms
from ..store.state import COLLECTIONS, AppState
from .codec import Snapshot
from .merge import MergeResult, merge_collections

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    """Result of applying one remote snapshot."""

    merges: Dict[str, MergeResult[Any]] = dataclass_field(default_factory=dict)
    absent: List[str] = dataclass_field(default_factory=list)
    config_replaced: bool = False

    @property
    def changed(self) -> bool:
        """Whether anything was taken from the remote snapshot."""
        return self.config_replaced or any(m.changed for m in self.merges.values())

    def get_summary(self) -> Dict[str, Any]:
        """Get summary of the reconciliation."""
        return {
            "changed": self.changed,
            "collections": {
                name: merge.get_summary() for name, merge in self.merges.items()
            },
            "absent": list(self.absent),
            "config_replaced": self.config_replaced,
        }


def build_snapshot(state: AppState, last_updated: Optional[int] = None) -> Snapshot:
    """Capture the full local dataset as a snapshot.

    Args:
        state: Application state to capture
        last_updated: Snapshot version in epoch ms; now if None
    """
    return Snapshot(
        users=state.get("users"),
        records=state.get("records"),
        meetings=state.get("meetings"),
        notifications=state.get("notifications"),
        config=state.config,
        last_updated=last_updated if last_updated is not None else now_ms(),
    )


def apply_snapshot(state: AppState, snapshot: Snapshot) -> ReconcileResult:
    """Merge a remote snapshot into the application state.

    Collections absent from the snapshot are left untouched. The config is
    replaced as a whole when the snapshot carries one that is newer than the
    last local config change.

    Args:
        state: Application state to update
        snapshot: Snapshot pulled from the remote store

    Returns:
        ReconcileResult with per-collection merge counters
    """
    result = ReconcileResult()

    for name in COLLECTIONS:
        remote_items = getattr(snapshot, name)
        if remote_items is None:
            result.absent.append(name)
            continue
        merged = merge_collections(state.get(name), remote_items, name)
        result.merges[name] = merged
        if merged.changed or merged.skipped:
            state.replace_collection(name, merged.items, from_remote=True)

    if snapshot.config is not None:
        if snapshot.last_updated > state.config_updated_at:
            result.config_replaced = state.set_config(
                snapshot.config, updated_at=snapshot.last_updated, from_remote=True
            )
        else:
            logger.debug(
                "Keeping local config (local change %d >= snapshot %d)",
                state.config_updated_at,
                snapshot.last_updated,
            )

    if result.changed:
        logger.info("Applied remote snapshot: %s", result.get_summary())
    return result
