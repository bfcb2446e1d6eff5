"""Synchronization module.

Handles snapshot encoding, collection merging and reconciliation of remote
snapshots into the application state.
"""

from .codec import (
    Snapshot,
    SnapshotDecodeError,
    decode_snapshot,
    encode_snapshot,
    snapshot_to_dict,
)
from .merge import MergeResult, item_id, item_timestamp, merge, merge_collections
from .reconciler import ReconcileResult, apply_snapshot, build_snapshot

# Note: the scheduler depends on core.remote, which depends on this package.
# Import it directly: from safety_sync.core.sync.scheduler import SyncScheduler

__all__ = [
    # Codec
    "Snapshot",
    "SnapshotDecodeError",
    "decode_snapshot",
    "encode_snapshot",
    "snapshot_to_dict",
    # Merge
    "MergeResult",
    "item_id",
    "item_timestamp",
    "merge",
    "merge_collections",
    # Reconciliation
    "ReconcileResult",
    "apply_snapshot",
    "build_snapshot",
]
