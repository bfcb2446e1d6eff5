"""Aggregate counters over the local dataset."""

from collections import Counter
from typing import Any, Dict, List

from ..core.store.state import AppState
from ..models import Meeting, Notification, Record, RecordStatus


def build_report(state: AppState) -> Dict[str, Any]:
    """Summarize records, meetings and notifications.

    Tombstoned records and meetings are not counted.

    Args:
        state: Application state to summarize

    Returns:
        Dictionary with per-status and per-department record counts
    """
    records: List[Record] = [r for r in state.get("records") if not r.is_deleted]
    meetings: List[Meeting] = [m for m in state.get("meetings") if not m.is_deleted]
    notifications: List[Notification] = state.get("notifications")

    by_status = Counter(r.status.value for r in records)
    by_department = Counter(r.department.value for r in records)

    return {
        "records": {
            "total": len(records),
            "by_status": {s.value: by_status.get(s.value, 0) for s in RecordStatus},
            "by_department": dict(sorted(by_department.items())),
        },
        "meetings": {"total": len(meetings)},
        "notifications": {
            "total": len(notifications),
            "unread": sum(1 for n in notifications if not n.is_read),
        },
        "users": {"total": len(state.get("users"))},
    }
