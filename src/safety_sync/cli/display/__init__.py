"""CLI display helpers."""

from .formatters import (
    console,
    display_reconcile_result,
    display_records,
    display_report,
    display_sync_status,
)

__all__ = [
    "console",
    "display_reconcile_result",
    "display_records",
    "display_report",
    "display_sync_status",
]
