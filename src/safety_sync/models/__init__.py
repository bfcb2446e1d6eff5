"""Data models package."""

from .defaults import SCREENS, default_config, default_users
from .models import (
    Answer,
    AppConfig,
    Attendee,
    Department,
    Meeting,
    Notification,
    Question,
    Record,
    RecordStatus,
    Syncable,
    User,
    UserRole,
    WireModel,
    now_ms,
)

__all__ = [
    "SCREENS",
    "Answer",
    "AppConfig",
    "Attendee",
    "Department",
    "Meeting",
    "Notification",
    "Question",
    "Record",
    "RecordStatus",
    "Syncable",
    "User",
    "UserRole",
    "WireModel",
    "default_config",
    "default_users",
    "now_ms",
]
