"""Domain services operating on the application state."""

from .meetings import MeetingService, MeetingServiceError
from .notifications import NotificationService
from .records import RecordService, RecordServiceError, derive_status
from .reports import build_report
from .settings import ConfigService, ConfigServiceError
from .users import UserService, UserServiceError

__all__ = [
    "ConfigService",
    "ConfigServiceError",
    "MeetingService",
    "MeetingServiceError",
    "NotificationService",
    "RecordService",
    "RecordServiceError",
    "UserService",
    "UserServiceError",
    "build_report",
    "derive_status",
]
