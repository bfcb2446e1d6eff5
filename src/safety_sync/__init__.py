"""Safety Sync.

Offline-first synchronization for a workplace-safety compliance app: local
risk assessments, kick-off meetings and NOK notifications reconciled with a
shared remote workspace.
"""

__version__ = "1.0.0"

from .config import Config
from .core.store import AppState, LocalStore
from .models import Meeting, Notification, Record, User

__all__ = [
    "AppState",
    "Config",
    "LocalStore",
    "Meeting",
    "Notification",
    "Record",
    "User",
]
