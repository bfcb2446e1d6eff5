"""CLI command modules."""

from .context import SafetySyncApp
from .records import records, status
from .settings import settings
from .sync import sync
from .workspace import workspace

__all__ = [
    "SafetySyncApp",
    "records",
    "settings",
    "status",
    "sync",
    "workspace",
]
