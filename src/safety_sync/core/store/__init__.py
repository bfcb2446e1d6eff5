"""Local persistence and owned application state."""

from .local_store import LocalStore, StoreKey
from .models import Base, KeyValueEntry
from .state import COLLECTIONS, CONFIG, AppState, CollectionSpec

__all__ = [
    "AppState",
    "Base",
    "COLLECTIONS",
    "CONFIG",
    "CollectionSpec",
    "KeyValueEntry",
    "LocalStore",
    "StoreKey",
]
