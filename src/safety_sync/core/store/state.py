"""Application state: the explicitly owned, in-process copy of the dataset.

All reads and writes of the synchronized collections go through an ``AppState``
instance. Every mutation is written through to the ``LocalStore`` and announced
to subscribers (the sync scheduler among them) with the collection name.

Local mutations also set a persisted unsynced marker, so edits made by one
process are pushed by whichever process syncs next. Mutations applied from a
remote snapshot pass ``from_remote=True`` and leave the marker alone.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Type

from pydantic import ValidationError

from ...models import (
    AppConfig,
    Meeting,
    Notification,
    Record,
    Syncable,
    User,
    default_config,
    default_users,
    now_ms,
)
from .local_store import LocalStore, StoreKey

logger = logging.getLogger(__name__)

CONFIG = "config"


@dataclass(frozen=True)
class CollectionSpec:
    """How a collection is stored and validated."""

    name: str
    key: StoreKey
    model: Type[Syncable]


COLLECTIONS: Dict[str, CollectionSpec] = {
    "users": CollectionSpec("users", StoreKey.USERS, User),
    "records": CollectionSpec("records", StoreKey.RECORDS, Record),
    "meetings": CollectionSpec("meetings", StoreKey.MEETINGS, Meeting),
    "notifications": CollectionSpec(
        "notifications", StoreKey.NOTIFICATIONS, Notification
    ),
}

ChangeListener = Callable[[str], None]


def _load_items(
    store: LocalStore, spec: CollectionSpec, default: List[Syncable]
) -> List[Syncable]:
    raw = store.get_json(spec.key)
    if raw is None:
        return default
    if not isinstance(raw, list):
        logger.warning("Stored %s is not a list, using defaults", spec.name)
        return default
    items: List[Syncable] = []
    for entry in raw:
        try:
            items.append(spec.model.model_validate(entry))
        except ValidationError as e:
            logger.warning("Dropping unreadable stored %s item: %s", spec.name, e)
    return items


def _load_config(store: LocalStore) -> AppConfig:
    raw = store.get_json(StoreKey.APP_CONFIG)
    if not isinstance(raw, dict):
        if raw is not None:
            logger.warning("Stored config is not an object, using defaults")
        return default_config()
    try:
        return AppConfig.model_validate(raw)
    except ValidationError as e:
        logger.warning("Stored config is invalid, using defaults: %s", e)
        return default_config()


class AppState:
    """Owned application dataset with write-through persistence."""

    def __init__(
        self,
        store: Optional[LocalStore] = None,
        *,
        collections: Optional[Dict[str, List[Syncable]]] = None,
        config: Optional[AppConfig] = None,
        config_updated_at: int = 0,
        language: str = "nl",
        unsynced: bool = False,
    ) -> None:
        """Initialize application state.

        Args:
            store: Local store to write through to; None keeps state in memory
            collections: Initial collections by name; missing ones start empty
            config: Initial app configuration (defaults if None)
            config_updated_at: Epoch ms of the last config change
            language: UI language preference
            unsynced: Whether local changes are waiting to be pushed
        """
        self.store = store
        self._lock = threading.RLock()
        self._listeners: List[ChangeListener] = []
        self._collections: Dict[str, List[Syncable]] = {
            name: list((collections or {}).get(name, [])) for name in COLLECTIONS
        }
        self._config = config or default_config()
        self.config_updated_at = config_updated_at
        self._language = language
        self._unsynced = unsynced

    @classmethod
    def load(cls, store: LocalStore) -> "AppState":
        """Load state from the local store, falling back to built-in defaults."""
        collections = {
            name: _load_items(
                store, spec, list(default_users()) if name == "users" else []
            )
            for name, spec in COLLECTIONS.items()
        }
        updated_at = store.get_json(StoreKey.CONFIG_UPDATED_AT, 0)
        language = store.get_json(StoreKey.LANGUAGE, "nl")
        state = cls(
            store,
            collections=collections,
            config=_load_config(store),
            config_updated_at=updated_at if isinstance(updated_at, int) else 0,
            language=language if isinstance(language, str) else "nl",
            unsynced=store.get_json(StoreKey.UNSYNCED_CHANGES, False) is True,
        )
        logger.info(
            "Loaded local state: %s",
            {name: len(items) for name, items in state._collections.items()},
        )
        return state

    # =========================================================================
    # Subscriptions
    # =========================================================================

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Register a change listener.

        Returns:
            Callable that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, name: str) -> None:
        for listener in list(self._listeners):
            listener(name)

    # =========================================================================
    # Collections
    # =========================================================================

    def get(self, name: str) -> List[Any]:
        """Get a copy of a collection."""
        with self._lock:
            return list(self._collections[name])

    def find(self, name: str, item_id: str) -> Optional[Any]:
        """Find an item of a collection by id."""
        with self._lock:
            for item in self._collections[name]:
                if item.id == item_id:
                    return item
        return None

    def replace_collection(
        self, name: str, items: List[Syncable], *, from_remote: bool = False
    ) -> bool:
        """Replace a whole collection.

        Listeners are only notified if the content actually changed.

        Args:
            name: Collection name
            items: New content of the collection
            from_remote: True when the content comes from a merged snapshot

        Returns:
            True if the collection changed
        """
        with self._lock:
            current = self._collections[name]
            if [i.to_wire() for i in current] == [i.to_wire() for i in items]:
                return False
            self._collections[name] = list(items)
            self._persist(name)
            if not from_remote:
                self._mark_unsynced()
        self._notify(name)
        return True

    def upsert(self, name: str, item: Syncable) -> None:
        """Insert an item at the front of a collection or replace it by id."""
        with self._lock:
            items = self._collections[name]
            for index, existing in enumerate(items):
                if existing.id == item.id:
                    items[index] = item
                    break
            else:
                items.insert(0, item)
            self._persist(name)
            self._mark_unsynced()
        self._notify(name)

    def _persist(self, name: str) -> None:
        if self.store is None:
            return
        spec = COLLECTIONS[name]
        self.store.set_json(spec.key, [i.to_wire() for i in self._collections[name]])

    # =========================================================================
    # Configuration and preferences
    # =========================================================================

    @property
    def config(self) -> AppConfig:
        """Current app configuration."""
        return self._config

    def set_config(
        self,
        config: AppConfig,
        updated_at: Optional[int] = None,
        *,
        from_remote: bool = False,
    ) -> bool:
        """Replace the app configuration as a whole.

        Args:
            config: New configuration
            updated_at: Epoch ms of the change; now if None
            from_remote: True when the config comes from a pulled snapshot

        Returns:
            True if the configuration changed
        """
        with self._lock:
            if config.to_wire() == self._config.to_wire():
                return False
            self._config = config
            self.config_updated_at = updated_at if updated_at is not None else now_ms()
            if self.store is not None:
                self.store.set_json(StoreKey.APP_CONFIG, config.to_wire())
                self.store.set_json(StoreKey.CONFIG_UPDATED_AT, self.config_updated_at)
            if not from_remote:
                self._mark_unsynced()
        self._notify(CONFIG)
        return True

    # =========================================================================
    # Unsynced marker
    # =========================================================================

    @property
    def has_unsynced_changes(self) -> bool:
        """Whether local changes were made since the last successful push."""
        return self._unsynced

    def _mark_unsynced(self) -> None:
        if self._unsynced:
            return
        self._unsynced = True
        if self.store is not None:
            self.store.set_json(StoreKey.UNSYNCED_CHANGES, True)

    def mark_synced(self) -> None:
        """Clear the unsynced marker after the dataset reached the remote."""
        with self._lock:
            self._unsynced = False
            if self.store is not None:
                self.store.set_json(StoreKey.UNSYNCED_CHANGES, False)

    @property
    def language(self) -> str:
        """UI language preference."""
        return self._language

    def set_language(self, language: str) -> None:
        """Persist the language preference (not synchronized)."""
        self._language = language
        if self.store is not None:
            self.store.set_json(StoreKey.LANGUAGE, language)
