"""Persisted key-value store holding the local copy of the dataset."""

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from sqlalchemy import create_engine, inspect, select
from sqlalchemy.orm import Session, sessionmaker

from .models import Base, KeyValueEntry

logger = logging.getLogger(__name__)


class StoreKey(str, Enum):
    """Keys persisted in the local store, one per concern."""

    LANGUAGE = "language"
    APP_CONFIG = "app_config"
    CONFIG_UPDATED_AT = "app_config_updated_at"
    USERS = "users"
    RECORDS = "records"
    NOTIFICATIONS = "notifications"
    MEETINGS = "meetings"
    REMOTE_URL = "remote_url"
    REMOTE_MODE = "remote_mode"
    WORKSPACE_ID = "workspace_id"
    SESSION = "session_user"
    UNSYNCED_CHANGES = "unsynced_changes"


class LocalStore:
    """SQLite-backed key-value store with JSON values."""

    def __init__(self, db_path: Optional[Path] = None) -> None:
        """Initialize local store.

        Args:
            db_path: Path to SQLite database file.
                    If None, uses default ~/.safety-sync/store.db
        """
        if db_path is None:
            db_path = Path.home() / ".safety-sync" / "store.db"

        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self.engine = create_engine(f"sqlite:///{self.db_path}", echo=False)
        self.SessionLocal = sessionmaker(
            autocommit=False, autoflush=False, bind=self.engine
        )
        Base.metadata.create_all(bind=self.engine)
        logger.debug("Local store opened at: %s", self.db_path)

    def get_session(self) -> Session:
        """Get a new database session.

        Note:
            Caller is responsible for closing the session
        """
        return self.SessionLocal()

    def is_initialized(self) -> bool:
        """Check whether the key-value table exists."""
        return inspect(self.engine).has_table(KeyValueEntry.__tablename__)

    def get_raw(self, key: StoreKey) -> Optional[str]:
        """Get the stored text for a key, or None if unset."""
        with self.get_session() as session:
            entry = session.get(KeyValueEntry, key.value)
            return entry.value if entry else None

    def get_json(self, key: StoreKey, default: Any = None) -> Any:
        """Get and decode a JSON value.

        An unparseable value is treated as absent so callers fall back to their
        defaults instead of failing on a corrupt store.

        Args:
            key: Key to read
            default: Value returned when the key is unset or unreadable

        Returns:
            Decoded value or ``default``
        """
        raw = self.get_raw(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("Corrupt value for %s, using default: %s", key.value, e)
            return default

    def set_json(self, key: StoreKey, value: Any) -> None:
        """Encode and store a JSON value, replacing any previous one."""
        encoded = json.dumps(value, ensure_ascii=False)
        with self.get_session() as session:
            entry = session.get(KeyValueEntry, key.value)
            if entry is None:
                session.add(KeyValueEntry(key=key.value, value=encoded))
            else:
                entry.value = encoded
            session.commit()

    def delete(self, key: StoreKey) -> None:
        """Remove a key if present."""
        with self.get_session() as session:
            entry = session.get(KeyValueEntry, key.value)
            if entry is not None:
                session.delete(entry)
                session.commit()

    def keys(self) -> list[str]:
        """List the keys currently stored."""
        with self.get_session() as session:
            return list(session.scalars(select(KeyValueEntry.key)))

    def close(self) -> None:
        """Release database connections."""
        self.engine.dispose()
