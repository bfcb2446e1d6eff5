"""Shared application context for CLI commands."""

import logging
from typing import Optional

from ...config import Config
from ...core.remote.gateway import RemoteGateway, build_gateway
from ...core.store import AppState, LocalStore, StoreKey
from ...core.sync.scheduler import SyncScheduler

logger = logging.getLogger(__name__)


class SafetySyncApp:
    """Owns the configuration, local store and application state of a CLI run."""

    def __init__(self, config: Optional[Config] = None) -> None:
        """Initialize application context.

        Args:
            config: Application configuration (read from env if None)
        """
        self.config = config or Config()
        self._store: Optional[LocalStore] = None
        self._state: Optional[AppState] = None

    @property
    def store(self) -> LocalStore:
        """Local store, opened on first use."""
        if self._store is None:
            self._store = LocalStore(self.config.database_path)
        return self._store

    @property
    def state(self) -> AppState:
        """Application state, loaded on first use."""
        if self._state is None:
            self._state = AppState.load(self.store)
        return self._state

    # =========================================================================
    # Remote settings: env first, then what the local store remembers
    # =========================================================================

    def workspace_id(self) -> Optional[str]:
        """Workspace to sync, if any is configured."""
        stored = self.store.get_json(StoreKey.WORKSPACE_ID)
        return self.config.workspace_id or (stored if isinstance(stored, str) else None)

    def remote_mode(self) -> str:
        """Remote backend mode."""
        stored = self.store.get_json(StoreKey.REMOTE_MODE)
        if self.config.remote_mode:
            return self.config.remote_mode
        return stored if isinstance(stored, str) else "blob"

    def remote_url(self) -> Optional[str]:
        """Remote endpoint URL."""
        stored = self.store.get_json(StoreKey.REMOTE_URL)
        return self.config.remote_url or (stored if isinstance(stored, str) else None)

    def remember_workspace(
        self, workspace_id: str, mode: Optional[str] = None, url: Optional[str] = None
    ) -> None:
        """Persist workspace settings in the local store."""
        self.store.set_json(StoreKey.WORKSPACE_ID, workspace_id)
        if mode:
            self.store.set_json(StoreKey.REMOTE_MODE, mode.lower())
        if url:
            self.store.set_json(StoreKey.REMOTE_URL, url)
        logger.info("Workspace set to %s", workspace_id)

    def build_gateway(self) -> RemoteGateway:
        """Create the gateway for the configured remote."""
        return build_gateway(
            self.remote_mode(),
            self.remote_url(),
            timeout_s=self.config.request_timeout_s,
        )

    def build_scheduler(self, settle_window_s: Optional[float] = None) -> SyncScheduler:
        """Create a scheduler for the configured workspace."""
        return SyncScheduler(
            self.state,
            self.build_gateway(),
            self.workspace_id(),
            pull_interval_s=self.config.pull_interval_s,
            push_debounce_s=self.config.push_debounce_s,
            settle_window_s=(
                settle_window_s
                if settle_window_s is not None
                else self.config.settle_window_s
            ),
        )

    def close(self) -> None:
        """Release the local store."""
        if self._store is not None:
            self._store.close()
