"""Configuration management for the safety sync application."""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .core.remote.gateway import DEFAULT_TIMEOUT_S, RemoteMode
from .core.sync.scheduler import (
    DEFAULT_PULL_INTERVAL_S,
    DEFAULT_PUSH_DEBOUNCE_S,
    DEFAULT_SETTLE_WINDOW_S,
)

# Load .env file from config directory or project root
config_env = Path(__file__).parent.parent.parent / "config" / ".env"
if config_env.exists():
    load_dotenv(config_env)
else:
    # Fallback to project root .env
    load_dotenv()


def _float_env(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {value!r}") from e


class Config:
    """Application configuration."""

    def __init__(self) -> None:
        """Initialize configuration from environment variables."""
        # Local store
        default_db_path = str(Path.home() / ".safety-sync" / "store.db")
        self.database_path = Path(
            os.getenv("SAFETY_SYNC_DATABASE_PATH", default_db_path)
        ).expanduser()

        # Remote store; unset values fall back to what the local store remembers
        self.remote_mode = os.getenv("SAFETY_SYNC_REMOTE_MODE", "").lower() or None
        if self.remote_mode is not None and self.remote_mode not in {
            m.value for m in RemoteMode
        }:
            raise ValueError(f"Unknown SAFETY_SYNC_REMOTE_MODE: {self.remote_mode}")
        self.remote_url: Optional[str] = os.getenv("SAFETY_SYNC_REMOTE_URL") or None
        self.workspace_id: Optional[str] = (
            os.getenv("SAFETY_SYNC_WORKSPACE_ID") or None
        )
        self.request_timeout_s = _float_env(
            "SAFETY_SYNC_REQUEST_TIMEOUT", DEFAULT_TIMEOUT_S
        )

        # Scheduler timings
        self.pull_interval_s = _float_env(
            "SAFETY_SYNC_PULL_INTERVAL", DEFAULT_PULL_INTERVAL_S
        )
        self.push_debounce_s = _float_env(
            "SAFETY_SYNC_PUSH_DEBOUNCE", DEFAULT_PUSH_DEBOUNCE_S
        )
        self.settle_window_s = _float_env(
            "SAFETY_SYNC_SETTLE_WINDOW", DEFAULT_SETTLE_WINDOW_S
        )

        # Logging
        self.log_level = os.getenv("SAFETY_SYNC_LOG_LEVEL", "INFO").upper()
        log_file = os.getenv("SAFETY_SYNC_LOG_FILE")
        self.log_file = Path(log_file).expanduser() if log_file else None

        # Ensure directories exist
        self._ensure_directories()

    def _ensure_directories(self) -> None:
        """Ensure required directories exist."""
        self.database_path.parent.mkdir(parents=True, exist_ok=True)


def get_config() -> Config:
    """Get application configuration."""
    return Config()
