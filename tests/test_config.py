"""Tests for environment-based configuration."""

import pytest

from safety_sync.config import Config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Isolate tests from the developer's environment."""
    for name in (
        "SAFETY_SYNC_REMOTE_MODE",
        "SAFETY_SYNC_REMOTE_URL",
        "SAFETY_SYNC_WORKSPACE_ID",
        "SAFETY_SYNC_REQUEST_TIMEOUT",
        "SAFETY_SYNC_PULL_INTERVAL",
        "SAFETY_SYNC_PUSH_DEBOUNCE",
        "SAFETY_SYNC_SETTLE_WINDOW",
        "SAFETY_SYNC_LOG_LEVEL",
        "SAFETY_SYNC_LOG_FILE",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("SAFETY_SYNC_DATABASE_PATH", str(tmp_path / "db" / "store.db"))


class TestConfig:
    """Test Config."""

    def test_defaults(self, tmp_path):
        """Test defaults when nothing is configured."""
        config = Config()

        assert config.database_path == tmp_path / "db" / "store.db"
        assert config.database_path.parent.is_dir()
        assert config.remote_mode is None
        assert config.workspace_id is None
        assert config.pull_interval_s == 20.0
        assert config.push_debounce_s == 2.0
        assert config.settle_window_s == 1.0
        assert config.log_level == "INFO"
        assert config.log_file is None

    def test_environment_overrides(self, monkeypatch):
        """Test values are read from the environment."""
        monkeypatch.setenv("SAFETY_SYNC_REMOTE_MODE", "WEBHOOK")
        monkeypatch.setenv("SAFETY_SYNC_REMOTE_URL", "https://script.example/exec")
        monkeypatch.setenv("SAFETY_SYNC_WORKSPACE_ID", "sheet-1")
        monkeypatch.setenv("SAFETY_SYNC_PULL_INTERVAL", "5")
        monkeypatch.setenv("SAFETY_SYNC_LOG_LEVEL", "debug")

        config = Config()

        assert config.remote_mode == "webhook"
        assert config.remote_url == "https://script.example/exec"
        assert config.workspace_id == "sheet-1"
        assert config.pull_interval_s == 5.0
        assert config.log_level == "DEBUG"

    def test_invalid_mode(self, monkeypatch):
        """Test an unknown remote mode is rejected."""
        monkeypatch.setenv("SAFETY_SYNC_REMOTE_MODE", "ftp")

        with pytest.raises(ValueError, match="SAFETY_SYNC_REMOTE_MODE"):
            Config()

    def test_invalid_number(self, monkeypatch):
        """Test a non-numeric timing is rejected."""
        monkeypatch.setenv("SAFETY_SYNC_PUSH_DEBOUNCE", "soon")

        with pytest.raises(ValueError, match="SAFETY_SYNC_PUSH_DEBOUNCE"):
            Config()

    def test_blank_number_uses_default(self, monkeypatch):
        """Test an empty timing falls back to the default."""
        monkeypatch.setenv("SAFETY_SYNC_SETTLE_WINDOW", " ")

        assert Config().settle_window_s == 1.0
