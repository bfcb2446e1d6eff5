"""Service for the shared app configuration.

The configuration travels as one object and a pulled copy replaces the local
one only when it is newer than the last local edit. Every edit here therefore
builds a new ``AppConfig`` and stores it through ``AppState.set_config``, which
stamps the change time.
"""

import logging
from typing import List

from ..core.store.state import AppState
from ..models import SCREENS, AppConfig, UserRole

logger = logging.getLogger(__name__)

NEW_TEMPLATE_TEXT = "Nieuwe item"

# Template lists by short name, as attribute names of AppConfig
TEMPLATE_LISTS = {
    "questions": "record_questions",
    "topics": "meeting_topics",
}


class ConfigServiceError(Exception):
    """Raised when a configuration edit is not valid."""


class ConfigService:
    """Edits branding, templates and role permissions."""

    def __init__(self, state: AppState) -> None:
        """Initialize config service.

        Args:
            state: Application state holding the configuration
        """
        self.state = state

    @property
    def config(self) -> AppConfig:
        """Current configuration."""
        return self.state.config

    def _store(self, **changes) -> AppConfig:
        config = self.state.config.model_copy(update=changes, deep=True)
        if self.state.set_config(config):
            logger.info("Config updated: %s", ", ".join(sorted(changes)))
        return config

    # =========================================================================
    # Branding
    # =========================================================================

    def set_app_name(self, name: str) -> AppConfig:
        """Rename the application."""
        name = name.strip()
        if not name:
            raise ConfigServiceError("App name is required")
        return self._store(app_name=name)

    def set_logo_url(self, url: str) -> AppConfig:
        """Change the logo shown in the header."""
        return self._store(logo_url=url.strip())

    # =========================================================================
    # Permissions
    # =========================================================================

    def toggle_permission(self, role: UserRole, screen: str) -> bool:
        """Grant or revoke access to a screen for a role.

        Returns:
            True if the role can open the screen afterwards
        """
        if screen not in SCREENS:
            raise ConfigServiceError(f"Unknown screen: {screen}")
        screens = self.config.screens_for(role)
        granted = screen not in screens
        if granted:
            screens.append(screen)
        else:
            screens.remove(screen)
        permissions = dict(self.config.permissions)
        permissions[role.value] = screens
        self._store(permissions=permissions)
        return granted

    # =========================================================================
    # Templates
    # =========================================================================

    def templates(self, kind: str) -> List[str]:
        """Question or topic templates."""
        return list(getattr(self.config, self._attribute(kind)))

    def add_template(self, kind: str, text: str = NEW_TEMPLATE_TEXT) -> AppConfig:
        """Append a template."""
        items = self.templates(kind)
        items.append(text)
        return self._store(**{self._attribute(kind): items})

    def update_template(self, kind: str, index: int, text: str) -> AppConfig:
        """Replace the text of a template."""
        items = self.templates(kind)
        self._check_index(items, index)
        items[index] = text
        return self._store(**{self._attribute(kind): items})

    def remove_template(self, kind: str, index: int) -> AppConfig:
        """Remove a template.

        Records and meetings already created keep their own copy of the text.
        """
        items = self.templates(kind)
        self._check_index(items, index)
        del items[index]
        return self._store(**{self._attribute(kind): items})

    @staticmethod
    def _attribute(kind: str) -> str:
        try:
            return TEMPLATE_LISTS[kind]
        except KeyError:
            raise ConfigServiceError(f"Unknown template list: {kind}") from None

    @staticmethod
    def _check_index(items: List[str], index: int) -> None:
        if not 0 <= index < len(items):
            raise ConfigServiceError(f"No template at index {index}")
