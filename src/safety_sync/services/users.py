"""Service for user accounts.

Users merge by id and timestamp like every other collection, so each edit
bumps the timestamp of the edited account only.
"""

import logging
import uuid
from typing import Any, List, Optional

from ..core.store.state import AppState
from ..models import Department, User, UserRole

logger = logging.getLogger(__name__)

USERS = "users"


class UserServiceError(Exception):
    """Raised when a user operation is not allowed."""


class UserService:
    """Manages user accounts in the application state."""

    def __init__(self, state: AppState) -> None:
        """Initialize user service.

        Args:
            state: Application state holding the users
        """
        self.state = state

    def list_users(self, include_inactive: bool = False) -> List[User]:
        """Users sorted by name."""
        users: List[User] = self.state.get(USERS)
        if not include_inactive:
            users = [u for u in users if u.active]
        return sorted(users, key=lambda u: u.name.lower())

    def get(self, user_id: str) -> User:
        """Get a user by id."""
        user: Optional[User] = self.state.find(USERS, user_id)
        if user is None:
            raise UserServiceError(f"User not found: {user_id}")
        return user

    def find_by_username(self, username: str) -> Optional[User]:
        """Case-insensitive lookup by username."""
        wanted = username.strip().lower()
        for user in self.state.get(USERS):
            if user.username.lower() == wanted:
                return user
        return None

    def add_user(
        self,
        name: str,
        username: str,
        email: str = "",
        role: UserRole = UserRole.TECHNIEKER,
        department: Department = Department.GENERAL,
        is_external: bool = False,
    ) -> User:
        """Create an account.

        Raises:
            UserServiceError: If the username is already taken
        """
        if not username.strip():
            raise UserServiceError("Username is required")
        if self.find_by_username(username) is not None:
            raise UserServiceError(f"Username already exists: {username}")
        user = User(
            id=uuid.uuid4().hex,
            name=name,
            email=email,
            username=username.strip(),
            role=role,
            department=department,
            is_external=is_external,
            must_change_password=True,
        ).touched()
        self.state.upsert(USERS, user)
        logger.info("Added user %s (%s)", user.username, role.value)
        return user

    def update_user(self, user_id: str, **changes: Any) -> User:
        """Apply attribute changes to one account."""
        user = self.get(user_id)
        fields = set(changes)
        forbidden = (fields - set(User.model_fields)) | (fields & {"id", "timestamp"})
        if forbidden:
            raise UserServiceError(f"Cannot update fields: {sorted(forbidden)}")
        updated = user.touched(**changes)
        self.state.upsert(USERS, updated)
        return updated

    def deactivate(self, user_id: str) -> User:
        """Disable an account without removing it."""
        return self.update_user(user_id, active=False)

    def screens_for(self, user: User) -> List[str]:
        """Screens the user's role may open according to the app config."""
        return self.state.config.screens_for(user.role)
