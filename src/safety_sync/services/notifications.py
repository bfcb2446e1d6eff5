"""Notification bookkeeping for NOK incidents."""

import logging
import uuid
from typing import Callable, List

from ..core.store.state import AppState
from ..models import Notification, Record, now_ms

logger = logging.getLogger(__name__)

NOTIFICATIONS = "notifications"


class NotificationService:
    """Creates and updates notifications in the application state."""

    def __init__(self, state: AppState) -> None:
        """Initialize notification service.

        Args:
            state: Application state holding the notifications
        """
        self.state = state

    def notify_nok(self, record: Record) -> Notification:
        """Create the notification for a record that turned NOK."""
        notification = Notification(
            id=uuid.uuid4().hex,
            type="NOK",
            title="Nieuwe NOK Melding",
            message=(
                f"Project {record.title} is gemarkeerd als onveilig "
                f"door {record.user_name}."
            ),
            timestamp=now_ms(),
            is_read=False,
            related_id=record.id,
        )
        self.state.upsert(NOTIFICATIONS, notification)
        logger.info("NOK notification created for record %s", record.id)
        return notification

    def unread(self) -> List[Notification]:
        """Unread notifications, newest first."""
        items: List[Notification] = self.state.get(NOTIFICATIONS)
        return sorted(
            (n for n in items if not n.is_read),
            key=lambda n: n.timestamp,
            reverse=True,
        )

    def unread_count(self) -> int:
        """Number of unread notifications."""
        return len(self.unread())

    def mark_read_for(self, related_id: str) -> int:
        """Mark the notifications of one record as read.

        Returns:
            Number of notifications changed
        """
        return self._mark_read(lambda n: n.related_id == related_id)

    def mark_all_read(self) -> int:
        """Mark every notification as read.

        Returns:
            Number of notifications changed
        """
        return self._mark_read(lambda n: True)

    def _mark_read(self, predicate: Callable[[Notification], bool]) -> int:
        items: List[Notification] = self.state.get(NOTIFICATIONS)
        changed = 0
        updated: List[Notification] = []
        for notification in items:
            if not notification.is_read and predicate(notification):
                notification = notification.touched(is_read=True)
                changed += 1
            updated.append(notification)
        if changed:
            self.state.replace_collection(NOTIFICATIONS, updated)
        return changed
