"""Service for kick-off safety meetings."""

import logging
import uuid
from datetime import date as date_type
from typing import List, Optional

from ..core.store.state import AppState
from ..models import Attendee, Department, Meeting, User, now_ms

logger = logging.getLogger(__name__)

MEETINGS = "meetings"


class MeetingServiceError(Exception):
    """Raised when a meeting operation is not allowed."""


class MeetingService:
    """Creates and mutates kick-off meetings in the application state."""

    def __init__(self, state: AppState) -> None:
        """Initialize meeting service.

        Args:
            state: Application state holding the meetings
        """
        self.state = state

    def get(self, meeting_id: str) -> Meeting:
        """Get a live meeting by id."""
        meeting: Optional[Meeting] = self.state.find(MEETINGS, meeting_id)
        if meeting is None or meeting.is_deleted:
            raise MeetingServiceError(f"Meeting not found: {meeting_id}")
        return meeting

    def create_meeting(
        self,
        project: str,
        location: str,
        author: User,
        topics: Optional[List[str]] = None,
        risks_identified: Optional[List[str]] = None,
        attendees: Optional[List[Attendee]] = None,
        department: Optional[Department] = None,
        meeting_date: Optional[date_type] = None,
    ) -> Meeting:
        """Create a kick-off meeting.

        Topics default to the configured kick-off topics and attendees to the
        author alone.
        """
        meeting = Meeting(
            id=uuid.uuid4().hex,
            project=project,
            date=(meeting_date or date_type.today()).isoformat(),
            timestamp=now_ms(),
            user_id=author.id,
            department=department or author.department,
            attendees=(
                attendees
                if attendees is not None
                else [Attendee(name=author.name, user_id=author.id)]
            ),
            topics=(
                topics if topics is not None else list(self.state.config.meeting_topics)
            ),
            risks_identified=list(risks_identified or []),
            location=location,
        )
        self.state.upsert(MEETINGS, meeting)
        logger.info("Created meeting %s for %s", meeting.id, project)
        return meeting

    def add_risk(self, meeting_id: str, risk: str) -> Meeting:
        """Add an identified risk."""
        meeting = self.get(meeting_id)
        risk = risk.strip()
        if not risk:
            raise MeetingServiceError("Risk description is required")
        updated = meeting.touched(risks_identified=[*meeting.risks_identified, risk])
        self.state.upsert(MEETINGS, updated)
        return updated

    def sign(self, meeting_id: str, attendee_index: int, signature: str) -> Meeting:
        """Record an attendee's signature."""
        meeting = self.get(meeting_id)
        if not 0 <= attendee_index < len(meeting.attendees):
            raise MeetingServiceError(f"No attendee at index {attendee_index}")
        attendees = list(meeting.attendees)
        attendees[attendee_index] = attendees[attendee_index].model_copy(
            update={"signature": signature, "is_signed": True}
        )
        updated = meeting.touched(attendees=attendees)
        self.state.upsert(MEETINGS, updated)
        return updated

    def delete(self, meeting_id: str) -> Meeting:
        """Tombstone a meeting so merges do not bring it back."""
        meeting = self.get(meeting_id)
        updated = meeting.touched(deleted_at=now_ms())
        self.state.upsert(MEETINGS, updated)
        logger.info("Meeting %s deleted", meeting_id)
        return updated

    def list_meetings(self) -> List[Meeting]:
        """Live meetings, newest first."""
        meetings: List[Meeting] = self.state.get(MEETINGS)
        return sorted(
            (m for m in meetings if not m.is_deleted),
            key=lambda m: m.timestamp,
            reverse=True,
        )
