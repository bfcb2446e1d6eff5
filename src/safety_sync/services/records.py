"""Service for last-minute risk assessment records.

Status is derived when a record is mutated, never during a merge:
- Not every attendee signed -> PENDING_SIGNATURE
- Any question answered NOK -> NOK
- Otherwise -> OK
RESOLVED is only reached through ``resolve``.

A record is only stored once every question is answered and every NOK answer
carries a reason.
"""

import logging
import uuid
from datetime import date as date_type
from typing import Iterable, List, Optional

from ..core.store.state import AppState
from ..models import (
    Answer,
    Attendee,
    Department,
    Question,
    Record,
    RecordStatus,
    User,
    UserRole,
    now_ms,
)
from .notifications import NotificationService

logger = logging.getLogger(__name__)

RECORDS = "records"

# Roles that see every open NOK, not only the ones assigned to them
NOK_MANAGER_ROLES = {UserRole.ADMIN, UserRole.PREVENTIE_ADVISEUR}


class RecordServiceError(Exception):
    """Raised when a record operation is not allowed."""


def derive_status(
    questions: Iterable[Question], attendees: Iterable[Attendee]
) -> RecordStatus:
    """Compute the status of a record from its questions and attendees."""
    if not all(a.is_signed for a in attendees):
        return RecordStatus.PENDING_SIGNATURE
    if any(q.answer == Answer.NOK for q in questions):
        return RecordStatus.NOK
    return RecordStatus.OK


def _check_answers(questions: Iterable[Question]) -> None:
    unanswered = [q.question_text for q in questions if q.answer is None]
    if unanswered:
        raise RecordServiceError(
            f"All questions must be answered ({len(unanswered)} open)"
        )


def _check_reasons(questions: Iterable[Question]) -> None:
    for question in questions:
        if question.answer == Answer.NOK and not (question.reason or "").strip():
            raise RecordServiceError(
                f"A reason is required for NOK answer on '{question.question_text}'"
            )


class RecordService:
    """Creates and mutates records in the application state."""

    def __init__(
        self,
        state: AppState,
        notifications: Optional[NotificationService] = None,
    ) -> None:
        """Initialize record service.

        Args:
            state: Application state holding the records
            notifications: Notification service (created if None)
        """
        self.state = state
        self.notifications = notifications or NotificationService(state)

    def questions_from_templates(self) -> List[Question]:
        """Build unanswered questions from the configured templates."""
        return [
            Question(id=f"q{index}", question_text=text)
            for index, text in enumerate(self.state.config.record_questions)
        ]

    def get(self, record_id: str) -> Record:
        """Get a live record by id.

        Raises:
            RecordServiceError: If the record is unknown or deleted
        """
        record: Optional[Record] = self.state.find(RECORDS, record_id)
        if record is None or record.is_deleted:
            raise RecordServiceError(f"Record not found: {record_id}")
        return record

    def create_record(
        self,
        title: str,
        location: str,
        author: User,
        questions: List[Question],
        attendees: Optional[List[Attendee]] = None,
        supervisor_id: str = "",
        department: Optional[Department] = None,
        remarks: Optional[str] = None,
        record_date: Optional[date_type] = None,
    ) -> Record:
        """Create a record and emit a notification when it is NOK.

        Args:
            title: Project or job title
            location: Work location
            author: User filling in the assessment
            questions: Questions, every one answered
            attendees: Attendees (the author only if None)
            supervisor_id: Id of the responsible supervisor
            department: Department (the author's if None)
            remarks: Free-text remarks
            record_date: Date of the assessment (today if None)

        Returns:
            The stored record

        Raises:
            RecordServiceError: If a question is unanswered or a NOK lacks a reason
        """
        _check_answers(questions)
        _check_reasons(questions)
        if attendees is None:
            attendees = [Attendee(name=author.name, user_id=author.id)]

        record = Record(
            id=uuid.uuid4().hex,
            title=title,
            date=(record_date or date_type.today()).isoformat(),
            timestamp=now_ms(),
            user_id=author.id,
            user_name=author.name,
            supervisor_id=supervisor_id,
            department=department or author.department,
            status=derive_status(questions, attendees),
            questions=questions,
            attendees=attendees,
            remarks=remarks,
            location=location,
        )
        self.state.upsert(RECORDS, record)
        logger.info("Created record %s (%s)", record.id, record.status.value)
        if record.status == RecordStatus.NOK:
            self.notifications.notify_nok(record)
        return record

    def copy_record(
        self,
        record_id: str,
        author: User,
        questions: List[Question],
        record_date: Optional[date_type] = None,
    ) -> Record:
        """Create a new record for the same job as an existing one.

        Title, location, department, supervisor and attendees are taken over.
        Signatures are cleared and the questions are answered anew.
        """
        source = self.get(record_id)
        attendees = [
            a.model_copy(update={"signature": "", "is_signed": False})
            for a in source.attendees
        ]
        record = self.create_record(
            source.title,
            source.location,
            author,
            questions,
            attendees=attendees,
            supervisor_id=source.supervisor_id,
            department=source.department,
            record_date=record_date,
        )
        logger.info("Copied record %s into %s", record_id, record.id)
        return record

    def _save(self, previous: Record, record: Record) -> Record:
        if record.status != RecordStatus.RESOLVED:
            record = record.model_copy(
                update={"status": derive_status(record.questions, record.attendees)}
            )
        self.state.upsert(RECORDS, record)
        if record.status == RecordStatus.NOK and previous.status != RecordStatus.NOK:
            self.notifications.notify_nok(record)
        return record

    def answer_question(
        self,
        record_id: str,
        question_id: str,
        answer: Answer,
        reason: Optional[str] = None,
    ) -> Record:
        """Set the answer of one question and recompute the status."""
        record = self.get(record_id)
        questions: List[Question] = []
        found = False
        for question in record.questions:
            if question.id == question_id:
                found = True
                question = question.model_copy(
                    update={
                        "answer": answer,
                        "reason": reason if answer == Answer.NOK else None,
                    }
                )
            questions.append(question)
        if not found:
            raise RecordServiceError(f"Question not found: {question_id}")
        _check_reasons(questions)
        return self._save(record, record.touched(questions=questions))

    def add_attendee(
        self, record_id: str, name: str, user_id: Optional[str] = None
    ) -> Record:
        """Add an attendee who still has to sign."""
        record = self.get(record_id)
        name = name.strip()
        if not name:
            raise RecordServiceError("Attendee name is required")
        if user_id and any(a.user_id == user_id for a in record.attendees):
            raise RecordServiceError(f"User {user_id} already attends")
        attendees = [*record.attendees, Attendee(name=name, user_id=user_id)]
        return self._save(record, record.touched(attendees=attendees))

    def sign(self, record_id: str, attendee_index: int, signature: str) -> Record:
        """Record an attendee's signature and recompute the status."""
        record = self.get(record_id)
        if not 0 <= attendee_index < len(record.attendees):
            raise RecordServiceError(f"No attendee at index {attendee_index}")
        if not signature:
            raise RecordServiceError("Signature is required")
        attendees = list(record.attendees)
        attendees[attendee_index] = attendees[attendee_index].model_copy(
            update={"signature": signature, "is_signed": True}
        )
        return self._save(record, record.touched(attendees=attendees))

    def assign(self, record_id: str, assignee: User) -> Record:
        """Assign a NOK record to a user for follow-up."""
        record = self.get(record_id)
        updated = record.touched(
            assigned_to_id=assignee.id, assigned_to_name=assignee.name or "Onbekend"
        )
        return self._save(record, updated)

    def resolve(self, record_id: str, resolver: User, treatment_notes: str) -> Record:
        """Close a NOK record and mark its notifications as read.

        Raises:
            RecordServiceError: If the record is not NOK
        """
        record = self.get(record_id)
        if record.status != RecordStatus.NOK:
            raise RecordServiceError(
                f"Only NOK records can be resolved (status: {record.status.value})"
            )
        updated = record.touched(
            status=RecordStatus.RESOLVED,
            treatment_notes=treatment_notes,
            resolved_by_id=resolver.id,
            resolved_by_name=resolver.name,
        )
        self.state.upsert(RECORDS, updated)
        self.notifications.mark_read_for(record_id)
        logger.info("Record %s resolved by %s", record_id, resolver.id)
        return updated

    def delete(self, record_id: str) -> Record:
        """Tombstone a record so merges do not bring it back."""
        record = self.get(record_id)
        updated = record.touched(deleted_at=now_ms())
        self.state.upsert(RECORDS, updated)
        logger.info("Record %s deleted", record_id)
        return updated

    def list_records(self, include_deleted: bool = False) -> List[Record]:
        """Records newest first, tombstones hidden unless requested."""
        records: List[Record] = self.state.get(RECORDS)
        if not include_deleted:
            records = [r for r in records if not r.is_deleted]
        return sorted(records, key=lambda r: r.timestamp, reverse=True)

    def open_noks(self, viewer: User) -> List[Record]:
        """Open NOK records the viewer is responsible for."""
        noks = [r for r in self.list_records() if r.status == RecordStatus.NOK]
        if viewer.role in NOK_MANAGER_ROLES:
            return noks
        return [r for r in noks if r.assigned_to_id == viewer.id]
