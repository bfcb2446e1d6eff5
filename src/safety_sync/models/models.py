"""Data models for the safety compliance dataset."""

import time
from enum import Enum
from typing import Any, Dict, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


_S = TypeVar("_S", bound="Syncable")


def now_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


class UserRole(str, Enum):
    """Roles known to the permission mapping."""

    ADMIN = "ADMIN"
    PREVENTIE_ADVISEUR = "PREVENTIE_ADVISEUR"
    PROJECT_MANAGER = "PROJECT_MANAGER"
    PROJECT_ASSISTENT = "PROJECT_ASSISTENT"
    WERFLEIDER = "WERFLEIDER"
    TECHNIEKER = "TECHNIEKER"


class Department(str, Enum):
    """Departments a user or record belongs to."""

    TELECOM = "TELECOM"
    LAAGSPANNING = "LAAGSPANNING"
    MIDDENSPANNING = "MIDDENSPANNING"
    GENERAL = "ALGEMEEN"


class RecordStatus(str, Enum):
    """Status of a risk assessment record."""

    OK = "OK"
    NOK = "NOK"
    RESOLVED = "RESOLVED"
    PENDING_SIGNATURE = "WACHT OP HANDTEKENING"


class Answer(str, Enum):
    """Possible answers to a safety question."""

    OK = "OK"
    NOK = "NOK"
    NVT = "NVT"


class WireModel(BaseModel):
    """Base for everything exchanged with the remote store.

    Attributes are snake_case in Python and camelCase on the wire. Unknown
    fields are kept so data written by newer clients survives a round trip.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    def to_wire(self) -> Dict[str, Any]:
        """Dump to a JSON-ready dict using wire names."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Syncable(WireModel):
    """Entity with a stable id and a recency timestamp (epoch ms)."""

    id: str
    timestamp: int = 0

    @field_validator("timestamp", mode="before")
    @classmethod
    def validate_timestamp(cls, v: Any) -> int:
        """Treat missing or unparseable timestamps as the oldest value."""
        if v is None or isinstance(v, bool):
            return 0
        try:
            return max(int(v), 0)
        except (TypeError, ValueError):
            return 0

    def touched(self: _S, **changes: Any) -> _S:
        """Return a copy with ``changes`` applied and the timestamp bumped."""
        stamp = max(now_ms(), self.timestamp + 1)
        return self.model_copy(update={**changes, "timestamp": stamp})


class User(Syncable):
    """Account record."""

    name: str = ""
    email: str = ""
    username: str = ""
    password: Optional[str] = None
    role: UserRole = UserRole.TECHNIEKER
    department: Department = Department.GENERAL
    is_external: bool = False
    must_change_password: Optional[bool] = None
    active: bool = True


class Question(WireModel):
    """A single safety question on a record."""

    id: str
    question_text: str
    answer: Optional[Answer] = None
    reason: Optional[str] = None


class Attendee(WireModel):
    """Someone who has to sign a record or meeting."""

    name: str
    user_id: Optional[str] = None
    signature: str = ""
    is_signed: bool = False


class Record(Syncable):
    """Last-minute risk assessment."""

    title: str = ""
    date: str = ""
    user_id: str = ""
    user_name: str = ""
    supervisor_id: str = ""
    department: Department = Department.GENERAL
    status: RecordStatus = RecordStatus.PENDING_SIGNATURE
    questions: List[Question] = Field(default_factory=list)
    attendees: List[Attendee] = Field(default_factory=list)
    remarks: Optional[str] = None
    treatment_notes: Optional[str] = None
    location: str = ""
    resolved_by_id: Optional[str] = None
    resolved_by_name: Optional[str] = None
    assigned_to_id: Optional[str] = None
    assigned_to_name: Optional[str] = None
    deleted_at: Optional[int] = None

    @property
    def has_nok(self) -> bool:
        """Whether any question was answered NOK."""
        return any(q.answer == Answer.NOK for q in self.questions)

    @property
    def all_signed(self) -> bool:
        """Whether every attendee has signed."""
        return all(a.is_signed for a in self.attendees)

    @property
    def is_deleted(self) -> bool:
        """Whether the record carries a tombstone."""
        return self.deleted_at is not None


class Meeting(Syncable):
    """Kick-off safety briefing."""

    project: str = ""
    date: str = ""
    user_id: str = ""
    department: Department = Department.GENERAL
    attendees: List[Attendee] = Field(default_factory=list)
    topics: List[str] = Field(default_factory=list)
    risks_identified: List[str] = Field(default_factory=list)
    location: str = ""
    deleted_at: Optional[int] = None

    @property
    def is_deleted(self) -> bool:
        """Whether the meeting carries a tombstone."""
        return self.deleted_at is not None


class Notification(Syncable):
    """Notice generated when a record turns NOK."""

    type: str = "INFO"
    title: str = ""
    message: str = ""
    is_read: bool = False
    related_id: Optional[str] = None


class AppConfig(WireModel):
    """Branding, templates and role permissions.

    Replaced as a whole when a newer remote copy arrives.
    """

    app_name: str = "VCA BEL"
    logo_url: str = ""
    record_questions: List[str] = Field(
        default_factory=list, alias="lmraQuestions"
    )
    meeting_topics: List[str] = Field(default_factory=list, alias="kickoffTopics")
    departments: List[str] = Field(default_factory=list)
    permissions: Dict[str, List[str]] = Field(default_factory=dict)

    def screens_for(self, role: UserRole) -> List[str]:
        """Screens a role may open."""
        return list(self.permissions.get(role.value, []))
