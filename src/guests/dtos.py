from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from uuid import UUID


class RSVPValidationError(ValueError):
    """Base class for submissions rejected before any state is touched."""

    message = "Invalid RSVP payload"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)


class InvalidRSVPPayloadError(RSVPValidationError):
    """Raised when the submitted payload is not a JSON object."""

    message = "Invalid RSVP payload"


class UnexpectedPersonIdentifierError(RSVPValidationError):
    """Raised when the payload addresses someone outside the party."""

    message = "Unexpected person identifier"

    def __init__(self, person_id: str) -> None:
        self.person_id = person_id
        super().__init__()


class InvalidMealSelectionError(RSVPValidationError):
    """Raised when a meal choice is not one of the event's meal options."""

    message = "Invalid meal selection"

    def __init__(self, event_id: str, choice: str) -> None:
        self.event_id = event_id
        self.choice = choice
        super().__init__()


class GuestNotFoundError(LookupError):
    """Raised when no guest matches the RSVP token or id."""

    def __init__(self) -> None:
        super().__init__("Guest not found")


class PartyMemberNotFoundError(LookupError):
    def __init__(self, person_id: str) -> None:
        self.person_id = person_id
        super().__init__("Party member not found")


class EventNotFoundError(LookupError):
    def __init__(self, event_id: str) -> None:
        self.event_id = event_id
        super().__init__("Event not found")


class EventNotConfiguredError(RuntimeError):
    """Raised when no event details record exists."""

    def __init__(self) -> None:
        super().__init__("Event not configured")


class RSVPClosedError(Exception):
    """Raised when the event details close RSVPs."""

    code = "RSVP_CLOSED"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class RSVPRateLimitError(Exception):
    code = "RSVP_RATE_LIMIT"

    def __init__(self) -> None:
        self.message = "Please wait a moment before submitting again."
        super().__init__(self.message)


class AttendanceStatus(str, Enum):
    PENDING = "pending"
    YES = "yes"
    NO = "no"


class AttendanceSource(str, Enum):
    GUEST = "guest"
    SYSTEM = "system"
    ADMIN = "admin"


class PartyRole(str, Enum):
    PRIMARY = "primary"
    COMPANION = "companion"
    GUEST = "guest"


class AuditEventType(str, Enum):
    RSVP_SUBMIT = "rsvp_submit"
    EVENT_ATTENDANCE_UPDATED = "event_attendance_updated"


@dataclass(frozen=True)
class AttendanceRecord:
    """One person's answer for one event, with who set it and when.

    ``changed_at`` stays ``None`` until a person (guest or admin) sets the status.
    """

    status: AttendanceStatus = AttendanceStatus.PENDING
    source: AttendanceSource = AttendanceSource.SYSTEM
    changed_at: int | float | None = None


@dataclass(frozen=True)
class PartyMember:
    """A person in a guest's party.

    Every key of ``attendance``, ``meal_selections``, ``dietary_notes`` and
    ``pending_meal_selections`` belongs to ``invited_events``. A meal selection
    exists only while attendance for that event is ``yes``.
    """

    person_id: str
    role: PartyRole
    invited_events: tuple[str, ...] = ()
    attendance: Mapping[str, AttendanceRecord] = field(default_factory=dict)
    meal_selections: Mapping[str, str] = field(default_factory=dict)
    dietary_notes: Mapping[str, str] = field(default_factory=dict)
    pending_meal_selections: tuple[str, ...] = ()
    first_name: str = ""
    last_name: str = ""


@dataclass(frozen=True)
class PartyEventResponse:
    """What was submitted (and derived) for one member in one RSVP cycle."""

    events: Mapping[str, AttendanceRecord] = field(default_factory=dict)
    meal_selections: Mapping[str, str] = field(default_factory=dict)
    dietary_notes: Mapping[str, str] = field(default_factory=dict)
    pending_meal_selections: tuple[str, ...] = ()


@dataclass(frozen=True)
class RSVPSnapshotDTO:
    """Current-state RSVP record, one per guest, replaced on every submission."""

    party_responses: Mapping[str, PartyEventResponse]
    submitted_at: str


@dataclass(frozen=True)
class EventConfig:
    """Per-event RSVP rules. ``meal_options`` of ``None`` allows free text."""

    requires_meal_selection: bool = False
    meal_options: frozenset[str] | None = None
    collect_dietary_notes: bool = False


@dataclass(frozen=True)
class AuditEventDTO:
    type: AuditEventType
    occurred_at: int


@dataclass(frozen=True)
class GuestRecordDTO:
    """A guest row as the RSVP flow sees it."""

    guest_id: UUID
    email_hash: str
    profile: dict[str, Any]


@dataclass(frozen=True)
class ReconciliationResultDTO:
    party: tuple[PartyMember, ...]
    stored_responses: Mapping[str, PartyEventResponse]


@dataclass(frozen=True)
class RSVPSubmissionPlanDTO:
    """Everything a submission wants persisted, computed without I/O."""

    guest_profile: dict[str, Any]
    rsvp: RSVPSnapshotDTO
    audit_events: tuple[AuditEventDTO, ...]
    pending_meal_events: list[str]
    attendance_changed: bool


@dataclass(frozen=True)
class RSVPSubmissionResultDTO:
    pending_meal_events: list[str]
    attendance_changed: bool


@dataclass(frozen=True)
class PartyStateDTO:
    """Party state for rendering the RSVP form."""

    guest_id: UUID
    party: tuple[PartyMember, ...]
    pending_meal_events: list[str]
    submitted_at: str | None = None
