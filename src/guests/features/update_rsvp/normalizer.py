"""Validation of submitted RSVP payloads.

The payload is untrusted: top-level keys are person ids, each value optionally
``{"events": {...}, "meals" | "mealSelections": {...}, "dietaryNotes": {...}}``.
Hard failures (not an object, unknown person, meal outside the option list)
reject the whole submission; everything else degrades to a safe default.
"""

import json
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.guests.dtos import (
    AttendanceRecord,
    AttendanceSource,
    AttendanceStatus,
    EventConfig,
    InvalidMealSelectionError,
    InvalidRSVPPayloadError,
    PartyEventResponse,
    PartyMember,
    UnexpectedPersonIdentifierError,
)
from src.guests.event_config import meal_requirement
from src.guests.party import compute_pending_meal_selections, normalize_invited_events, normalize_status

DIETARY_NOTE_MAX_LENGTH = 500


class SubmittedMemberResponse(BaseModel):
    """One party member's entry in the submitted payload."""

    model_config = ConfigDict(extra="ignore")

    events: dict[str, Any] = Field(default_factory=dict)
    meals: Any = None
    meal_selections: Any = Field(default=None, alias="mealSelections")
    dietary_notes: dict[str, Any] = Field(default_factory=dict, alias="dietaryNotes")

    @field_validator("events", "dietary_notes", mode="before")
    @classmethod
    def objects_only(cls, value: Any) -> dict[str, Any]:
        return value if isinstance(value, dict) else {}

    @property
    def meal_choices(self) -> dict[str, Any]:
        # ``meals`` wins over the legacy ``mealSelections`` key whenever it is set
        source = self.meals if self.meals is not None else self.meal_selections
        return source if isinstance(source, dict) else {}

    def status_for(self, event_id: str) -> AttendanceStatus:
        value = self.events.get(event_id)
        if isinstance(value, dict):
            return normalize_status(value.get("status"))
        return normalize_status(value)


def decode_payload(payload: Any) -> Mapping[str, Any]:
    if isinstance(payload, str | bytes):
        try:
            payload = json.loads(payload)
        except ValueError as e:
            raise InvalidRSVPPayloadError() from e

    # an array reads as an object keyed by position; only ``[]`` can pass the member check
    if isinstance(payload, list):
        payload = {str(index): entry for index, entry in enumerate(payload)}

    if not isinstance(payload, Mapping):
        raise InvalidRSVPPayloadError()
    return payload


def normalize_member_response(
    member: PartyMember,
    raw_entry: Any,
    event_config: Mapping[str, EventConfig],
    dietary_note_max_length: int = DIETARY_NOTE_MAX_LENGTH,
) -> PartyEventResponse:
    entry = (
        SubmittedMemberResponse.model_validate(raw_entry)
        if isinstance(raw_entry, dict)
        else SubmittedMemberResponse()
    )
    invited_events = normalize_invited_events(member.invited_events)
    meal_choices = entry.meal_choices

    attendance: dict[str, AttendanceRecord] = {}
    meal_selections: dict[str, str] = {}
    dietary_notes: dict[str, str] = {}

    for event_id in invited_events:
        status = entry.status_for(event_id)
        attendance[event_id] = AttendanceRecord(status, AttendanceSource.GUEST, None)
        config = event_config.get(event_id)

        meal_value = meal_choices.get(event_id)
        meal_choice = meal_value.strip() if isinstance(meal_value, str) else ""
        if status == AttendanceStatus.YES and meal_choice:
            if config and config.meal_options is not None and meal_choice not in config.meal_options:
                raise InvalidMealSelectionError(event_id, meal_choice)
            meal_selections[event_id] = meal_choice

        note_value = entry.dietary_notes.get(event_id)
        note = note_value.strip()[:dietary_note_max_length] if isinstance(note_value, str) else ""
        if config and config.collect_dietary_notes and note:
            dietary_notes[event_id] = note

    return PartyEventResponse(
        events=attendance,
        meal_selections=meal_selections,
        dietary_notes=dietary_notes,
        pending_meal_selections=compute_pending_meal_selections(
            invited_events, attendance, meal_selections, meal_requirement(event_config)
        ),
    )


def parse_party_responses(
    payload: Any,
    party: Sequence[PartyMember],
    event_config: Mapping[str, EventConfig],
    dietary_note_max_length: int = DIETARY_NOTE_MAX_LENGTH,
) -> dict[str, PartyEventResponse]:
    """Validate a submission against the party and the event rules.

    Returns a response for every member of the party; members missing from the
    payload get an all-pending response. Raises an ``RSVPValidationError``
    subclass when the submission must be rejected as a whole.
    """
    decoded = decode_payload(payload)

    normalized = {
        member.person_id: normalize_member_response(
            member, decoded.get(member.person_id), event_config, dietary_note_max_length
        )
        for member in party
    }

    for person_id in decoded:
        if person_id not in normalized:
            raise UnexpectedPersonIdentifierError(str(person_id))

    return normalized
