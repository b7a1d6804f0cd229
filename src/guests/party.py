"""Party member model helpers.

Pure functions over the frozen party dataclasses: coercion of stored JSON into
members, cloning, pending-meal derivation and conversion back to the stored
camelCase shape. Nothing here performs I/O.
"""

import math
from collections.abc import Callable, Iterable, Mapping
from dataclasses import replace
from typing import Any

from src.guests.dtos import (
    AttendanceRecord,
    AttendanceSource,
    AttendanceStatus,
    PartyEventResponse,
    PartyMember,
    PartyRole,
    RSVPSnapshotDTO,
)

PRIMARY_ID = "primary"
COMPANION_ID = "companion"
GUEST_ID = "guest"


def normalize_status(value: Any) -> AttendanceStatus:
    if value in (AttendanceStatus.YES.value, AttendanceStatus.NO.value):
        return AttendanceStatus(value)
    return AttendanceStatus.PENDING


def normalize_source(value: Any, fallback: AttendanceSource) -> AttendanceSource:
    try:
        return AttendanceSource(value)
    except (TypeError, ValueError):
        return fallback


def default_attendance_record() -> AttendanceRecord:
    return AttendanceRecord(AttendanceStatus.PENDING, AttendanceSource.SYSTEM, None)


def attendance_record_from_value(
    value: Any, fallback_source: AttendanceSource = AttendanceSource.SYSTEM
) -> AttendanceRecord:
    """Coerce a stored attendance entry, legacy bare statuses included."""
    if isinstance(value, AttendanceRecord):
        return AttendanceRecord(value.status, value.source, value.changed_at)
    if not isinstance(value, Mapping):
        return AttendanceRecord(normalize_status(value), fallback_source, None)

    changed_at = value.get("changedAt", value.get("updatedAt"))
    if isinstance(changed_at, bool) or not isinstance(changed_at, int | float):
        changed_at = None
    elif not math.isfinite(changed_at):
        changed_at = None

    return AttendanceRecord(
        status=normalize_status(value.get("status")),
        source=normalize_source(value.get("source"), fallback_source),
        changed_at=changed_at,
    )


def normalize_invited_events(raw: Any) -> tuple[str, ...]:
    """Trim, drop blanks and non-strings, dedupe keeping first occurrence."""
    if not isinstance(raw, list | tuple):
        return ()
    events: list[str] = []
    for event_id in raw:
        if not isinstance(event_id, str):
            continue
        event_id = event_id.strip()
        if event_id and event_id not in events:
            events.append(event_id)
    return tuple(events)


def clean_pending_meal_selections(pending: Any) -> tuple[str, ...]:
    return normalize_invited_events(pending)


def compute_pending_meal_selections(
    invited_events: Iterable[str],
    attendance: Mapping[str, AttendanceRecord],
    meal_selections: Mapping[str, str] | None,
    requires_meal_selection: Callable[[str], bool],
) -> tuple[str, ...]:
    """Events the member attends, that need a meal, and have none recorded."""
    pending: list[str] = []
    for event_id in invited_events:
        event_id = event_id.strip()
        if not event_id or event_id in pending:
            continue
        if not requires_meal_selection(event_id):
            continue
        record = attendance.get(event_id)
        if record is None or record.status != AttendanceStatus.YES:
            continue
        if meal_selections and meal_selections.get(event_id):
            continue
        pending.append(event_id)
    return tuple(pending)


def clone_party_member(member: PartyMember) -> PartyMember:
    return replace(
        member,
        invited_events=tuple(member.invited_events),
        attendance={
            event_id: attendance_record_from_value(record)
            for event_id, record in member.attendance.items()
        },
        meal_selections=dict(member.meal_selections),
        dietary_notes=dict(member.dietary_notes),
        pending_meal_selections=clean_pending_meal_selections(member.pending_meal_selections),
    )


def clear_meal_selection(member: PartyMember, event_id: str) -> PartyMember:
    return replace(
        member,
        meal_selections={k: v for k, v in member.meal_selections.items() if k != event_id},
        pending_meal_selections=tuple(e for e in member.pending_meal_selections if e != event_id),
    )


def refresh_pending_meal_selections(
    party: Iterable[PartyMember], requires_meal_selection: Callable[[str], bool]
) -> tuple[PartyMember, ...]:
    return tuple(
        replace(
            member,
            pending_meal_selections=compute_pending_meal_selections(
                member.invited_events,
                member.attendance,
                member.meal_selections,
                requires_meal_selection,
            ),
        )
        for member in party
    )


def _string_map(raw: Any, allowed: Iterable[str]) -> dict[str, str]:
    if not isinstance(raw, Mapping):
        return {}
    allowed = set(allowed)
    result = {}
    for event_id, value in raw.items():
        if event_id in allowed and isinstance(value, str) and value.strip():
            result[event_id] = value.strip()
    return result


def _default_person_id(index: int) -> str:
    if index == 0:
        return PRIMARY_ID
    if index == 1:
        return COMPANION_ID
    return f"{GUEST_ID}-{index}"


def _role_for(raw_role: Any, person_id: str) -> PartyRole:
    try:
        return PartyRole(raw_role)
    except (TypeError, ValueError):
        if person_id == PRIMARY_ID:
            return PartyRole.PRIMARY
        if person_id == COMPANION_ID:
            return PartyRole.COMPANION
        return PartyRole.GUEST


def party_member_from_dict(raw: Mapping[str, Any], index: int = 0) -> PartyMember:
    """Build a member from its stored shape, dropping orphan event entries."""
    raw_person_id = raw.get("personId")
    person_id = raw_person_id.strip() if isinstance(raw_person_id, str) else ""
    person_id = person_id or _default_person_id(index)

    invited_events = normalize_invited_events(raw.get("invitedEvents"))
    raw_attendance = raw.get("attendance")
    if not isinstance(raw_attendance, Mapping):
        raw_attendance = {}

    pending = clean_pending_meal_selections(raw.get("pendingMealSelections"))

    return PartyMember(
        person_id=person_id,
        role=_role_for(raw.get("role"), person_id),
        invited_events=invited_events,
        attendance={
            event_id: attendance_record_from_value(raw_attendance.get(event_id))
            for event_id in invited_events
        },
        meal_selections=_string_map(raw.get("mealSelections"), invited_events),
        dietary_notes=_string_map(raw.get("dietaryNotes"), invited_events),
        pending_meal_selections=tuple(e for e in pending if e in invited_events),
        first_name=raw.get("firstName") if isinstance(raw.get("firstName"), str) else "",
        last_name=raw.get("lastName") if isinstance(raw.get("lastName"), str) else "",
    )


def party_from_profile(profile: Mapping[str, Any]) -> tuple[PartyMember, ...]:
    """Normalize the party stored on a guest profile."""
    raw_party = profile.get("party")
    if not isinstance(raw_party, list):
        return ()
    return tuple(
        party_member_from_dict(raw, index)
        for index, raw in enumerate(raw_party)
        if isinstance(raw, Mapping)
    )


def attendance_record_to_dict(record: AttendanceRecord) -> dict[str, Any]:
    return {
        "status": record.status.value,
        "source": record.source.value,
        "changedAt": record.changed_at,
    }


def attendance_to_dict(attendance: Mapping[str, AttendanceRecord]) -> dict[str, Any]:
    return {event_id: attendance_record_to_dict(record) for event_id, record in attendance.items()}


def _put_optional(target: dict[str, Any], key: str, value: Mapping | tuple) -> None:
    # empty optional fields are omitted from the stored shape
    if value:
        target[key] = dict(value) if isinstance(value, Mapping) else list(value)


def party_member_to_dict(member: PartyMember) -> dict[str, Any]:
    data: dict[str, Any] = {
        "personId": member.person_id,
        "role": member.role.value,
        "firstName": member.first_name,
        "lastName": member.last_name,
        "invitedEvents": list(member.invited_events),
        "attendance": attendance_to_dict(member.attendance),
    }
    _put_optional(data, "mealSelections", member.meal_selections)
    _put_optional(data, "dietaryNotes", member.dietary_notes)
    _put_optional(data, "pendingMealSelections", member.pending_meal_selections)
    return data


def party_event_response_to_dict(response: PartyEventResponse) -> dict[str, Any]:
    data: dict[str, Any] = {"events": attendance_to_dict(response.events)}
    _put_optional(data, "mealSelections", response.meal_selections)
    _put_optional(data, "dietaryNotes", response.dietary_notes)
    _put_optional(data, "pendingMealSelections", response.pending_meal_selections)
    return data


def response_from_member(member: PartyMember) -> PartyEventResponse:
    return PartyEventResponse(
        events={
            event_id: attendance_record_from_value(record)
            for event_id, record in member.attendance.items()
        },
        meal_selections=dict(member.meal_selections),
        dietary_notes=dict(member.dietary_notes),
        pending_meal_selections=tuple(member.pending_meal_selections),
    )


def rsvp_snapshot_to_dict(rsvp: RSVPSnapshotDTO) -> dict[str, Any]:
    return {
        "partyResponses": {
            person_id: party_event_response_to_dict(response)
            for person_id, response in rsvp.party_responses.items()
        },
        "submittedAt": rsvp.submitted_at,
    }


def collect_pending_meal_events(
    responses: Iterable[PartyEventResponse | PartyMember],
) -> list[str]:
    """Ordered union of pending meal events across a party."""
    events: list[str] = []
    for response in responses:
        for event_id in response.pending_meal_selections:
            if event_id not in events:
                events.append(event_id)
    return events
