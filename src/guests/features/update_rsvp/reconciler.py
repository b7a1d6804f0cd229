"""Merges normalized RSVP responses into the previously stored party.

Every function here is pure: inputs are never mutated and outputs share no
containers with them.
"""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import replace

from src.guests.dtos import (
    AttendanceRecord,
    AttendanceSource,
    AttendanceStatus,
    EventConfig,
    PartyEventResponse,
    PartyMember,
    ReconciliationResultDTO,
    RSVPValidationError,
)
from src.guests.event_config import meal_requirement
from src.guests.party import (
    attendance_record_from_value,
    clear_meal_selection,
    clone_party_member,
    compute_pending_meal_selections,
    default_attendance_record,
    normalize_invited_events,
    response_from_member,
)


def _reconcile_attendance(
    invited_events: Sequence[str],
    previous: Mapping[str, AttendanceRecord],
    response: PartyEventResponse,
    submission_epoch: int,
    source: AttendanceSource,
) -> dict[str, AttendanceRecord]:
    attendance: dict[str, AttendanceRecord] = {}
    for event_id in invited_events:
        prior = previous.get(event_id) or default_attendance_record()
        requested = response.events.get(event_id)
        requested_status = requested.status if requested else prior.status

        if requested_status != prior.status:
            attendance[event_id] = AttendanceRecord(requested_status, source, submission_epoch)
        else:
            # resubmitting the same answer keeps the original source and timestamp
            attendance[event_id] = attendance_record_from_value(prior)
    return attendance


def build_meal_selections(
    invited_events: Sequence[str],
    submitted_meals: Mapping[str, str],
    attendance: Mapping[str, AttendanceRecord],
) -> dict[str, str]:
    meals: dict[str, str] = {}
    for event_id in invited_events:
        choice = submitted_meals.get(event_id)
        if not choice:
            continue
        record = attendance.get(event_id)
        if record and record.status == AttendanceStatus.YES:
            meals[event_id] = choice
    return meals


def build_dietary_notes(
    invited_events: Sequence[str], submitted_notes: Mapping[str, str]
) -> dict[str, str]:
    notes: dict[str, str] = {}
    for event_id in invited_events:
        note = submitted_notes.get(event_id)
        if isinstance(note, str) and note.strip():
            notes[event_id] = note.strip()
    return notes


def apply_responses_to_party(
    party: Sequence[PartyMember],
    responses: Mapping[str, PartyEventResponse],
    submission_epoch: int,
    source: AttendanceSource,
    event_config: Mapping[str, EventConfig],
) -> ReconciliationResultDTO:
    """Produce the next party and the responses to store on the RSVP record."""
    requires_meal_selection = meal_requirement(event_config)
    next_party: list[PartyMember] = []

    for member in party:
        invited_events = normalize_invited_events(member.invited_events)
        response = responses.get(member.person_id)

        if response is None:
            next_party.append(replace(clone_party_member(member), invited_events=invited_events))
            continue

        attendance = _reconcile_attendance(
            invited_events, member.attendance, response, submission_epoch, source
        )
        meal_selections = build_meal_selections(invited_events, response.meal_selections, attendance)
        dietary_notes = build_dietary_notes(invited_events, response.dietary_notes)

        next_party.append(
            replace(
                member,
                invited_events=invited_events,
                attendance=attendance,
                meal_selections=meal_selections,
                dietary_notes=dietary_notes,
                pending_meal_selections=compute_pending_meal_selections(
                    invited_events, attendance, meal_selections, requires_meal_selection
                ),
            )
        )

    return ReconciliationResultDTO(
        party=tuple(next_party),
        stored_responses={member.person_id: response_from_member(member) for member in next_party},
    )


def has_attendance_changed(before: Iterable[PartyMember], after: Iterable[PartyMember]) -> bool:
    """True if any member's status differs for any event; missing means pending."""
    previous_by_id = {member.person_id: member for member in before}

    for member in after:
        previous = previous_by_id.get(member.person_id)
        if previous is None:
            return True
        for event_id in previous.attendance.keys() | member.attendance.keys():
            before_record = previous.attendance.get(event_id)
            after_record = member.attendance.get(event_id)
            before_status = before_record.status if before_record else AttendanceStatus.PENDING
            after_status = after_record.status if after_record else AttendanceStatus.PENDING
            if before_status != after_status:
                return True

    return False


def apply_admin_attendance(
    party: Sequence[PartyMember],
    event_id: str,
    status: AttendanceStatus,
    person_id: str | None,
    changed_at: int,
) -> tuple[PartyMember, ...]:
    """Override one event's attendance on behalf of the couple.

    Applies to ``person_id`` only when given, otherwise to every member invited
    to the event. Any status other than yes drops that event's meal selection.
    """
    next_party: list[PartyMember] = []
    for member in party:
        if event_id not in member.invited_events or (person_id and member.person_id != person_id):
            next_party.append(clone_party_member(member))
            continue

        previous = member.attendance.get(event_id) or default_attendance_record()
        if previous.status == status:
            next_party.append(clone_party_member(member))
            continue

        updated = replace(
            clone_party_member(member),
            attendance={
                **member.attendance,
                event_id: AttendanceRecord(status, AttendanceSource.ADMIN, changed_at),
            },
        )
        if status != AttendanceStatus.YES:
            updated = clear_meal_selection(updated, event_id)
        next_party.append(updated)

    return tuple(next_party)


def apply_admin_meal_selection(
    party: Sequence[PartyMember], event_id: str, person_id: str, meal: str | None
) -> tuple[PartyMember, ...]:
    """Set or clear one member's meal; only attending members can hold one."""
    next_party: list[PartyMember] = []
    for member in party:
        member = clone_party_member(member)
        if member.person_id == person_id and event_id in member.invited_events:
            if meal is None:
                member = clear_meal_selection(member, event_id)
            else:
                record = member.attendance.get(event_id)
                if record is None or record.status != AttendanceStatus.YES:
                    raise RSVPValidationError("Party member is not attending this event")
                member = replace(
                    member,
                    meal_selections={**member.meal_selections, event_id: meal},
                    pending_meal_selections=tuple(
                        e for e in member.pending_meal_selections if e != event_id
                    ),
                )
        next_party.append(member)
    return tuple(next_party)
