"""Attendance and meal changes made by the couple on a guest's behalf."""

import copy
import logging
import time
from collections.abc import Callable, Iterable, Mapping
from typing import Any
from uuid import UUID

from src.guests.dtos import (
    AttendanceStatus,
    AuditEventType,
    EventNotFoundError,
    GuestNotFoundError,
    GuestRecordDTO,
    InvalidMealSelectionError,
    PartyMember,
    PartyMemberNotFoundError,
    RSVPValidationError,
)
from src.guests.event_config import (
    build_event_config,
    find_event_definition,
    meal_option_key,
    meal_requirement,
)
from src.guests.features.update_rsvp.reconciler import (
    apply_admin_attendance,
    apply_admin_meal_selection,
)
from src.guests.party import (
    party_event_response_to_dict,
    party_from_profile,
    party_member_to_dict,
    refresh_pending_meal_selections,
    response_from_member,
)
from src.guests.repository.read_models import GuestProfileReadModel
from src.guests.repository.write_models import GuestProfileWriteModel

logger = logging.getLogger(__name__)


def _clean_identifier(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def resolve_meal_option(event_definition: Mapping[str, Any], meal_key: str) -> str | None:
    options = event_definition.get("mealOptions")
    if not isinstance(options, list | tuple):
        return None
    lookup = {}
    for option in options:
        if isinstance(option, str) and option.strip():
            lookup[meal_option_key(option.strip())] = option.strip()
    return lookup.get(meal_key)


def next_guest_profile(
    profile: Mapping[str, Any],
    previous_party: Iterable[PartyMember],
    next_party: Iterable[PartyMember],
) -> dict[str, Any]:
    """Store the new party and rewrite the RSVP responses of the members that changed."""
    next_party = tuple(next_party)
    guest_profile = copy.deepcopy(dict(profile))
    guest_profile["party"] = [party_member_to_dict(member) for member in next_party]

    rsvp = guest_profile.get("rsvp")
    responses = rsvp.get("partyResponses") if isinstance(rsvp, dict) else None
    if isinstance(responses, dict):
        previous_by_id = {member.person_id: member for member in previous_party}
        for member in next_party:
            if member.person_id in responses and member != previous_by_id.get(member.person_id):
                responses[member.person_id] = party_event_response_to_dict(response_from_member(member))

    return guest_profile


class AdminOverrideService:
    def __init__(
        self,
        read_model: GuestProfileReadModel,
        write_model: GuestProfileWriteModel,
        clock: Callable[[], float] = time.time,
    ):
        self.read_model = read_model
        self.write_model = write_model
        self.clock = clock

    async def _get_guest(self, guest_id: UUID) -> GuestRecordDTO:
        guest = await self.read_model.get_guest(guest_id)
        if guest is None:
            raise GuestNotFoundError()
        return guest

    async def update_attendance(
        self, guest_id: UUID, event_id: Any, status: Any, person_id: Any = None
    ) -> tuple[PartyMember, ...]:
        """
        Set one event's attendance for one member, or for every invited member
        when ``person_id`` is omitted. Always records an attendance audit event.
        """
        event_id = _clean_identifier(event_id)
        if not event_id or status not in {s.value for s in AttendanceStatus}:
            raise RSVPValidationError("Invalid attendance update")
        if person_id is not None and not isinstance(person_id, str):
            raise RSVPValidationError("Invalid attendee reference")
        person_id = _clean_identifier(person_id) or None

        guest = await self._get_guest(guest_id)
        party = party_from_profile(guest.profile)
        if person_id and not any(member.person_id == person_id for member in party):
            raise PartyMemberNotFoundError(person_id)

        event_config = build_event_config(await self.read_model.get_event_details())
        changed_at = int(self.clock())

        next_party = refresh_pending_meal_selections(
            apply_admin_attendance(party, event_id, AttendanceStatus(status), person_id, changed_at),
            meal_requirement(event_config),
        )

        await self.write_model.save_guest_profile(
            guest.guest_id, next_guest_profile(guest.profile, party, next_party)
        )
        try:
            await self.write_model.insert_audit_event(
                guest.guest_id, AuditEventType.EVENT_ATTENDANCE_UPDATED, changed_at
            )
        except Exception:
            logger.exception("Failed to record attendance audit event for guest %s", guest.guest_id)

        logger.info("Admin set %s attendance to %s for guest %s", event_id, status, guest.guest_id)
        return next_party

    async def update_meal_selection(
        self, guest_id: UUID, event_id: Any, person_id: Any, meal_key: Any
    ) -> tuple[PartyMember, ...]:
        """Select a meal by its option key, or clear it when ``meal_key`` is None."""
        event_id = _clean_identifier(event_id)
        person_id = _clean_identifier(person_id)
        if not event_id or not person_id:
            raise RSVPValidationError("Invalid meal update payload")
        if meal_key is not None and not isinstance(meal_key, str):
            raise RSVPValidationError("Invalid meal option")

        event_details = await self.read_model.get_event_details()
        event_definition = find_event_definition(event_details, event_id)
        if event_definition is None:
            raise EventNotFoundError(event_id)

        meal = None
        if meal_key is not None:
            meal = resolve_meal_option(event_definition, meal_key.strip())
            if meal is None:
                raise InvalidMealSelectionError(event_id, meal_key)

        guest = await self._get_guest(guest_id)
        party = party_from_profile(guest.profile)
        if not any(member.person_id == person_id for member in party):
            raise PartyMemberNotFoundError(person_id)

        next_party = refresh_pending_meal_selections(
            apply_admin_meal_selection(party, event_id, person_id, meal),
            meal_requirement(build_event_config(event_details)),
        )

        await self.write_model.save_guest_profile(
            guest.guest_id, next_guest_profile(guest.profile, party, next_party)
        )
        logger.info("Admin updated %s meal selection for guest %s", event_id, guest.guest_id)
        return next_party
