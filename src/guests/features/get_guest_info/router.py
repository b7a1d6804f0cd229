from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from src.guests.dtos import PartyStateDTO
from src.guests.event_config import build_event_config, meal_requirement
from src.guests.party import (
    collect_pending_meal_events,
    party_from_profile,
    refresh_pending_meal_selections,
)
from src.guests.repository.read_models import GuestProfileReadModel, SqlGuestProfileReadModel
from src.guests.urls import GET_PARTY_URL

router = APIRouter()


class AttendanceResponse(BaseModel):
    status: str
    source: str
    changed_at: int | float | None = None


class PartyMemberResponse(BaseModel):
    person_id: str
    role: str
    first_name: str
    last_name: str
    invited_events: list[str]
    attendance: dict[str, AttendanceResponse]
    meal_selections: dict[str, str] = {}
    dietary_notes: dict[str, str] = {}
    pending_meal_selections: list[str] = []


class PartyStateResponse(BaseModel):
    """Party state for rendering the RSVP form - token omitted as it's in the URL."""

    guest_id: UUID
    party: list[PartyMemberResponse]
    pending_meal_events: list[str]
    submitted_at: str | None = None


def get_guest_profile_read_model() -> GuestProfileReadModel:
    return SqlGuestProfileReadModel()


async def load_party_state(read_model: GuestProfileReadModel, token: str) -> PartyStateDTO | None:
    guest = await read_model.get_guest_by_token(token)
    if guest is None:
        return None

    event_config = build_event_config(await read_model.get_event_details())
    party = refresh_pending_meal_selections(
        party_from_profile(guest.profile), meal_requirement(event_config)
    )

    rsvp: Any = guest.profile.get("rsvp")
    submitted_at = rsvp.get("submittedAt") if isinstance(rsvp, dict) else None

    return PartyStateDTO(
        guest_id=guest.guest_id,
        party=party,
        pending_meal_events=collect_pending_meal_events(party),
        submitted_at=submitted_at if isinstance(submitted_at, str) else None,
    )


@router.get(GET_PARTY_URL, response_model=PartyStateResponse)
async def get_party(
    token: str,
    read_model: GuestProfileReadModel = Depends(get_guest_profile_read_model),
) -> PartyStateResponse:
    """
    Get the party behind an RSVP token.
    Stored attendance is normalized against the invited events on the way out.
    """
    state = await load_party_state(read_model, token)

    if not state:
        raise HTTPException(status_code=404, detail="Invalid or expired RSVP link")

    return PartyStateResponse(
        guest_id=state.guest_id,
        party=[
            PartyMemberResponse(
                person_id=member.person_id,
                role=member.role.value,
                first_name=member.first_name,
                last_name=member.last_name,
                invited_events=list(member.invited_events),
                attendance={
                    event_id: AttendanceResponse(
                        status=record.status.value,
                        source=record.source.value,
                        changed_at=record.changed_at,
                    )
                    for event_id, record in member.attendance.items()
                },
                meal_selections=dict(member.meal_selections),
                dietary_notes=dict(member.dietary_notes),
                pending_meal_selections=list(member.pending_meal_selections),
            )
            for member in state.party
        ],
        pending_meal_events=state.pending_meal_events,
        submitted_at=state.submitted_at,
    )
