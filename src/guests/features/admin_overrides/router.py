from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from src.guests.admin_auth import require_admin
from src.guests.dtos import (
    EventNotFoundError,
    GuestNotFoundError,
    PartyMemberNotFoundError,
    RSVPValidationError,
)
from src.guests.features.admin_overrides.service import AdminOverrideService
from src.guests.repository.read_models import GuestProfileReadModel, SqlGuestProfileReadModel
from src.guests.repository.write_models import GuestProfileWriteModel, SqlGuestProfileWriteModel
from src.guests.urls import ADMIN_UPDATE_ATTENDANCE_URL, ADMIN_UPDATE_MEAL_URL

router = APIRouter(dependencies=[Depends(require_admin)])


class AttendanceUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    event_id: Any = Field(default=None, alias="eventId")
    status: Any = None
    person_id: Any = Field(default=None, alias="personId")


class MealSelectionUpdate(BaseModel):
    """``mealKey`` of null clears the member's selection."""

    model_config = ConfigDict(populate_by_name=True)

    event_id: Any = Field(default=None, alias="eventId")
    person_id: Any = Field(default=None, alias="personId")
    meal_key: Any = Field(default=None, alias="mealKey")


class AdminUpdateResponse(BaseModel):
    success: bool = True


def get_guest_profile_read_model() -> GuestProfileReadModel:
    return SqlGuestProfileReadModel()


def get_guest_profile_write_model() -> GuestProfileWriteModel:
    return SqlGuestProfileWriteModel()


def get_admin_override_service(
    read_model: GuestProfileReadModel = Depends(get_guest_profile_read_model),
    write_model: GuestProfileWriteModel = Depends(get_guest_profile_write_model),
) -> AdminOverrideService:
    return AdminOverrideService(read_model, write_model)


def _to_http_error(e: Exception) -> HTTPException:
    if isinstance(e, RSVPValidationError):
        return HTTPException(status_code=400, detail=str(e))
    return HTTPException(status_code=404, detail=str(e))


@router.post(ADMIN_UPDATE_ATTENDANCE_URL, response_model=AdminUpdateResponse)
async def update_event_attendance(
    guest_id: UUID,
    update: AttendanceUpdate,
    service: AdminOverrideService = Depends(get_admin_override_service),
) -> AdminUpdateResponse:
    try:
        await service.update_attendance(guest_id, update.event_id, update.status, update.person_id)
    except (RSVPValidationError, GuestNotFoundError, PartyMemberNotFoundError) as e:
        raise _to_http_error(e)
    return AdminUpdateResponse()


@router.post(ADMIN_UPDATE_MEAL_URL, response_model=AdminUpdateResponse)
async def update_meal_selection(
    guest_id: UUID,
    update: MealSelectionUpdate,
    service: AdminOverrideService = Depends(get_admin_override_service),
) -> AdminUpdateResponse:
    try:
        await service.update_meal_selection(guest_id, update.event_id, update.person_id, update.meal_key)
    except (RSVPValidationError, GuestNotFoundError, PartyMemberNotFoundError, EventNotFoundError) as e:
        raise _to_http_error(e)
    return AdminUpdateResponse()
