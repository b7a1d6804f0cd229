from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from src.guests.dtos import (
    EventNotConfiguredError,
    GuestNotFoundError,
    RSVPClosedError,
    RSVPRateLimitError,
    RSVPValidationError,
)
from src.guests.features.update_rsvp.service import RSVPSubmissionService
from src.guests.rate_limit import RateLimiter, get_rate_limiter
from src.guests.repository.read_models import GuestProfileReadModel, SqlGuestProfileReadModel
from src.guests.repository.write_models import GuestProfileWriteModel, SqlGuestProfileWriteModel
from src.guests.urls import UPDATE_RSVP_URL

router = APIRouter()


class RSVPSubmit(BaseModel):
    """Party responses keyed by person id, as an object or a JSON string."""

    party_responses: Any = Field(default_factory=dict, alias="partyResponses")


class RSVPSubmitResponse(BaseModel):
    success: bool = True
    pending_meal_events: list[str]


def get_guest_profile_read_model() -> GuestProfileReadModel:
    return SqlGuestProfileReadModel()


def get_guest_profile_write_model() -> GuestProfileWriteModel:
    return SqlGuestProfileWriteModel()


def get_rsvp_submission_service(
    read_model: GuestProfileReadModel = Depends(get_guest_profile_read_model),
    write_model: GuestProfileWriteModel = Depends(get_guest_profile_write_model),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
) -> RSVPSubmissionService:
    return RSVPSubmissionService(read_model, write_model, rate_limiter)


@router.post(UPDATE_RSVP_URL, response_model=RSVPSubmitResponse)
async def submit_rsvp(
    token: str,
    rsvp_data: RSVPSubmit,
    request: Request,
    service: RSVPSubmissionService = Depends(get_rsvp_submission_service),
):
    """
    Submit the RSVP for every member of the guest's party.
    Members left out of the payload are recorded as pending.
    """
    client_ip = request.client.host if request.client else None
    try:
        result = await service.submit(token, rsvp_data.party_responses, client_ip)
    except RSVPValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except GuestNotFoundError:
        raise HTTPException(status_code=404, detail="Invalid or expired RSVP link")
    except RSVPClosedError as e:
        return JSONResponse(status_code=423, content={"error": e.message, "code": e.code})
    except RSVPRateLimitError as e:
        return JSONResponse(status_code=429, content={"error": e.message, "code": e.code})
    except EventNotConfiguredError as e:
        raise HTTPException(status_code=500, detail=str(e))

    return RSVPSubmitResponse(pending_meal_events=result.pending_meal_events)
