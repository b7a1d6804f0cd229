"""Guest RSVP submission pipeline.

``plan_rsvp_submission`` is the pure part: it turns the stored profile, the
event details and a raw payload into everything that should be persisted.
``RSVPSubmissionService`` wraps it with the reads, writes and checks around it.

Submissions for the same guest are not serialized. Each one reads the profile,
computes the next state and writes it back without a version check, so the
last write wins.
"""

import copy
import logging
import time
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from typing import Any

from src.config.settings import settings
from src.guests.dtos import (
    AttendanceSource,
    AuditEventDTO,
    AuditEventType,
    EventNotConfiguredError,
    GuestNotFoundError,
    RSVPClosedError,
    RSVPRateLimitError,
    RSVPSnapshotDTO,
    RSVPSubmissionPlanDTO,
    RSVPSubmissionResultDTO,
    RSVPValidationError,
)
from src.guests.event_config import build_event_config, rsvp_closed_message
from src.guests.features.update_rsvp.normalizer import DIETARY_NOTE_MAX_LENGTH, parse_party_responses
from src.guests.features.update_rsvp.reconciler import apply_responses_to_party, has_attendance_changed
from src.guests.party import (
    collect_pending_meal_events,
    party_from_profile,
    party_member_to_dict,
    rsvp_snapshot_to_dict,
)
from src.guests.rate_limit import RateLimiter, rsvp_rate_limit_key
from src.guests.repository.read_models import GuestProfileReadModel
from src.guests.repository.write_models import GuestProfileWriteModel

logger = logging.getLogger(__name__)


def format_submitted_at(epoch: int) -> str:
    return datetime.fromtimestamp(epoch, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.000Z")


def plan_rsvp_submission(
    profile: Mapping[str, Any],
    event_details: Mapping[str, Any] | None,
    payload: Any,
    submission_epoch: int,
    dietary_note_max_length: int = DIETARY_NOTE_MAX_LENGTH,
) -> RSVPSubmissionPlanDTO:
    """Compute the outcome of one submission without touching storage.

    Raises an ``RSVPValidationError`` subclass when the payload is rejected.
    """
    event_config = build_event_config(event_details)
    previous_party = party_from_profile(profile)

    responses = parse_party_responses(payload, previous_party, event_config, dietary_note_max_length)
    result = apply_responses_to_party(
        previous_party, responses, submission_epoch, AttendanceSource.GUEST, event_config
    )
    attendance_changed = has_attendance_changed(previous_party, result.party)

    rsvp = RSVPSnapshotDTO(
        party_responses=result.stored_responses,
        submitted_at=format_submitted_at(submission_epoch),
    )

    guest_profile = copy.deepcopy(dict(profile))
    guest_profile["party"] = [party_member_to_dict(member) for member in result.party]
    guest_profile["rsvp"] = rsvp_snapshot_to_dict(rsvp)

    audit_events = [AuditEventDTO(AuditEventType.RSVP_SUBMIT, submission_epoch)]
    if attendance_changed:
        audit_events.append(AuditEventDTO(AuditEventType.EVENT_ATTENDANCE_UPDATED, submission_epoch))

    return RSVPSubmissionPlanDTO(
        guest_profile=guest_profile,
        rsvp=rsvp,
        audit_events=tuple(audit_events),
        pending_meal_events=collect_pending_meal_events(result.stored_responses.values()),
        attendance_changed=attendance_changed,
    )


class RSVPSubmissionService:
    def __init__(
        self,
        read_model: GuestProfileReadModel,
        write_model: GuestProfileWriteModel,
        rate_limiter: RateLimiter,
        clock: Callable[[], float] = time.time,
        submissions_per_window: int = settings.rsvp_submissions_per_10min,
        window_seconds: int = settings.rsvp_rate_limit_window_seconds,
        dietary_note_max_length: int = settings.dietary_note_max_length,
    ):
        self.read_model = read_model
        self.write_model = write_model
        self.rate_limiter = rate_limiter
        self.clock = clock
        self.submissions_per_window = submissions_per_window
        self.window_seconds = window_seconds
        self.dietary_note_max_length = dietary_note_max_length

    async def submit(self, token: str, payload: Any, client_ip: str | None) -> RSVPSubmissionResultDTO:
        guest = await self.read_model.get_guest_by_token(token)
        if guest is None:
            raise GuestNotFoundError()

        allowed = await self.rate_limiter.hit(
            rsvp_rate_limit_key(guest.guest_id, client_ip),
            self.submissions_per_window,
            self.window_seconds,
        )
        if not allowed:
            logger.warning("RSVP rate limit hit for guest %s", guest.guest_id)
            raise RSVPRateLimitError()

        event_details = await self.read_model.get_event_details()
        if event_details is None:
            raise EventNotConfiguredError()

        closed_message = rsvp_closed_message(event_details)
        if closed_message is not None:
            raise RSVPClosedError(closed_message)

        submission_epoch = int(self.clock())
        try:
            plan = plan_rsvp_submission(
                guest.profile,
                event_details,
                payload,
                submission_epoch,
                self.dietary_note_max_length,
            )
        except RSVPValidationError as e:
            logger.warning("Rejected RSVP submission for guest %s: %s", guest.guest_id, e)
            raise

        await self.write_model.save_guest_profile(guest.guest_id, plan.guest_profile)
        await self.write_model.upsert_rsvp(guest.guest_id, rsvp_snapshot_to_dict(plan.rsvp))

        for audit_event in plan.audit_events:
            try:
                await self.write_model.insert_audit_event(
                    guest.guest_id, audit_event.type, audit_event.occurred_at
                )
            except Exception:
                logger.exception(
                    "Failed to record %s audit event for guest %s",
                    audit_event.type.value,
                    guest.guest_id,
                )

        logger.info(
            "RSVP submitted for guest %s (attendance changed: %s)",
            guest.guest_id,
            plan.attendance_changed,
        )
        return RSVPSubmissionResultDTO(
            pending_meal_events=plan.pending_meal_events,
            attendance_changed=plan.attendance_changed,
        )
