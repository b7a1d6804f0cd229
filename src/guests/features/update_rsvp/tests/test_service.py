import asyncio
from uuid import uuid4

import pytest

from src.guests.dtos import (
    AuditEventType,
    EventNotConfiguredError,
    GuestNotFoundError,
    InvalidMealSelectionError,
    RSVPClosedError,
    RSVPRateLimitError,
    UnexpectedPersonIdentifierError,
)
from src.guests.features.update_rsvp.service import (
    RSVPSubmissionService,
    format_submitted_at,
    plan_rsvp_submission,
)
from src.guests.rate_limit import WindowRateLimiter
from src.guests.repository.tests.in_memory_models import (
    InMemoryGuestProfileReadModel,
    InMemoryGuestProfileWriteModel,
    InMemoryGuestStore,
)

TOKEN = "rsvp-token-123"
NOW = 1767225600

EVENT_DETAILS = {
    "events": [
        {"id": "dinner", "requiresMealSelection": True, "mealOptions": ["Fish", "Veg"]},
        {"id": "ceremony"},
    ]
}

PROFILE = {
    "email": "ada@example.com",
    "party": [
        {
            "personId": "primary",
            "role": "primary",
            "firstName": "Ada",
            "lastName": "Lovelace",
            "invitedEvents": ["dinner", "ceremony"],
            "attendance": {"dinner": {"status": "pending", "source": "system", "changedAt": None}},
        }
    ],
}

ACCEPT_DINNER = {"primary": {"events": {"dinner": {"status": "yes"}}, "meals": {"dinner": "Fish"}}}
ACCEPT_WITHOUT_MEAL = {"primary": {"events": {"dinner": {"status": "yes"}}}}


def make_service(store, fail_audit=False, limit=20, rate_limiter=None):
    return RSVPSubmissionService(
        read_model=InMemoryGuestProfileReadModel(store),
        write_model=InMemoryGuestProfileWriteModel(store, fail_audit=fail_audit),
        rate_limiter=rate_limiter or WindowRateLimiter(),
        clock=lambda: NOW,
        submissions_per_window=limit,
        window_seconds=600,
    )


def make_store(event_details=EVENT_DETAILS):
    store = InMemoryGuestStore(event_details=event_details)
    guest_id = uuid4()
    store.add_guest(guest_id, TOKEN, PROFILE)
    return store, guest_id


def test_format_submitted_at():
    assert format_submitted_at(NOW) == "2026-01-01T00:00:00.000Z"


def test_plan_accepting_dinner():
    plan = plan_rsvp_submission(PROFILE, EVENT_DETAILS, ACCEPT_DINNER, NOW)

    member = plan.guest_profile["party"][0]
    assert member["attendance"]["dinner"] == {"status": "yes", "source": "guest", "changedAt": NOW}
    assert member["mealSelections"] == {"dinner": "Fish"}
    assert "pendingMealSelections" not in member
    assert plan.attendance_changed is True
    assert plan.pending_meal_events == []
    assert [event.type for event in plan.audit_events] == [
        AuditEventType.RSVP_SUBMIT,
        AuditEventType.EVENT_ATTENDANCE_UPDATED,
    ]
    assert plan.guest_profile["rsvp"]["submittedAt"] == "2026-01-01T00:00:00.000Z"
    assert plan.guest_profile["email"] == "ada@example.com"


def test_plan_leaves_profile_untouched():
    plan_rsvp_submission(PROFILE, EVENT_DETAILS, ACCEPT_DINNER, NOW)

    assert "rsvp" not in PROFILE
    assert PROFILE["party"][0]["attendance"]["dinner"]["status"] == "pending"


def test_plan_without_attendance_change_only_records_submission():
    plan = plan_rsvp_submission(PROFILE, EVENT_DETAILS, {"primary": {}}, NOW)

    assert plan.attendance_changed is False
    assert [event.type for event in plan.audit_events] == [AuditEventType.RSVP_SUBMIT]


@pytest.mark.asyncio
async def test_submit_persists_profile_rsvp_and_audit_events():
    store, guest_id = make_store()

    result = await make_service(store).submit(TOKEN, ACCEPT_WITHOUT_MEAL, "10.0.0.1")

    assert result.pending_meal_events == ["dinner"]
    assert result.attendance_changed is True
    assert store.guests[guest_id]["party"][0]["pendingMealSelections"] == ["dinner"]
    assert store.rsvps[guest_id]["partyResponses"]["primary"]["events"]["dinner"]["status"] == "yes"
    assert store.audit_events == [
        (guest_id, AuditEventType.RSVP_SUBMIT, NOW),
        (guest_id, AuditEventType.EVENT_ATTENDANCE_UPDATED, NOW),
    ]


@pytest.mark.asyncio
async def test_identical_resubmission_skips_attendance_audit():
    store, _ = make_store()
    service = make_service(store)

    await service.submit(TOKEN, ACCEPT_DINNER, "10.0.0.1")
    result = await service.submit(TOKEN, ACCEPT_DINNER, "10.0.0.1")

    assert result.attendance_changed is False
    assert store.audit_types() == [
        AuditEventType.RSVP_SUBMIT,
        AuditEventType.EVENT_ATTENDANCE_UPDATED,
        AuditEventType.RSVP_SUBMIT,
    ]


@pytest.mark.asyncio
async def test_concurrent_identical_submissions_all_succeed():
    store, guest_id = make_store()
    service = make_service(store)
    single_store, single_guest_id = make_store()
    await make_service(single_store).submit(TOKEN, ACCEPT_WITHOUT_MEAL, "10.0.0.1")

    results = await asyncio.gather(
        *(service.submit(TOKEN, ACCEPT_WITHOUT_MEAL, "10.0.0.1") for _ in range(10))
    )

    assert all(result.pending_meal_events == ["dinner"] for result in results)
    assert store.guests[guest_id] == single_store.guests[single_guest_id]
    assert store.rsvps[guest_id] == single_store.rsvps[single_guest_id]
    assert len(store.audit_events) == 20


@pytest.mark.asyncio
async def test_concurrent_conflicting_submissions_last_write_wins():
    store, guest_id = make_store()
    service = make_service(store)

    await asyncio.gather(
        service.submit(TOKEN, {"primary": {"events": {"ceremony": "yes"}}}, "10.0.0.1"),
        service.submit(TOKEN, {"primary": {"events": {"ceremony": "no"}}}, "10.0.0.2"),
    )

    status = store.guests[guest_id]["party"][0]["attendance"]["ceremony"]["status"]
    assert status in {"yes", "no"}
    assert store.rsvps[guest_id]["partyResponses"]["primary"]["events"]["ceremony"]["status"] == status


@pytest.mark.asyncio
async def test_audit_failure_does_not_undo_primary_writes():
    store, guest_id = make_store()

    result = await make_service(store, fail_audit=True).submit(TOKEN, ACCEPT_DINNER, "10.0.0.1")

    assert result.attendance_changed is True
    assert store.guests[guest_id]["party"][0]["mealSelections"] == {"dinner": "Fish"}
    assert guest_id in store.rsvps
    assert store.audit_events == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload, error",
    [
        ({"primary": {}, "stranger": {}}, UnexpectedPersonIdentifierError),
        (
            {"primary": {"events": {"dinner": {"status": "yes"}}, "meals": {"dinner": "Steak"}}},
            InvalidMealSelectionError,
        ),
    ],
)
async def test_rejected_submission_writes_nothing(payload, error):
    store, guest_id = make_store()

    with pytest.raises(error):
        await make_service(store).submit(TOKEN, payload, "10.0.0.1")

    assert store.writes == 0
    assert store.audit_events == []
    assert "rsvp" not in store.guests[guest_id]


@pytest.mark.asyncio
async def test_unknown_token():
    store, _ = make_store()

    with pytest.raises(GuestNotFoundError):
        await make_service(store).submit("unknown-token", ACCEPT_DINNER, "10.0.0.1")


@pytest.mark.asyncio
async def test_missing_event_details():
    store, _ = make_store(event_details=None)

    with pytest.raises(EventNotConfiguredError):
        await make_service(store).submit(TOKEN, ACCEPT_DINNER, "10.0.0.1")

    assert store.writes == 0


@pytest.mark.asyncio
async def test_closed_rsvps_are_refused():
    store, _ = make_store(
        event_details={**EVENT_DETAILS, "rsvpStatus": {"mode": "closed", "message": "Too late!"}}
    )

    with pytest.raises(RSVPClosedError) as exc_info:
        await make_service(store).submit(TOKEN, ACCEPT_DINNER, "10.0.0.1")

    assert exc_info.value.message == "Too late!"
    assert store.writes == 0


@pytest.mark.asyncio
async def test_rate_limit_is_per_guest_and_client():
    store, _ = make_store()
    service = make_service(store, limit=2)

    await service.submit(TOKEN, ACCEPT_DINNER, "10.0.0.1")
    await service.submit(TOKEN, ACCEPT_DINNER, "10.0.0.1")
    with pytest.raises(RSVPRateLimitError):
        await service.submit(TOKEN, ACCEPT_DINNER, "10.0.0.1")

    await service.submit(TOKEN, ACCEPT_DINNER, "10.0.0.2")
