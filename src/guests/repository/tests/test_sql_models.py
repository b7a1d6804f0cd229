from uuid import uuid4

import pytest
from sqlalchemy import select

from src.guests.dtos import AuditEventType
from src.guests.repository.orm_models import AuditEvent, EventDetails, Guest, RSVPRecord
from src.guests.repository.read_models import SqlGuestProfileReadModel
from src.guests.repository.write_models import SqlGuestProfileWriteModel

PROFILE = {"party": [{"personId": "primary", "invitedEvents": ["dinner"]}]}


async def add_guest(session, token="rsvp-token"):
    guest = Guest(uuid=uuid4(), email_hash=f"hash-{token}", rsvp_token=token, profile=PROFILE)
    session.add(guest)
    await session.flush()
    return guest


@pytest.mark.asyncio
async def test_get_guest_by_token(test_db):
    guest = await add_guest(test_db)
    read_model = SqlGuestProfileReadModel(session_overwrite=test_db)

    found = await read_model.get_guest_by_token("rsvp-token")

    assert found.guest_id == guest.uuid
    assert found.email_hash == "hash-rsvp-token"
    assert found.profile == PROFILE
    assert await read_model.get_guest_by_token("other-token") is None
    assert (await read_model.get_guest(guest.uuid)).guest_id == guest.uuid
    assert await read_model.get_guest(uuid4()) is None


@pytest.mark.asyncio
async def test_returned_profile_is_a_copy(test_db):
    guest = await add_guest(test_db)
    read_model = SqlGuestProfileReadModel(session_overwrite=test_db)

    found = await read_model.get_guest(guest.uuid)
    found.profile["party"].append({"personId": "companion"})

    assert len((await read_model.get_guest(guest.uuid)).profile["party"]) == 1


@pytest.mark.asyncio
async def test_get_event_details(test_db):
    read_model = SqlGuestProfileReadModel(session_overwrite=test_db)
    assert await read_model.get_event_details() is None

    test_db.add(EventDetails(details={"events": [{"id": "dinner"}]}))
    await test_db.flush()

    assert await read_model.get_event_details() == {"events": [{"id": "dinner"}]}


@pytest.mark.asyncio
async def test_save_guest_profile(test_db):
    guest = await add_guest(test_db)
    write_model = SqlGuestProfileWriteModel(session_overwrite=test_db)
    new_profile = {"party": [], "rsvp": {"partyResponses": {}, "submittedAt": "2026-01-01T00:00:00.000Z"}}

    await write_model.save_guest_profile(guest.uuid, new_profile)

    found = await SqlGuestProfileReadModel(session_overwrite=test_db).get_guest(guest.uuid)
    assert found.profile == new_profile


@pytest.mark.asyncio
async def test_upsert_rsvp_replaces_record(test_db):
    guest = await add_guest(test_db)
    write_model = SqlGuestProfileWriteModel(session_overwrite=test_db)

    await write_model.upsert_rsvp(guest.uuid, {"partyResponses": {}, "submittedAt": "first"})
    await write_model.upsert_rsvp(guest.uuid, {"partyResponses": {}, "submittedAt": "second"})

    result = await test_db.execute(
        select(RSVPRecord.record).where(RSVPRecord.guest_id == guest.uuid)
    )
    assert result.scalars().all() == [{"partyResponses": {}, "submittedAt": "second"}]


@pytest.mark.asyncio
async def test_insert_audit_events(test_db):
    guest = await add_guest(test_db)
    write_model = SqlGuestProfileWriteModel(session_overwrite=test_db)

    await write_model.insert_audit_event(guest.uuid, AuditEventType.RSVP_SUBMIT, 1000)
    await write_model.insert_audit_event(guest.uuid, AuditEventType.EVENT_ATTENDANCE_UPDATED, 1000)

    result = await test_db.execute(
        select(AuditEvent.type, AuditEvent.occurred_at).where(AuditEvent.guest_id == guest.uuid)
    )
    assert sorted(result.all()) == [("event_attendance_updated", 1000), ("rsvp_submit", 1000)]
