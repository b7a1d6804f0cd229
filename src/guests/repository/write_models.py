"""Guest profile persistence: id-addressed writes, last writer wins."""

from abc import ABC, abstractmethod
from functools import partial
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import func, update
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from src.config.database import async_session_manager
from src.guests.dtos import AuditEventType
from src.guests.repository.orm_models import AuditEvent, Guest, RSVPRecord


class GuestProfileWriteModel(ABC):
    @abstractmethod
    async def save_guest_profile(self, guest_id: UUID, profile: dict[str, Any]) -> None:
        """Overwrite the guest's profile. No version check: the last write wins."""
        raise NotImplementedError

    @abstractmethod
    async def upsert_rsvp(self, guest_id: UUID, record: dict[str, Any]) -> None:
        """Insert or replace the guest's RSVP record."""
        raise NotImplementedError

    @abstractmethod
    async def insert_audit_event(
        self, guest_id: UUID, event_type: AuditEventType, occurred_at: int
    ) -> None:
        raise NotImplementedError


class SqlGuestProfileWriteModel(GuestProfileWriteModel):
    """SQL implementation. Each write commits on its own."""

    async_session_manager = staticmethod(partial(async_session_manager))

    def __init__(self, session_overwrite: AsyncSession | None = None) -> None:
        self.session_overwrite = session_overwrite

    async def save_guest_profile(self, guest_id: UUID, profile: dict[str, Any]) -> None:
        async with self.async_session_manager(session_overwrite=self.session_overwrite) as session:
            await session.execute(update(Guest).where(Guest.uuid == guest_id).values(profile=profile))

    async def upsert_rsvp(self, guest_id: UUID, record: dict[str, Any]) -> None:
        async with self.async_session_manager(session_overwrite=self.session_overwrite) as session:
            insert = (
                sqlite_insert if session.get_bind().dialect.name == "sqlite" else postgresql_insert
            )
            stmt = insert(RSVPRecord).values(uuid=uuid4(), guest_id=guest_id, record=record)
            stmt = stmt.on_conflict_do_update(
                index_elements=["guest_id"],
                set_={"record": stmt.excluded.record, "updated_at": func.current_timestamp()},
            )
            await session.execute(stmt)

    async def insert_audit_event(
        self, guest_id: UUID, event_type: AuditEventType, occurred_at: int
    ) -> None:
        async with self.async_session_manager(session_overwrite=self.session_overwrite) as session:
            session.add(AuditEvent(guest_id=guest_id, type=event_type.value, occurred_at=occurred_at))
            await session.flush()
