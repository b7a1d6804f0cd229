import abc
import copy
from functools import partial
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.config.database import async_session_manager
from src.guests.dtos import GuestRecordDTO
from src.guests.repository.orm_models import EventDetails, Guest


class GuestProfileReadModel(abc.ABC):
    @abc.abstractmethod
    async def get_guest_by_token(self, token: str) -> GuestRecordDTO | None:
        """Get the guest owning an RSVP token, read fresh on every call."""
        raise NotImplementedError

    @abc.abstractmethod
    async def get_guest(self, guest_id: UUID) -> GuestRecordDTO | None:
        raise NotImplementedError

    @abc.abstractmethod
    async def get_event_details(self) -> dict[str, Any] | None:
        """Get the authoritative event details record."""
        raise NotImplementedError


class SqlGuestProfileReadModel(GuestProfileReadModel):
    """SQL implementation of the guest profile read model."""

    async_session_manager = staticmethod(partial(async_session_manager))

    def __init__(self, session_overwrite: AsyncSession | None = None) -> None:
        self.session_overwrite = session_overwrite

    async def get_guest_by_token(self, token: str) -> GuestRecordDTO | None:
        async with self.async_session_manager(session_overwrite=self.session_overwrite) as session:
            result = await session.execute(select(Guest).where(Guest.rsvp_token == token))
            return self._to_dto(result.scalar_one_or_none())

    async def get_guest(self, guest_id: UUID) -> GuestRecordDTO | None:
        async with self.async_session_manager(session_overwrite=self.session_overwrite) as session:
            result = await session.execute(select(Guest).where(Guest.uuid == guest_id))
            return self._to_dto(result.scalar_one_or_none())

    async def get_event_details(self) -> dict[str, Any] | None:
        async with self.async_session_manager(session_overwrite=self.session_overwrite) as session:
            result = await session.execute(
                select(EventDetails).order_by(EventDetails.created_at.desc()).limit(1)
            )
            row = result.scalar_one_or_none()
            return copy.deepcopy(row.details) if row else None

    @staticmethod
    def _to_dto(guest: Guest | None) -> GuestRecordDTO | None:
        if guest is None:
            return None
        return GuestRecordDTO(
            guest_id=guest.uuid,
            email_hash=guest.email_hash,
            profile=copy.deepcopy(guest.profile or {}),
        )
