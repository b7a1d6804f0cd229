from typing import Any
from uuid import UUID

from sqlalchemy import JSON, BigInteger, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from src.config.table_names import TableNames
from src.models.base import Base, TimeStamp


class Guest(Base, TimeStamp):
    __tablename__ = TableNames.GUESTS.value

    email_hash: Mapped[str] = mapped_column(String(128), nullable=False, unique=True, index=True)
    # The RSVP link token doubles as the guest's session credential
    rsvp_token: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)
    # Party, contact details and the current RSVP snapshot
    profile: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    def __repr__(self) -> str:
        return f"<Guest {self.uuid}>"


class EventDetails(Base, TimeStamp):
    __tablename__ = TableNames.EVENT_DETAILS.value

    # The most recently created row is authoritative
    details: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    def __repr__(self) -> str:
        return f"<EventDetails {self.uuid}>"


class RSVPRecord(Base, TimeStamp):
    __tablename__ = TableNames.RSVPS.value

    guest_id: Mapped[UUID] = mapped_column(
        ForeignKey(f"{TableNames.GUESTS.value}.uuid", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    record: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    def __repr__(self) -> str:
        return f"<RSVPRecord for guest {self.guest_id}>"


class AuditEvent(Base, TimeStamp):
    __tablename__ = TableNames.AUDIT_EVENTS.value

    guest_id: Mapped[UUID] = mapped_column(
        ForeignKey(f"{TableNames.GUESTS.value}.uuid", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    occurred_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    def __repr__(self) -> str:
        return f"<AuditEvent {self.type} for guest {self.guest_id}>"
