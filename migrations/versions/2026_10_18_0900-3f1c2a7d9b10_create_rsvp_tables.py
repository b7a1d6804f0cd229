"""create_rsvp_tables

Revision ID: 3f1c2a7d9b10
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""

import sqlalchemy as sa
import sqlalchemy_utils
from alembic import op

# revision identifiers, used by Alembic.
revision = "3f1c2a7d9b10"
down_revision = None
branch_labels = None
depends_on = None


def _uuid_column(name: str, **kwargs) -> sa.Column:
    return sa.Column(name, sqlalchemy_utils.UUIDType(binary=False), **kwargs)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.current_timestamp(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.current_timestamp(),
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "guests",
        _uuid_column("uuid", nullable=False),
        sa.Column("email_hash", sa.String(length=128), nullable=False),
        sa.Column("rsvp_token", sa.String(length=64), nullable=False),
        sa.Column("profile", sa.JSON(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("uuid"),
    )
    op.create_index("ix_guests_email_hash", "guests", ["email_hash"], unique=True)
    op.create_index("ix_guests_rsvp_token", "guests", ["rsvp_token"], unique=True)

    op.create_table(
        "event_details",
        _uuid_column("uuid", nullable=False),
        sa.Column("details", sa.JSON(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("uuid"),
    )

    op.create_table(
        "rsvps",
        _uuid_column("uuid", nullable=False),
        _uuid_column("guest_id", nullable=False),
        sa.Column("record", sa.JSON(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["guest_id"], ["guests.uuid"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("uuid"),
    )
    op.create_index("ix_rsvps_guest_id", "rsvps", ["guest_id"], unique=True)

    op.create_table(
        "audit_events",
        _uuid_column("uuid", nullable=False),
        _uuid_column("guest_id", nullable=False),
        sa.Column("type", sa.String(length=64), nullable=False),
        sa.Column("occurred_at", sa.BigInteger(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["guest_id"], ["guests.uuid"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("uuid"),
    )
    op.create_index("ix_audit_events_guest_id", "audit_events", ["guest_id"])
    op.create_index("ix_audit_events_type", "audit_events", ["type"])


def downgrade() -> None:
    op.drop_index("ix_audit_events_type", table_name="audit_events")
    op.drop_index("ix_audit_events_guest_id", table_name="audit_events")
    op.drop_table("audit_events")
    op.drop_index("ix_rsvps_guest_id", table_name="rsvps")
    op.drop_table("rsvps")
    op.drop_table("event_details")
    op.drop_index("ix_guests_rsvp_token", table_name="guests")
    op.drop_index("ix_guests_email_hash", table_name="guests")
    op.drop_table("guests")
