"""Initial schema: offerings, bookings and the occupancy audit trail.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Offerings table
    op.create_table(
        "offerings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("kind", sa.String(20), nullable=False, server_default=sa.text("'class'")),
        sa.Column("host_id", sa.Integer(), nullable=True),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("occupancy", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("scheduled_start", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("capacity > 0", name="check_capacity_positive"),
        sa.CheckConstraint("occupancy >= 0", name="check_occupancy_non_negative"),
        sa.CheckConstraint("occupancy <= capacity", name="check_occupancy_lte_capacity"),
        sa.CheckConstraint("kind IN ('class', 'retreat')", name="check_offering_kind"),
    )
    op.create_index("ix_offerings_id", "offerings", ["id"])
    op.create_index("ix_offerings_host_id", "offerings", ["host_id"])
    # Listings and the reconciliation sweep both walk offerings by start time.
    op.create_index("ix_offerings_scheduled_start", "offerings", ["scheduled_start"])

    # Bookings table
    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("participant_id", sa.Integer(), nullable=False),
        sa.Column("offering_id", sa.Integer(), sa.ForeignKey("offerings.id"), nullable=False),
        sa.Column("booking_status", sa.String(20), nullable=False, server_default=sa.text("'confirmed'")),
        sa.Column("payment_status", sa.String(20), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("booking_status IN ('confirmed', 'cancelled')", name="check_booking_status"),
        sa.CheckConstraint(
            "payment_status IN ('pending', 'completed', 'failed', 'refunded')",
            name="check_payment_status",
        ),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_participant_id", "bookings", ["participant_id"])
    op.create_index("ix_bookings_offering_id", "bookings", ["offering_id"])
    # Cancelled rows stay for history, so uniqueness only covers confirmed bookings.
    op.create_index(
        "uq_confirmed_booking_per_participant",
        "bookings",
        ["participant_id", "offering_id"],
        unique=True,
        postgresql_where=sa.text("booking_status = 'confirmed'"),
    )
    # Covers count(*) WHERE offering_id = ? AND confirmed AND completed
    op.create_index(
        "ix_bookings_offering_status_payment",
        "bookings",
        ["offering_id", "booking_status", "payment_status"],
    )

    # Audit trail: append-only, no foreign keys so history outlives its subjects
    op.create_table(
        "participant_count_audit",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("offering_id", sa.Integer(), nullable=False),
        sa.Column("participant_id", sa.Integer(), nullable=True),
        sa.Column("action", sa.String(20), nullable=False),
        sa.Column("old_count", sa.Integer(), nullable=False),
        sa.Column("new_count", sa.Integer(), nullable=False),
        sa.Column("booking_id", sa.Integer(), nullable=True),
        sa.Column("reason", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            "action IN ('increment', 'decrement', 'sync', 'validation')",
            name="check_audit_action",
        ),
    )
    op.create_index("ix_participant_count_audit_id", "participant_count_audit", ["id"])
    op.create_index("ix_audit_offering_created", "participant_count_audit", ["offering_id", "created_at"])


def downgrade() -> None:
    op.drop_table("participant_count_audit")
    op.drop_table("bookings")
    op.drop_table("offerings")
