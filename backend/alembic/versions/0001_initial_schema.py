"""initial_schema

Revision ID: 0001
Revises:
Create Date: 2026-10-18

Creates all tables for EventPass:
users, events, registrations, scan_logs.
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- users ---
    op.create_table(
        "users",
        sa.Column("user_id", sa.String(36), primary_key=True),
        sa.Column("display_name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=True, unique=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- events ---
    op.create_table(
        "events",
        sa.Column("event_id", sa.String(36), primary_key=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("venue", sa.String(255), nullable=True),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("registration_deadline", sa.DateTime(timezone=True), nullable=False),
        sa.Column("max_participants", sa.Integer, nullable=False),
        sa.Column("current_participants", sa.Integer, nullable=False, server_default="0"),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("current_participants >= 0", name="ck_events_participants_non_negative"),
        sa.CheckConstraint("current_participants <= max_participants", name="ck_events_participants_within_cap"),
    )

    # --- registrations ---
    op.create_table(
        "registrations",
        sa.Column("registration_id", sa.String(64), primary_key=True),
        sa.Column(
            "student_id", sa.String(36),
            sa.ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("event_id", sa.String(36), sa.ForeignKey("events.event_id"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="registered"),
        sa.Column("credential", sa.JSON, nullable=False),
        sa.Column("registered_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("attended_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_registrations_student_id", "registrations", ["student_id"])
    op.create_index("ix_registrations_event_id", "registrations", ["event_id"])
    op.create_index(
        "uq_registrations_active_student_event",
        "registrations",
        ["student_id", "event_id"],
        unique=True,
        sqlite_where=sa.text("status != 'cancelled'"),
        postgresql_where=sa.text("status != 'cancelled'"),
    )

    # --- scan_logs ---
    op.create_table(
        "scan_logs",
        sa.Column("scan_id", sa.String(36), primary_key=True),
        sa.Column("registration_id", sa.String(128), nullable=True),
        sa.Column(
            "matched_registration_id", sa.String(64),
            sa.ForeignKey("registrations.registration_id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column("event_id", sa.String(128), nullable=True),
        sa.Column("student_id", sa.String(128), nullable=True),
        sa.Column("scanned_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("scanned_by", sa.String(255), nullable=False, server_default="system"),
        sa.Column("location", sa.String(255), nullable=False, server_default="unknown"),
        sa.Column("outcome", sa.String(20), nullable=False),
        sa.Column("notes", sa.String(500), nullable=True),
    )
    op.create_index("ix_scan_logs_registration_id", "scan_logs", ["registration_id"])
    op.create_index("ix_scan_logs_matched_registration_id", "scan_logs", ["matched_registration_id"])
    op.create_index("ix_scan_logs_event_id", "scan_logs", ["event_id"])
    op.create_index("ix_scan_logs_student_id", "scan_logs", ["student_id"])


def downgrade() -> None:
    op.drop_table("scan_logs")
    op.drop_table("registrations")
    op.drop_table("events")
    op.drop_table("users")
