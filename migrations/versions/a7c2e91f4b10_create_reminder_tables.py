"""create users, reminders, user_activity_logs, quiz_results, user_email_counters tables

Revision ID: a7c2e91f4b10
Revises:
Create Date: 2026-10-18

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

revision = "a7c2e91f4b10"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # users — reminder preferences and the streak fields the rules read
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("name", sa.String(255), nullable=False, server_default=""),
        sa.Column("timezone", sa.String(64), nullable=True),
        sa.Column("onboarding_completed", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("study_streak", sa.Integer, nullable=False, server_default="0"),
        sa.Column("last_study_date", sa.Date, nullable=True),
        sa.Column("reminders_enabled", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("reminder_window", sa.String(16), nullable=True),
        sa.Column("reminder_window_inferred", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("email_notifications_enabled", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text("now()")),
    )

    # reminders — one row per scheduled / sent reminder
    op.create_table(
        "reminders",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer, nullable=False),
        sa.Column("type", sa.String(48), nullable=False),
        sa.Column("channel", sa.String(16), nullable=False, server_default="in_app"),
        sa.Column("title", sa.Text, nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("payload", JSONB, nullable=False, server_default="{}"),
        sa.Column("send_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("sent_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("read_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("email_sent", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("email_sent_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_reminders_user_status_send_at", "reminders", ["user_id", "status", "send_at"])
    # Dispatcher sweep: status = pending AND send_at <= now
    op.create_index("ix_reminders_status_send_at", "reminders", ["status", "send_at"])
    # Once-per-day dedup lookups
    op.create_index("ix_reminders_user_type", "reminders", ["user_id", "type"])

    op.create_table(
        "user_activity_logs",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer, nullable=False),
        sa.Column("event_type", sa.String(64), nullable=False),
        sa.Column("payload", JSONB, nullable=False, server_default="{}"),
        sa.Column("occurred_at", sa.TIMESTAMP(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_activity_user_event_occurred",
        "user_activity_logs",
        ["user_id", "event_type", "occurred_at"],
    )

    op.create_table(
        "quiz_results",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer, nullable=False, index=True),
        sa.Column("quiz_id", sa.Integer, nullable=False),
        sa.Column("percentage", sa.Numeric(5, 2), nullable=False),
        sa.Column("completed_at", sa.TIMESTAMP(timezone=True), nullable=False),
    )

    op.create_table(
        "user_email_counters",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer, nullable=False, unique=True),
        sa.Column("sent_today", sa.Integer, nullable=False, server_default="0"),
        sa.Column("last_sent_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("reset_at", sa.TIMESTAMP(timezone=True), nullable=True),
    )


def downgrade() -> None:
    op.drop_table("user_email_counters")
    op.drop_table("quiz_results")
    op.drop_index("ix_activity_user_event_occurred", table_name="user_activity_logs")
    op.drop_table("user_activity_logs")
    op.drop_index("ix_reminders_user_type", table_name="reminders")
    op.drop_index("ix_reminders_status_send_at", table_name="reminders")
    op.drop_index("ix_reminders_user_status_send_at", table_name="reminders")
    op.drop_table("reminders")
    op.drop_table("users")
