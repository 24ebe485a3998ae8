"""
SQLAlchemy ORM models (users, reminders and the activity/quiz tables they read)
"""
from datetime import date as date_type, datetime as datetime_type
from sqlalchemy import String, Integer, Text, TIMESTAMP, Date, Boolean, Numeric, Index, func
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import JSONB

from app.infrastructure.db.session import Base
from app.utils.clock import utcnow


class User(Base):
    """
    User with reminder preferences.

    reminder_window_inferred=False with a non-null reminder_window means the
    user picked the window explicitly; inference never overwrites it.
    """
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False, server_default="")
    timezone: Mapped[str | None] = mapped_column(String(64), nullable=True)

    onboarding_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="false", default=False)

    # Streak bookkeeping is owned by activity tracking; reminders only read it
    study_streak: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0", default=0)
    last_study_date: Mapped[date_type | None] = mapped_column(Date, nullable=True)

    reminders_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="true", default=True)
    reminder_window: Mapped[str | None] = mapped_column(String(16), nullable=True)  # morning/afternoon/evening/night
    reminder_window_inferred: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="false", default=False)
    email_notifications_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="true", default=True)

    created_at: Mapped[datetime_type] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), default=utcnow, nullable=False
    )


class Reminder(Base):
    """
    One scheduled / sent notification instance.

    status: pending → sent → read, any non-dismissed → dismissed (terminal).
    Due iff status == pending and send_at <= now.
    """
    __tablename__ = "reminders"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)

    type: Mapped[str] = mapped_column(String(48), nullable=False)
    channel: Mapped[str] = mapped_column(String(16), nullable=False, server_default="in_app", default="in_app")
    title: Mapped[str] = mapped_column(Text, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    payload: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)

    send_at: Mapped[datetime_type] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    sent_at: Mapped[datetime_type | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    read_at: Mapped[datetime_type | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, server_default="pending", default="pending")

    email_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="false", default=False)
    email_sent_at: Mapped[datetime_type | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)

    created_at: Mapped[datetime_type] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime_type] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), default=utcnow, onupdate=utcnow, nullable=False
    )

    __table_args__ = (
        Index("ix_reminders_user_status_send_at", "user_id", "status", "send_at"),
        Index("ix_reminders_status_send_at", "status", "send_at"),
        # Lookup index for once-per-day dedup queries (user + type)
        Index("ix_reminders_user_type", "user_id", "type"),
    )


class UserActivityLog(Base):
    """Raw activity events (study sessions, quizzes, tasks), the input to window inference."""
    __tablename__ = "user_activity_logs"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    event_type: Mapped[str] = mapped_column(String(64), nullable=False)
    payload: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    occurred_at: Mapped[datetime_type] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_activity_user_event_occurred", "user_id", "event_type", "occurred_at"),
    )


class QuizResult(Base):
    """Quiz attempt outcome (written by the quiz flow, read by the life-refill rule)."""
    __tablename__ = "quiz_results"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    quiz_id: Mapped[int] = mapped_column(Integer, nullable=False)
    percentage: Mapped[float] = mapped_column(Numeric(5, 2), nullable=False)
    completed_at: Mapped[datetime_type] = mapped_column(TIMESTAMP(timezone=True), nullable=False)


class UserEmailCounter(Base):
    """Per-user daily email counter (zeroed by the reset-counters job)."""
    __tablename__ = "user_email_counters"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)
    sent_today: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0", default=0)
    last_sent_at: Mapped[datetime_type | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    reset_at: Mapped[datetime_type | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
