"""
Pytest fixtures for testing
"""
from datetime import datetime, timezone

import pytest
from sqlalchemy import JSON, create_engine
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.infrastructure.db.models import QuizResult, Reminder, User, UserActivityLog
from app.infrastructure.db.session import Base


@pytest.fixture
def db_engine():
    """Create in-memory SQLite engine for tests, with JSONB→JSON mapping."""
    # StaticPool + check_same_thread: the TestClient runs routes in a worker thread
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Monkey-patch JSONB columns to JSON for SQLite compatibility
    for table in Base.metadata.tables.values():
        for col in table.columns:
            if isinstance(col.type, JSONB):
                col.type = JSON()
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine) -> Session:
    """Create database session for tests"""
    SessionLocal = sessionmaker(bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def make_user(db_session):
    """Factory: onboarded, reminders-enabled user (override any column via kwargs)."""
    counter = {"n": 0}

    def _make(**kwargs) -> User:
        counter["n"] += 1
        fields = dict(
            email=f"student{counter['n']}@example.com",
            name=f"Student {counter['n']}",
            timezone="UTC",
            onboarding_completed=True,
            reminders_enabled=True,
            email_notifications_enabled=False,
            study_streak=0,
        )
        fields.update(kwargs)
        user = User(**fields)
        db_session.add(user)
        db_session.commit()
        return user

    return _make


@pytest.fixture
def make_reminder(db_session):
    """Factory: reminder row for a user (pending in-app daily nudge by default)."""

    def _make(user: User, **kwargs) -> Reminder:
        now = kwargs.pop("now", utc(2026, 3, 10, 12, 0))
        fields = dict(
            user_id=user.id,
            type="daily_nudge",
            channel="in_app",
            title="Time to study",
            message="Open the planner",
            payload={},
            send_at=now,
            status="pending",
            created_at=now,
            updated_at=now,
        )
        fields.update(kwargs)
        reminder = Reminder(**fields)
        db_session.add(reminder)
        db_session.commit()
        return reminder

    return _make


@pytest.fixture
def log_activity(db_session):
    """Factory: raw activity log row."""

    def _log(user: User, occurred_at: datetime, event_type: str = "study_session_completed") -> UserActivityLog:
        row = UserActivityLog(user_id=user.id, event_type=event_type, payload={}, occurred_at=occurred_at)
        db_session.add(row)
        db_session.commit()
        return row

    return _log


@pytest.fixture
def record_quiz(db_session):
    """Factory: quiz attempt row."""

    def _record(user: User, percentage: float, completed_at: datetime, quiz_id: int = 1) -> QuizResult:
        row = QuizResult(user_id=user.id, quiz_id=quiz_id, percentage=percentage, completed_at=completed_at)
        db_session.add(row)
        db_session.commit()
        return row

    return _record
