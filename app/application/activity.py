"""
Read-side collaborators for the reminder engine.

record_activity  : append one activity event
ActivityReader   : "studied today?" and hourly activity distribution
QuizOutcomeReader: latest quiz attempt and whether it passed
"""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from app.config import get_settings
from app.domain.logical_day import logical_date, logical_day_bounds, resolve_tz
from app.infrastructure.db.models import QuizResult, User, UserActivityLog
from app.utils.clock import as_utc, utcnow

# Events that count as "studied" for the day
STUDY_EVENTS = (
    "study_session_started",
    "study_session_completed",
    "task_completed",
    "quiz_completed",
)

# Events sampled for reminder-window inference
WINDOW_EVENTS = (
    "study_session_started",
    "study_session_completed",
    "task_completed",
    "quiz_started",
    "quiz_completed",
)


TRACKED_EVENTS = ("app_opened",) + WINDOW_EVENTS


class ActivityValidationError(ValueError):
    pass


def user_tz(user: User):
    """ZoneInfo for the user, falling back to the application timezone."""
    return resolve_tz(user.timezone, get_settings().TIMEZONE)


def record_activity(
    db: Session, user: User, event_type: str, payload: dict | None = None, now: datetime | None = None
) -> UserActivityLog:
    if event_type not in TRACKED_EVENTS:
        raise ActivityValidationError(f"Unknown activity event: {event_type}")
    log = UserActivityLog(
        user_id=user.id,
        event_type=event_type,
        payload=payload or {},
        occurred_at=as_utc(now or utcnow()),
    )
    db.add(log)
    db.commit()
    return log


class ActivityReader:
    def __init__(self, db: Session):
        self.db = db

    def has_studied_today(self, user: User, now: datetime) -> bool:
        """True if a study event exists within the user's current logical day."""
        settings = get_settings()
        tz = user_tz(user)
        day = logical_date(now, tz, settings.NIGHT_OWL_GRACE_HOUR)
        start, end = logical_day_bounds(day, tz, settings.NIGHT_OWL_GRACE_HOUR)
        return (
            self.db.query(UserActivityLog.id)
            .filter(
                UserActivityLog.user_id == user.id,
                UserActivityLog.event_type.in_(STUDY_EVENTS),
                UserActivityLog.occurred_at >= start,
                UserActivityLog.occurred_at < end,
            )
            .first()
            is not None
        )

    def hourly_distribution(self, user: User, now: datetime, lookback_days: int) -> Counter:
        """
        Count activity events per local hour of day over the lookback window.

        Keys are inserted in chronological order of first occurrence, so
        Counter.most_common() breaks ties by what the user did first.
        """
        tz = user_tz(user)
        since = as_utc(now) - timedelta(days=lookback_days)
        rows = (
            self.db.query(UserActivityLog.occurred_at)
            .filter(
                UserActivityLog.user_id == user.id,
                UserActivityLog.event_type.in_(WINDOW_EVENTS),
                UserActivityLog.occurred_at >= since,
            )
            .order_by(UserActivityLog.occurred_at)
            .all()
        )
        hours: Counter = Counter()
        for (occurred_at,) in rows:
            hours[as_utc(occurred_at).astimezone(tz).hour] += 1
        return hours


@dataclass(frozen=True)
class QuizAttempt:
    completed_at: datetime
    percentage: float
    passed: bool


class QuizOutcomeReader:
    def __init__(self, db: Session):
        self.db = db

    def latest_attempt(self, user: User) -> QuizAttempt | None:
        row = (
            self.db.query(QuizResult)
            .filter(QuizResult.user_id == user.id)
            .order_by(QuizResult.completed_at.desc(), QuizResult.id.desc())
            .first()
        )
        if row is None:
            return None
        percentage = float(row.percentage)
        return QuizAttempt(
            completed_at=as_utc(row.completed_at),
            percentage=percentage,
            passed=percentage >= get_settings().QUIZ_PASS_PERCENTAGE,
        )
