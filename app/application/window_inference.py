"""
Reminder window inference: learns when a user usually studies.

Runs as a daily batch. Users with too few samples are skipped silently;
explicitly chosen windows are never overwritten.
"""
import logging
from collections import Counter
from datetime import datetime

from sqlalchemy.orm import Session

from app.application.activity import ActivityReader
from app.config import get_settings
from app.domain.reminder import hour_to_window
from app.infrastructure.db.models import User
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)


def _has_explicit_window(user: User) -> bool:
    return user.reminder_window is not None and not user.reminder_window_inferred


def infer_reminder_window(db: Session, user: User, now: datetime | None = None) -> str | None:
    """
    Infer and store the user's most active window.

    Returns the window written, or None when skipped (explicit window,
    not enough samples).
    """
    if _has_explicit_window(user):
        return None

    settings = get_settings()
    now = now or utcnow()
    hours = ActivityReader(db).hourly_distribution(user, now, settings.WINDOW_LOOKBACK_DAYS)
    if sum(hours.values()) < settings.WINDOW_MIN_SAMPLES:
        return None

    windows: Counter = Counter()
    for hour, count in hours.items():
        windows[hour_to_window(hour).value] += count
    top_window = windows.most_common(1)[0][0]

    user.reminder_window = top_window
    user.reminder_window_inferred = True
    db.commit()
    return top_window


def infer_windows_for_all(db: Session, now: datetime | None = None) -> int:
    """Infer windows for every reminders-enabled, onboarded user. Returns count inferred."""
    now = now or utcnow()
    users = (
        db.query(User)
        .filter(User.reminders_enabled == True, User.onboarding_completed == True)  # noqa: E712
        .all()
    )
    inferred = 0
    for user in users:
        try:
            window = infer_reminder_window(db, user, now)
        except Exception:
            db.rollback()
            logger.exception("Window inference failed for user_id=%s", user.id)
            continue
        if window:
            inferred += 1
            logger.info("User #%s: inferred window -> %s", user.id, window)

    logger.info("Inferred reminder windows for %d user(s)", inferred)
    return inferred
