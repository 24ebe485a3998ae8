"""
Housekeeping jobs for the reminder engine.

- reset_daily_email_counters: zero every user's daily email counter
- purge_old_reminders: retention purge of read / dismissed reminders
"""
import logging
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from app.config import get_settings
from app.domain.reminder import ReminderStatus
from app.infrastructure.db.models import Reminder, UserEmailCounter
from app.utils.clock import as_utc, utcnow

logger = logging.getLogger(__name__)


def reset_daily_email_counters(db: Session, now: datetime | None = None) -> int:
    """Returns the number of counters reset."""
    now = as_utc(now or utcnow())
    count = (
        db.query(UserEmailCounter)
        .update(
            {UserEmailCounter.sent_today: 0, UserEmailCounter.reset_at: now},
            synchronize_session=False,
        )
    )
    db.commit()
    logger.info("Daily email counters reset for %d user(s)", count)
    return count


def purge_old_reminders(db: Session, now: datetime | None = None, days: int | None = None) -> int:
    """
    Delete read / dismissed reminders untouched for `days` (default from settings).

    Pending and sent reminders are never purged.
    """
    now = as_utc(now or utcnow())
    if days is None:
        days = get_settings().REMINDER_RETENTION_DAYS
    cutoff = now - timedelta(days=days)
    deleted = (
        db.query(Reminder)
        .filter(
            Reminder.status.in_([ReminderStatus.READ.value, ReminderStatus.DISMISSED.value]),
            Reminder.updated_at < cutoff,
        )
        .delete(synchronize_session=False)
    )
    db.commit()
    logger.info("Purged %d reminder(s) older than %d day(s)", deleted, days)
    return deleted
