"""
Reminder dispatcher: flushes due reminders to in-app and email channels.

Usage (cron / systemd timer / manual):
    python -m app.application.reminder_dispatcher

Or call dispatch_due_reminders(db) from your own scheduler.

Every reminder is handled on its own: the status flip to "sent" is committed
first, email goes out afterwards (inline or queued) and its failure only
leaves email_sent=False behind.
"""
import logging
from datetime import datetime
from typing import Callable

from sqlalchemy.orm import Session

from app.application.email_delivery import (
    EmailDeliveryError,
    deliver_reminder_email,
    email_limit_reached,
    get_email_counter,
)
from app.config import get_settings
from app.domain.reminder import ReminderChannel, ReminderStatus
from app.infrastructure.db.models import Reminder, User, UserEmailCounter
from app.utils.clock import as_utc, utcnow

logger = logging.getLogger(__name__)

# (db, reminder, user, counter, now) -> True if the email went out
EmailHandler = Callable[[Session, Reminder, User, UserEmailCounter, datetime], bool]


def _inline_email(db: Session, reminder: Reminder, user: User, counter: UserEmailCounter, now: datetime) -> bool:
    return deliver_reminder_email(db, reminder, user, counter, now=now)


def fetch_due_reminders(db: Session, now: datetime) -> list[Reminder]:
    """Pending reminders whose send time has passed."""
    return (
        db.query(Reminder)
        .filter(
            Reminder.status == ReminderStatus.PENDING.value,
            Reminder.send_at <= as_utc(now),
        )
        .order_by(Reminder.send_at, Reminder.id)
        .all()
    )


def _wants_email(reminder: Reminder, user: User) -> bool:
    return (
        ReminderChannel(reminder.channel).includes_email
        and bool(user.email_notifications_enabled)
        and bool(user.email)
    )


def dispatch_due_reminders(
    db: Session,
    now: datetime | None = None,
    email_handler: EmailHandler | None = None,
) -> int:
    """
    Mark every due reminder as sent and hand email copies to email_handler.

    Returns the number of reminders flushed in this sweep.
    """
    now = as_utc(now or utcnow())
    email_handler = email_handler or _inline_email
    limit = get_settings().EMAIL_DAILY_LIMIT

    due = fetch_due_reminders(db, now)
    if not due:
        return 0

    sent = 0
    for reminder in due:
        reminder_id = reminder.id
        try:
            user = db.get(User, reminder.user_id)
            if user is None or not user.reminders_enabled:
                reminder.status = ReminderStatus.DISMISSED.value
                reminder.updated_at = now
                db.commit()
                continue

            reminder.status = ReminderStatus.SENT.value
            reminder.sent_at = now
            reminder.updated_at = now
            db.commit()
            sent += 1
        except Exception:
            db.rollback()
            logger.exception("Failed to dispatch reminder id=%s", reminder_id)
            continue

        try:
            if not _wants_email(reminder, user):
                continue
            counter = get_email_counter(db, user.id)
            if email_limit_reached(counter, limit):
                logger.info("Daily email limit reached for user_id=%s, reminder id=%s in-app only", user.id, reminder_id)
                continue
            email_handler(db, reminder, user, counter, now)
        except EmailDeliveryError:
            db.rollback()
            logger.exception("Email delivery failed for reminder id=%s user_id=%s", reminder_id, user.id)
        except Exception:
            db.rollback()
            logger.exception("Email handoff failed for reminder id=%s user_id=%s", reminder_id, user.id)

    logger.info("Reminder sweep: flushed %d of %d due reminder(s)", sent, len(due))
    return sent


# ── CLI entry point ──
if __name__ == "__main__":
    from app.infrastructure.db.session import get_session_factory
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

    SessionLocal = get_session_factory()
    db = SessionLocal()
    try:
        n = dispatch_due_reminders(db)
        logger.info("Dispatched %d reminder(s)", n)
    finally:
        db.close()
