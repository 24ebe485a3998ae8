"""
Background scheduler: runs periodic reminder jobs inside the FastAPI process.

Jobs:
  - Window inference (02:30 UTC)
  - Reminder scheduling (every 15 minutes)
  - Reminder dispatcher (every 2 minutes)
  - Email counter reset (00:00 UTC)
  - Reminder retention purge (03:30 UTC)

Emails produced by the dispatcher are queued as one-off jobs so a slow SMTP
server never holds up the in-app status change.
"""
import logging
from datetime import datetime

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.orm import Session

from app.infrastructure.db.models import Reminder, User, UserEmailCounter

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler(daemon=True)


def _run_window_inference():
    from app.infrastructure.db.session import get_session_factory
    from app.application.window_inference import infer_windows_for_all

    Session = get_session_factory()
    db = Session()
    try:
        infer_windows_for_all(db)
    except Exception:
        logger.exception("Window inference job failed")
    finally:
        db.close()


def _run_reminder_scheduling():
    from app.infrastructure.db.session import get_session_factory
    from app.application.reminder_rules import schedule_reminders_for_all

    Session = get_session_factory()
    db = Session()
    try:
        schedule_reminders_for_all(db)
    except Exception:
        logger.exception("Reminder scheduling job failed")
    finally:
        db.close()


def _run_reminders():
    from app.infrastructure.db.session import get_session_factory
    from app.application.reminder_dispatcher import dispatch_due_reminders

    Session = get_session_factory()
    db = Session()
    try:
        dispatch_due_reminders(db, email_handler=queue_reminder_email)
    except Exception:
        logger.exception("Reminder dispatch job failed")
    finally:
        db.close()


def _run_counter_reset():
    from app.infrastructure.db.session import get_session_factory
    from app.application.maintenance import reset_daily_email_counters

    Session = get_session_factory()
    db = Session()
    try:
        reset_daily_email_counters(db)
    except Exception:
        logger.exception("Email counter reset job failed")
    finally:
        db.close()


def _run_retention_purge():
    from app.infrastructure.db.session import get_session_factory
    from app.application.maintenance import purge_old_reminders

    Session = get_session_factory()
    db = Session()
    try:
        purge_old_reminders(db)
    except Exception:
        logger.exception("Reminder retention purge failed")
    finally:
        db.close()


def _run_email_delivery(reminder_id: int):
    from app.infrastructure.db.session import get_session_factory
    from app.application.email_delivery import (
        EmailDeliveryError,
        deliver_reminder_email,
        email_limit_reached,
        get_email_counter,
    )

    Session = get_session_factory()
    db = Session()
    try:
        reminder = db.get(Reminder, reminder_id)
        if reminder is None or reminder.email_sent:
            return
        user = db.get(User, reminder.user_id)
        if user is None:
            return
        # Several jobs can be queued in one sweep; the limit is enforced at send time
        counter = get_email_counter(db, user.id)
        if email_limit_reached(counter):
            logger.info("Daily email limit reached for user_id=%s, queued reminder id=%s skipped", user.id, reminder_id)
            return
        deliver_reminder_email(db, reminder, user, counter)
    except EmailDeliveryError:
        logger.exception("Queued email failed for reminder id=%s", reminder_id)
    except Exception:
        logger.exception("Queued email job crashed for reminder id=%s", reminder_id)
    finally:
        db.close()


def queue_reminder_email(
    db: Session, reminder: Reminder, user: User, counter: UserEmailCounter, now: datetime
) -> bool:
    """Email handler for the dispatcher: defers the send to a one-off job."""
    # The job opens its own session; nothing of this sweep may be left uncommitted
    db.commit()
    scheduler.add_job(
        _run_email_delivery,
        args=[reminder.id],
        id=f"reminder_email_{reminder.id}",
        replace_existing=True,
    )
    return False


def start_scheduler():
    """Start the background scheduler with all periodic jobs."""
    scheduler.add_job(
        _run_window_inference,
        CronTrigger(hour=2, minute=30),
        id="window_inference",
        replace_existing=True,
    )

    scheduler.add_job(
        _run_reminder_scheduling,
        "interval",
        minutes=15,
        id="reminder_scheduling",
        replace_existing=True,
    )

    scheduler.add_job(
        _run_reminders,
        "interval",
        minutes=2,
        id="reminders",
        replace_existing=True,
    )

    scheduler.add_job(
        _run_counter_reset,
        CronTrigger(hour=0, minute=0),
        id="email_counter_reset",
        replace_existing=True,
    )

    scheduler.add_job(
        _run_retention_purge,
        CronTrigger(hour=3, minute=30),
        id="reminder_retention_purge",
        replace_existing=True,
    )

    scheduler.start()
    logger.info(
        "Scheduler started: window_inference (02:30 UTC), reminder_scheduling (every 15 min), "
        "reminders (every 2 min), email_counter_reset (00:00 UTC), retention_purge (03:30 UTC)"
    )


def shutdown_scheduler():
    """Gracefully stop the scheduler."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
