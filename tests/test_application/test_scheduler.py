"""
Tests for the background scheduler and its queued email path.

Covers:
  - start_scheduler registers every periodic job
  - Dispatcher + queue handler: one one-off job per emailed reminder
  - Queued jobs respect the daily email limit at send time
  - Queued job skips reminders already emailed or whose user is gone
"""
from datetime import datetime, timedelta, timezone

import pytest
from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy.orm import sessionmaker

from app.application import email_delivery
from app.application import scheduler as scheduler_module
from app.application.email_delivery import get_email_counter
from app.application.reminder_dispatcher import dispatch_due_reminders
from app.application.scheduler import _run_email_delivery, queue_reminder_email, start_scheduler
from app.infrastructure.db import session as session_module
from app.infrastructure.db.models import Reminder, UserEmailCounter

_tz = timezone.utc
NOW = datetime(2026, 3, 10, 19, 5, tzinfo=_tz)


@pytest.fixture
def job_scheduler(monkeypatch):
    """Fresh, never-started scheduler: added jobs stay pending and can be inspected."""
    fresh = BackgroundScheduler()
    monkeypatch.setattr(fresh, "start", lambda *args, **kwargs: None)
    monkeypatch.setattr(scheduler_module, "scheduler", fresh)
    return fresh


@pytest.fixture(autouse=True)
def job_sessions(db_engine, monkeypatch):
    """Jobs open their own sessions on the test engine."""
    monkeypatch.setattr(session_module, "get_session_factory", lambda: sessionmaker(bind=db_engine))


@pytest.fixture
def outbox(monkeypatch):
    sent = []
    monkeypatch.setattr(email_delivery.SmtpMailer, "send", lambda self, email: sent.append(email) or True)
    return sent


def _run_queued(job_scheduler):
    for job in job_scheduler.get_jobs():
        job.func(*job.args)


def test_start_registers_periodic_jobs(job_scheduler):
    start_scheduler()

    assert {job.id for job in job_scheduler.get_jobs()} == {
        "window_inference",
        "reminder_scheduling",
        "reminders",
        "email_counter_reset",
        "reminder_retention_purge",
    }


def test_dispatch_queues_one_job_per_email(db_session, make_user, make_reminder, job_scheduler, outbox):
    user = make_user(email_notifications_enabled=True)
    emailed = make_reminder(user, channel="both", send_at=NOW - timedelta(minutes=2))
    make_reminder(user, channel="in_app", send_at=NOW - timedelta(minutes=1))

    assert dispatch_due_reminders(db_session, NOW, email_handler=queue_reminder_email) == 2

    jobs = job_scheduler.get_jobs()
    assert [job.id for job in jobs] == [f"reminder_email_{emailed.id}"]
    assert outbox == []

    _run_queued(job_scheduler)

    db_session.expire_all()
    assert db_session.get(Reminder, emailed.id).email_sent is True
    assert len(outbox) == 1


def test_queued_emails_respect_daily_limit(db_session, make_user, make_reminder, job_scheduler, outbox):
    user = make_user(email_notifications_enabled=True)
    db_session.add(UserEmailCounter(user_id=user.id, sent_today=4))
    db_session.commit()
    for minutes in (3, 2, 1):
        make_reminder(user, channel="both", send_at=NOW - timedelta(minutes=minutes))

    assert dispatch_due_reminders(db_session, NOW, email_handler=queue_reminder_email) == 3
    assert len(job_scheduler.get_jobs()) == 3

    _run_queued(job_scheduler)

    db_session.expire_all()
    counter = db_session.query(UserEmailCounter).filter_by(user_id=user.id).one()
    assert counter.sent_today == 5
    assert len(outbox) == 1
    assert db_session.query(Reminder).filter_by(user_id=user.id, email_sent=True).count() == 1
    assert db_session.query(Reminder).filter_by(user_id=user.id, status="sent").count() == 3


def test_queued_job_skips_already_emailed(db_session, make_user, make_reminder, outbox):
    user = make_user(email_notifications_enabled=True)
    reminder = make_reminder(user, channel="both", status="sent", email_sent=True)

    _run_email_delivery(reminder.id)

    assert outbox == []


def test_queued_job_skips_missing_user(db_session, make_user, make_reminder, outbox):
    user = make_user(email_notifications_enabled=True)
    reminder = make_reminder(user, channel="both", status="sent")
    reminder.user_id = 9999
    db_session.commit()

    _run_email_delivery(reminder.id)

    assert outbox == []
    assert db_session.query(UserEmailCounter).count() == 0


def test_new_counter_is_committed(db_session, make_user):
    user = make_user()

    get_email_counter(db_session, user.id)
    db_session.rollback()

    assert db_session.query(UserEmailCounter).filter_by(user_id=user.id).count() == 1
