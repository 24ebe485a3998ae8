"""
Reminder eligibility rules: decide whether to create a reminder "today".

Architecture:
- _exists_in_day(): once-per-logical-day dedup (read-before-write)
- ReminderScheduler.schedule_<type>(): check conditions, dedup, create
- ReminderScheduler.notify_behavioral(): entry point for external behaviour logic
- schedule_reminders_for_all(db): batch over eligible users

A rule that declines returns None (logged at DEBUG); it never raises for a
normal negative outcome. Dedup is best-effort: two concurrent schedulers can
both pass the existence check, there is no unique constraint behind it.
"""
import logging
import random
from datetime import datetime, timedelta

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.application.activity import ActivityReader, QuizOutcomeReader, user_tz
from app.config import get_settings
from app.domain import reminder_copy
from app.domain.logical_day import local_at, logical_date, logical_day_bounds
from app.domain.reminder import (
    ReminderChannel,
    ReminderStatus,
    ReminderType,
    ReminderWindow,
    window_hour,
)
from app.infrastructure.db.models import Reminder, User
from app.utils.clock import as_utc, utcnow

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Dedup helper
# ---------------------------------------------------------------------------

def _exists_in_day(
    db: Session,
    user_id: int,
    reminder_type: str,
    start: datetime,
    end: datetime,
) -> bool:
    """Return True if a reminder of this type is already scheduled in [start, end)."""
    return (
        db.query(Reminder.id)
        .filter(
            Reminder.user_id == user_id,
            Reminder.type == reminder_type,
            Reminder.send_at >= start,
            Reminder.send_at < end,
        )
        .first()
        is not None
    )


def _default_channel(user: User) -> str:
    if user.email_notifications_enabled:
        return ReminderChannel.BOTH.value
    return ReminderChannel.IN_APP.value


def _skip(rule: ReminderType, user: User, reason: str) -> None:
    logger.debug("%s skipped for user_id=%s: %s", rule.value, user.id, reason)
    return None


# ---------------------------------------------------------------------------
# Scheduler
# ---------------------------------------------------------------------------

class ReminderScheduler:
    def __init__(self, db: Session, rng: random.Random | None = None):
        self.db = db
        self.rng = rng
        self.settings = get_settings()
        self.activity = ActivityReader(db)
        self.quizzes = QuizOutcomeReader(db)

    # -- helpers ------------------------------------------------------------

    def _today(self, user: User, now: datetime):
        tz = user_tz(user)
        return tz, logical_date(now, tz, self.settings.NIGHT_OWL_GRACE_HOUR)

    def _already_scheduled(self, user: User, rule: ReminderType, send_at: datetime) -> bool:
        tz = user_tz(user)
        grace = self.settings.NIGHT_OWL_GRACE_HOUR
        day = logical_date(send_at, tz, grace)
        start, end = logical_day_bounds(day, tz, grace)
        return _exists_in_day(self.db, user.id, rule.value, start, end)

    def _create(
        self,
        user: User,
        rule: ReminderType,
        title: str,
        message: str,
        payload: dict,
        send_at: datetime,
        now: datetime,
        channel: str | None = None,
        status: str = ReminderStatus.PENDING.value,
    ) -> Reminder:
        reminder = Reminder(
            user_id=user.id,
            type=rule.value,
            channel=channel or _default_channel(user),
            title=title,
            message=message,
            payload=payload,
            send_at=as_utc(send_at),
            status=status,
            sent_at=as_utc(now) if status == ReminderStatus.SENT.value else None,
            created_at=as_utc(now),
            updated_at=as_utc(now),
        )
        self.db.add(reminder)
        self.db.commit()
        logger.info(
            "Scheduled %s reminder id=%s for user_id=%s at %s",
            rule.value, reminder.id, user.id, reminder.send_at,
        )
        return reminder

    # -- rules --------------------------------------------------------------

    def schedule_daily_nudge(self, user: User, now: datetime | None = None) -> Reminder | None:
        """daily_nudge: once a day at the user's window hour, unless already studied."""
        rule = ReminderType.DAILY_NUDGE
        now = as_utc(now or utcnow())
        if not user.reminders_enabled:
            return _skip(rule, user, "reminders disabled")
        if not user.reminder_window:
            return _skip(rule, user, "no reminder window")

        tz, today = self._today(user, now)
        send_at = local_at(today, window_hour(user.reminder_window), tz)
        if send_at < now:
            return _skip(rule, user, "window already passed")
        if self._already_scheduled(user, rule, send_at):
            return _skip(rule, user, "already nudged today")
        if self.activity.has_studied_today(user, now):
            return _skip(rule, user, "studied today")

        streak = user.study_streak or 0
        title, message = reminder_copy.daily_nudge_copy(streak, self.rng)
        return self._create(
            user, rule, title, message,
            {"streak": streak, "window": user.reminder_window},
            send_at, now,
        )

    def schedule_streak_risk(self, user: User, now: datetime | None = None) -> Reminder | None:
        """streak_risk: warn an active streak is about to be lost."""
        rule = ReminderType.STREAK_RISK
        now = as_utc(now or utcnow())
        if not user.reminders_enabled:
            return _skip(rule, user, "reminders disabled")

        streak = user.study_streak or 0
        if streak <= 0:
            return _skip(rule, user, "no active streak")
        if self.activity.has_studied_today(user, now):
            return _skip(rule, user, "studied today")

        tz, today = self._today(user, now)
        window = user.reminder_window or ReminderWindow.EVENING.value
        send_at = local_at(today, window_hour(window), tz)
        if self._already_scheduled(user, rule, send_at):
            return _skip(rule, user, "already warned today")
        if send_at < now:
            return _skip(rule, user, "window already passed")

        title, message = reminder_copy.streak_risk_copy(streak, self.rng)
        return self._create(user, rule, title, message, {"streak": streak}, send_at, now)

    def schedule_tasks_pending(
        self, user: User, pending_count: int, now: datetime | None = None
    ) -> Reminder | None:
        """tasks_pending: evening reminder about unfinished tasks (first write wins)."""
        rule = ReminderType.TASKS_PENDING
        now = as_utc(now or utcnow())
        if not user.reminders_enabled:
            return _skip(rule, user, "reminders disabled")
        if pending_count < 1:
            return _skip(rule, user, "no pending tasks")

        tz, today = self._today(user, now)
        send_at = local_at(today, self.settings.TASKS_PENDING_HOUR, tz)
        if self._already_scheduled(user, rule, send_at):
            return _skip(rule, user, "already reminded today")
        if send_at < now:
            return _skip(rule, user, "evening slot already passed")

        title, message = reminder_copy.tasks_pending_copy(pending_count, self.rng)
        return self._create(
            user, rule, title, message, {"pending_count": pending_count}, send_at, now
        )

    def schedule_life_refill(
        self,
        user: User,
        now: datetime | None = None,
        failed_at: datetime | None = None,
        wait_minutes: int | None = None,
    ) -> Reminder | None:
        """
        life_refill: nudge a retry once the refill wait after a failed quiz elapsed.

        failed_at defaults to the latest quiz attempt, which must be a recent
        failure. One pending life_refill at a time; a failure never gets a
        second reminder created at or after it.
        """
        rule = ReminderType.LIFE_REFILL
        now = as_utc(now or utcnow())
        if not user.reminders_enabled:
            return _skip(rule, user, "reminders disabled")

        if failed_at is None:
            attempt = self.quizzes.latest_attempt(user)
            if attempt is None:
                return _skip(rule, user, "no quiz attempts")
            if attempt.passed:
                return _skip(rule, user, "latest quiz passed")
            if now - attempt.completed_at > timedelta(hours=self.settings.LIFE_REFILL_MAX_AGE_HOURS):
                return _skip(rule, user, "no recent quiz failure")
            failed_at = attempt.completed_at
        failed_at = as_utc(failed_at)

        existing = (
            self.db.query(Reminder)
            .filter(
                Reminder.user_id == user.id,
                Reminder.type == rule.value,
            )
            .filter(
                or_(
                    Reminder.status == ReminderStatus.PENDING.value,
                    Reminder.created_at >= failed_at,
                )
            )
            .first()
        )
        if existing is not None:
            return _skip(rule, user, f"refill reminder #{existing.id} already covers this failure")

        if wait_minutes is None:
            wait_minutes = self.settings.LIFE_REFILL_MINUTES
        send_at = failed_at + timedelta(minutes=wait_minutes)

        title, message = reminder_copy.life_refill_copy(self.rng)
        return self._create(
            user, rule, title, message,
            {"refill_minutes": wait_minutes, "failed_at": failed_at.isoformat()},
            send_at, now,
        )

    def notify_behavioral(
        self,
        user: User,
        reminder_type: ReminderType,
        title: str,
        message: str,
        payload: dict | None = None,
        now: datetime | None = None,
        delay_minutes: int = 0,
        channel: str | None = None,
    ) -> Reminder | None:
        """Immediate (or slightly delayed) reminder raised by behaviour analysis, once per day."""
        now = as_utc(now or utcnow())
        if not user.reminders_enabled and not user.email_notifications_enabled:
            return _skip(reminder_type, user, "all notifications disabled")

        send_at = now + timedelta(minutes=delay_minutes)
        if self._already_scheduled(user, reminder_type, send_at):
            return _skip(reminder_type, user, "already notified today")

        return self._create(
            user, reminder_type, title, message, payload or {}, send_at, now, channel=channel
        )

    def notify_streak_milestone(self, user: User, streak: int, now: datetime | None = None) -> Reminder | None:
        return self.notify_behavioral(
            user,
            ReminderType.STREAK_MILESTONE,
            "🎉 Streak Milestone!",
            f"Congratulations on reaching {streak} days! Keep up the amazing work! 🏆",
            {"milestone": streak},
            now=now,
            delay_minutes=15,
            channel=ReminderChannel.IN_APP.value,
        )

    def notify_streak_break(self, user: User, previous_streak: int, now: datetime | None = None) -> Reminder | None:
        if previous_streak < 7:
            return _skip(ReminderType.STREAK_BREAK_ENCOURAGEMENT, user, "streak too short to mention")
        return self.notify_behavioral(
            user,
            ReminderType.STREAK_BREAK_ENCOURAGEMENT,
            "🔥 Previous Achievement!",
            reminder_copy.streak_break_message(previous_streak),
            {"previous_streak": previous_streak},
            now=now,
            delay_minutes=30,
            channel=ReminderChannel.IN_APP.value,
        )

    # -- batch --------------------------------------------------------------

    def schedule_for_user(
        self, user: User, now: datetime | None = None, pending_tasks: int | None = None
    ) -> list[Reminder]:
        """Run the daily rules for one user. Returns the reminders created."""
        now = as_utc(now or utcnow())
        created = [
            self.schedule_daily_nudge(user, now),
            self.schedule_streak_risk(user, now),
        ]
        if pending_tasks is not None:
            created.append(self.schedule_tasks_pending(user, pending_tasks, now))
        return [r for r in created if r is not None]

    def seed_demo_reminders(self, user: User, now: datetime | None = None) -> list[Reminder]:
        """Replace the user's live reminders with one delivered sample per core type."""
        now = as_utc(now or utcnow())
        user.reminders_enabled = True
        user.onboarding_completed = True
        user.reminder_window = user.reminder_window or ReminderWindow.EVENING.value

        self.db.query(Reminder).filter(
            Reminder.user_id == user.id,
            Reminder.status.in_([ReminderStatus.PENDING.value, ReminderStatus.SENT.value]),
        ).delete(synchronize_session=False)
        self.db.commit()

        streak = max(1, user.study_streak or 1)
        return [
            self._create(
                user,
                ReminderType(sample["type"]),
                sample["title"].format(streak=streak),
                sample["message"],
                {},
                now,
                now,
                channel=ReminderChannel.IN_APP.value,
                status=ReminderStatus.SENT.value,
            )
            for sample in reminder_copy.DEMO_SAMPLES
        ]


def eligible_users_query(db: Session):
    return db.query(User).filter(
        User.reminders_enabled == True,  # noqa: E712
        User.onboarding_completed == True,  # noqa: E712
        User.reminder_window.isnot(None),
    )


def schedule_reminders_for_all(
    db: Session, now: datetime | None = None, user_id: int | None = None
) -> int:
    """
    Run the daily rules for every eligible user (or just user_id).

    Per-user failures are logged and skipped. Returns reminders created.
    """
    now = as_utc(now or utcnow())
    query = eligible_users_query(db)
    if user_id is not None:
        query = query.filter(User.id == user_id)
    users = query.all()
    if not users:
        logger.info("Reminder scheduling: no eligible users")
        return 0

    scheduler = ReminderScheduler(db)
    created = 0
    for user in users:
        try:
            created += len(scheduler.schedule_for_user(user, now))
        except Exception:
            db.rollback()
            logger.exception("Reminder scheduling failed for user_id=%s", user.id)

    logger.info("Reminder scheduling: %d reminder(s) for %d user(s)", created, len(users))
    return created
