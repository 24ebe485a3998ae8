"""
In-app reminder inbox: list / unread count and the user-facing lifecycle actions.

Every mutating action loads the reminder through _get_owned(), which raises
ReminderNotFoundError or ReminderAccessDenied; there is no silent no-op on a
foreign reminder.
"""
from datetime import datetime

from sqlalchemy.orm import Session

from app.domain.reminder import (
    ReminderStatus,
    ReminderWindow,
    ensure_transition,
)
from app.infrastructure.db.models import Reminder, User
from app.utils.clock import as_utc, utcnow


class ReminderNotFoundError(LookupError):
    pass


class ReminderAccessDenied(PermissionError):
    pass


class ReminderInbox:
    def __init__(self, db: Session):
        self.db = db

    def _get_owned(self, user: User, reminder_id: int) -> Reminder:
        reminder = self.db.get(Reminder, reminder_id)
        if reminder is None:
            raise ReminderNotFoundError(f"Reminder #{reminder_id} not found")
        if reminder.user_id != user.id:
            raise ReminderAccessDenied(f"Reminder #{reminder_id} does not belong to user #{user.id}")
        return reminder

    def list_recent(self, user: User, limit: int = 10) -> list[Reminder]:
        """Delivered reminders (sent / read), newest first."""
        return (
            self.db.query(Reminder)
            .filter(
                Reminder.user_id == user.id,
                Reminder.status.in_([ReminderStatus.SENT.value, ReminderStatus.READ.value]),
            )
            .order_by(Reminder.send_at.desc(), Reminder.id.desc())
            .limit(limit)
            .all()
        )

    def unread_count(self, user: User) -> int:
        return (
            self.db.query(Reminder)
            .filter(
                Reminder.user_id == user.id,
                Reminder.status == ReminderStatus.SENT.value,
                Reminder.read_at.is_(None),
            )
            .count()
        )

    def mark_read(self, user: User, reminder_id: int, now: datetime | None = None) -> Reminder:
        """pending/sent → read. Already read: unchanged. Dismissed: ReminderStateError."""
        reminder = self._get_owned(user, reminder_id)
        if reminder.status == ReminderStatus.READ.value:
            return reminder
        ensure_transition(reminder.status, ReminderStatus.READ.value)

        now = as_utc(now or utcnow())
        reminder.status = ReminderStatus.READ.value
        reminder.read_at = now
        reminder.updated_at = now
        self.db.commit()
        return reminder

    def dismiss(self, user: User, reminder_id: int, now: datetime | None = None) -> Reminder:
        """Any non-dismissed state → dismissed. Dismissing twice is a no-op."""
        reminder = self._get_owned(user, reminder_id)
        if reminder.status == ReminderStatus.DISMISSED.value:
            return reminder

        reminder.status = ReminderStatus.DISMISSED.value
        reminder.updated_at = as_utc(now or utcnow())
        self.db.commit()
        return reminder

    def dismiss_all(self, user: User, now: datetime | None = None) -> int:
        """Dismiss every pending / sent / read reminder of the user. Returns rows changed."""
        count = (
            self.db.query(Reminder)
            .filter(
                Reminder.user_id == user.id,
                Reminder.status.in_([
                    ReminderStatus.PENDING.value,
                    ReminderStatus.SENT.value,
                    ReminderStatus.READ.value,
                ]),
            )
            .update(
                {
                    Reminder.status: ReminderStatus.DISMISSED.value,
                    Reminder.updated_at: as_utc(now or utcnow()),
                },
                synchronize_session="fetch",
            )
        )
        self.db.commit()
        return count

    def set_enabled(self, user: User, enabled: bool) -> User:
        user.reminders_enabled = enabled
        self.db.commit()
        return user

    def set_window(self, user: User, window: str) -> User:
        """Store an explicit window (inference will no longer touch it)."""
        user.reminder_window = ReminderWindow(window).value
        user.reminder_window_inferred = False
        self.db.commit()
        return user
