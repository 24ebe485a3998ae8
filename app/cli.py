"""
Command-line entry points for the reminder engine.

    study-reminders infer-windows
    study-reminders send [--user ID]
    study-reminders dispatch
    study-reminders life-refill USER_ID [--wait MINUTES]
    study-reminders set-window USER_ID WINDOW
    study-reminders reset-counters
    study-reminders purge-reminders [--days N]
"""
import argparse
import logging
import sys

from sqlalchemy.orm import Session

from app.application.maintenance import purge_old_reminders, reset_daily_email_counters
from app.application.reminder_dispatcher import dispatch_due_reminders
from app.application.reminder_inbox import ReminderInbox
from app.application.reminder_rules import ReminderScheduler, schedule_reminders_for_all
from app.application.window_inference import infer_windows_for_all
from app.domain.reminder import ReminderWindow
from app.infrastructure.db.models import User
from app.infrastructure.db.session import get_session_factory

logger = logging.getLogger(__name__)


def _load_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise SystemExit(f"User #{user_id} not found")
    return user


def cmd_infer_windows(db: Session, args) -> None:
    n = infer_windows_for_all(db)
    print(f"Inferred windows for {n} user(s)")


def cmd_send(db: Session, args) -> None:
    n = schedule_reminders_for_all(db, user_id=args.user)
    print(f"Scheduled {n} reminder(s)")


def cmd_dispatch(db: Session, args) -> None:
    n = dispatch_due_reminders(db)
    print(f"Dispatched {n} reminder(s)")


def cmd_life_refill(db: Session, args) -> None:
    user = _load_user(db, args.user_id)
    reminder = ReminderScheduler(db).schedule_life_refill(user, wait_minutes=args.wait)
    if reminder is None:
        print(f"No life refill reminder for user #{user.id}")
    else:
        print(f"Life refill reminder #{reminder.id} scheduled for {reminder.send_at.isoformat()}")


def cmd_set_window(db: Session, args) -> None:
    user = _load_user(db, args.user_id)
    ReminderInbox(db).set_window(user, args.window)
    print(f"User #{user.id}: reminder window set to {args.window}")


def cmd_reset_counters(db: Session, args) -> None:
    n = reset_daily_email_counters(db)
    print(f"Reset {n} email counter(s)")


def cmd_purge_reminders(db: Session, args) -> None:
    n = purge_old_reminders(db, days=args.days)
    print(f"Purged {n} reminder(s)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="study-reminders", description="Study reminder engine")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("infer-windows", help="infer reminder windows from recent activity")
    p.set_defaults(func=cmd_infer_windows)

    p = sub.add_parser("send", help="run the daily reminder rules")
    p.add_argument("--user", type=int, default=None, help="only this user id")
    p.set_defaults(func=cmd_send)

    p = sub.add_parser("dispatch", help="flush due reminders")
    p.set_defaults(func=cmd_dispatch)

    p = sub.add_parser("life-refill", help="schedule a retry reminder after a failed quiz")
    p.add_argument("user_id", type=int)
    p.add_argument("--wait", type=int, default=None, help="minutes until the reminder")
    p.set_defaults(func=cmd_life_refill)

    p = sub.add_parser("set-window", help="set an explicit reminder window")
    p.add_argument("user_id", type=int)
    p.add_argument("window", choices=[w.value for w in ReminderWindow])
    p.set_defaults(func=cmd_set_window)

    p = sub.add_parser("reset-counters", help="zero daily email counters")
    p.set_defaults(func=cmd_reset_counters)

    p = sub.add_parser("purge-reminders", help="delete old read / dismissed reminders")
    p.add_argument("--days", type=int, default=None)
    p.set_defaults(func=cmd_purge_reminders)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

    SessionLocal = get_session_factory()
    db = SessionLocal()
    try:
        args.func(db, args)
    except SystemExit:
        raise
    except Exception:
        logger.exception("Command %s failed", args.command)
        return 1
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
