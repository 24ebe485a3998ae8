"""
Reminder inbox API endpoints.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, get_db
from app.application.reminder_inbox import ReminderAccessDenied, ReminderInbox, ReminderNotFoundError
from app.application.reminder_rules import ReminderScheduler
from app.config import get_settings
from app.domain.reminder import ReminderStateError, ReminderWindow, type_meta
from app.infrastructure.db.models import Reminder, User
from app.utils.clock import as_utc

router = APIRouter(prefix="/api/reminders", tags=["reminders"])


class ToggleRequest(BaseModel):
    enabled: bool


class WindowRequest(BaseModel):
    window: ReminderWindow


def _iso(value):
    value = as_utc(value)
    return value.isoformat() if value else None


def _serialize(reminder: Reminder) -> dict:
    meta = type_meta(reminder.type)
    return {
        "id": reminder.id,
        "type": reminder.type,
        "channel": reminder.channel,
        "title": reminder.title,
        "message": reminder.message,
        "payload": reminder.payload or {},
        "status": reminder.status,
        "icon": meta.icon,
        "action_url": meta.route,
        "send_at": _iso(reminder.send_at),
        "sent_at": _iso(reminder.sent_at),
        "read_at": _iso(reminder.read_at),
    }


def _run_action(action, *args):
    try:
        return action(*args)
    except ReminderNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ReminderAccessDenied as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except ReminderStateError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.get("")
def index(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    inbox = ReminderInbox(db)
    return {
        "reminders": [_serialize(r) for r in inbox.list_recent(user)],
        "unread_count": inbox.unread_count(user),
    }


@router.post("/{reminder_id}/read")
def read(reminder_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    reminder = _run_action(ReminderInbox(db).mark_read, user, reminder_id)
    return {"status": "ok", "reminder": _serialize(reminder)}


@router.post("/{reminder_id}/dismiss")
def dismiss(reminder_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    reminder = _run_action(ReminderInbox(db).dismiss, user, reminder_id)
    return {"status": "ok", "reminder": _serialize(reminder)}


@router.post("/dismiss-all")
def dismiss_all(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    dismissed = ReminderInbox(db).dismiss_all(user)
    return {"status": "ok", "dismissed": dismissed}


@router.post("/toggle")
def toggle(body: ToggleRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    ReminderInbox(db).set_enabled(user, body.enabled)
    return {"status": "ok", "enabled": body.enabled}


@router.post("/window")
def set_window(body: WindowRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    ReminderInbox(db).set_window(user, body.window.value)
    return {"status": "ok", "window": body.window.value}


@router.post("/demo")
def demo(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Seed sample reminders (debug mode only)."""
    if not get_settings().DEBUG:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Demo reminders are only available in debug mode.",
        )
    created = ReminderScheduler(db).seed_demo_reminders(user)
    return {"status": "ok", "created": len(created)}
