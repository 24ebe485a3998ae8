"""
Reminder email delivery: renders a reminder with Jinja2 and sends it over SMTP.

Email is best-effort: the in-app status change is the authoritative delivery.
SmtpMailer.send() returns False when SMTP is not configured and raises
EmailDeliveryError when the provider rejects the message.
"""
import logging
import smtplib
from dataclasses import dataclass
from datetime import datetime
from email.message import EmailMessage
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.domain.reminder import type_meta
from app.infrastructure.db.models import Reminder, User, UserEmailCounter
from app.utils.clock import as_utc, utcnow

logger = logging.getLogger(__name__)

templates_dir = Path(__file__).parent.parent.parent / "templates"
_env = Environment(
    loader=FileSystemLoader(str(templates_dir)),
    autoescape=select_autoescape(["html"]),
)


class EmailDeliveryError(RuntimeError):
    pass


@dataclass(frozen=True)
class ReminderEmail:
    recipient: str
    user_name: str
    title: str
    message: str
    icon: str
    action_url: str
    streak: int


def build_reminder_email(reminder: Reminder, user: User, app_url: str | None = None) -> ReminderEmail:
    meta = type_meta(reminder.type)
    base_url = (app_url or get_settings().APP_URL).rstrip("/")
    return ReminderEmail(
        recipient=user.email,
        user_name=user.name or "",
        title=reminder.title,
        message=reminder.message,
        icon=meta.icon,
        action_url=f"{base_url}{meta.route}",
        streak=int((reminder.payload or {}).get("streak", 0)),
    )


def render_reminder_email(email: ReminderEmail) -> tuple[str, str]:
    """Return (plain text, html) bodies."""
    ctx = {"email": email}
    text = _env.get_template("emails/study_reminder.txt").render(**ctx)
    html = _env.get_template("emails/study_reminder.html").render(**ctx)
    return text, html


class SmtpMailer:
    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    @property
    def configured(self) -> bool:
        return bool(self.settings.EMAIL_SMTP_HOST)

    def send(self, email: ReminderEmail) -> bool:
        if not self.configured:
            logger.info("SMTP not configured, skipping email to %s: %s", email.recipient, email.title)
            return False

        text, html = render_reminder_email(email)
        msg = EmailMessage()
        msg["Subject"] = email.title
        msg["From"] = self.settings.EMAIL_FROM
        msg["To"] = email.recipient
        msg.set_content(text)
        msg.add_alternative(html, subtype="html")

        try:
            with smtplib.SMTP(self.settings.EMAIL_SMTP_HOST, self.settings.EMAIL_SMTP_PORT, timeout=10) as smtp:
                smtp.starttls()
                if self.settings.EMAIL_SMTP_USER:
                    smtp.login(self.settings.EMAIL_SMTP_USER, self.settings.EMAIL_SMTP_PASSWORD)
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            raise EmailDeliveryError(f"SMTP send to {email.recipient} failed: {exc}") from exc
        return True


def get_email_counter(db: Session, user_id: int) -> UserEmailCounter:
    """
    Load the user's email counter, creating it on first use.

    A new row is committed right away: queued email jobs run in their own
    session and must see it instead of inserting a second one.
    """
    counter = db.query(UserEmailCounter).filter_by(user_id=user_id).first()
    if counter is not None:
        return counter

    db.add(UserEmailCounter(user_id=user_id, sent_today=0))
    try:
        db.commit()
    except IntegrityError:
        # Another session created it first
        db.rollback()
    return db.query(UserEmailCounter).filter_by(user_id=user_id).one()


def email_limit_reached(counter: UserEmailCounter, limit: int | None = None) -> bool:
    if limit is None:
        limit = get_settings().EMAIL_DAILY_LIMIT
    return (counter.sent_today or 0) >= limit


def deliver_reminder_email(
    db: Session,
    reminder: Reminder,
    user: User,
    counter: UserEmailCounter,
    mailer: SmtpMailer | None = None,
    now: datetime | None = None,
) -> bool:
    """
    Send one reminder email and record it on the reminder and the counter.

    Returns True when the email went out. EmailDeliveryError propagates.
    """
    now = as_utc(now or utcnow())
    mailer = mailer or SmtpMailer()
    if not mailer.send(build_reminder_email(reminder, user)):
        return False

    reminder.email_sent = True
    reminder.email_sent_at = now
    counter.sent_today = (counter.sent_today or 0) + 1
    counter.last_sent_at = now
    db.commit()
    return True
