"""
Reminder domain: closed enums, per-type metadata and the status state machine.

Status machine:
    pending ──► sent ──► read
       │          │        │
       └──────────┴────────┴──► dismissed   (terminal)

pending ──► read is allowed (user opens the inbox before the sweep ran).
"""
from dataclasses import dataclass
from enum import Enum


class ReminderType(str, Enum):
    DAILY_NUDGE = "daily_nudge"
    STREAK_RISK = "streak_risk"
    LIFE_REFILL = "life_refill"
    TASKS_PENDING = "tasks_pending"
    STREAK_MILESTONE = "streak_milestone"
    STREAK_BREAK_ENCOURAGEMENT = "streak_break_encouragement"
    INACTIVITY = "inactivity"
    GOAL_HALFWAY = "goal_halfway"
    GOAL_MET = "goal_met"


class ReminderChannel(str, Enum):
    IN_APP = "in_app"
    EMAIL = "email"
    BOTH = "both"

    @property
    def includes_email(self) -> bool:
        return self in (ReminderChannel.EMAIL, ReminderChannel.BOTH)


class ReminderStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    READ = "read"
    DISMISSED = "dismissed"


class ReminderWindow(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    NIGHT = "night"


class ReminderStateError(ValueError):
    pass


@dataclass(frozen=True)
class ReminderTypeMeta:
    icon: str
    route: str


_DEFAULT_META = ReminderTypeMeta(icon="📚", route="/dashboard")

TYPE_META: dict[ReminderType, ReminderTypeMeta] = {
    ReminderType.DAILY_NUDGE: ReminderTypeMeta("📘", "/study-planner"),
    ReminderType.STREAK_RISK: ReminderTypeMeta("🔥", "/study-planner"),
    ReminderType.LIFE_REFILL: ReminderTypeMeta("💖", "/quiz"),
    ReminderType.TASKS_PENDING: ReminderTypeMeta("🔔", "/study-planner"),
    ReminderType.STREAK_MILESTONE: ReminderTypeMeta("🏆", "/dashboard"),
    ReminderType.STREAK_BREAK_ENCOURAGEMENT: ReminderTypeMeta("🌟", "/dashboard"),
}


def type_meta(reminder_type: str) -> ReminderTypeMeta:
    """Icon and destination route for a reminder type (unknown types get the default)."""
    try:
        return TYPE_META.get(ReminderType(reminder_type), _DEFAULT_META)
    except ValueError:
        return _DEFAULT_META


# Window → hour of day (local) at which window-bound reminders fire
WINDOW_HOURS: dict[ReminderWindow, int] = {
    ReminderWindow.MORNING: 9,
    ReminderWindow.AFTERNOON: 14,
    ReminderWindow.EVENING: 19,
    ReminderWindow.NIGHT: 21,
}


def hour_to_window(hour: int) -> ReminderWindow:
    if 6 <= hour < 12:
        return ReminderWindow.MORNING
    if 12 <= hour < 17:
        return ReminderWindow.AFTERNOON
    if 17 <= hour < 21:
        return ReminderWindow.EVENING
    return ReminderWindow.NIGHT


def window_hour(window: str | None) -> int:
    """Send hour for a window; unknown or missing windows fall back to evening."""
    try:
        return WINDOW_HOURS[ReminderWindow(window)]
    except ValueError:
        return WINDOW_HOURS[ReminderWindow.EVENING]


_TRANSITIONS: dict[ReminderStatus, set[ReminderStatus]] = {
    ReminderStatus.PENDING: {ReminderStatus.SENT, ReminderStatus.READ, ReminderStatus.DISMISSED},
    ReminderStatus.SENT: {ReminderStatus.READ, ReminderStatus.DISMISSED},
    ReminderStatus.READ: {ReminderStatus.DISMISSED},
    ReminderStatus.DISMISSED: set(),
}


def can_transition(current: str, target: str) -> bool:
    return ReminderStatus(target) in _TRANSITIONS[ReminderStatus(current)]


def ensure_transition(current: str, target: str) -> None:
    """Raise ReminderStateError if current → target is not a legal move."""
    if not can_transition(current, target):
        raise ReminderStateError(f"Cannot move reminder from {current} to {target}")
