"""
Logical day resolution.

A user's "day" does not end at midnight: activity before the night-owl grace
hour (03:00 local by default) still belongs to the previous calendar day.

    00:00 ─── 03:00 ──────────────────────── 24:00 ─── 03:00
      │ day-1   │            day                         │ day+1

Every eligibility rule and every "studied today" check resolves dates through
logical_date() / logical_day_bounds() so the boundary is defined once.
"""
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

DEFAULT_GRACE_HOUR = 3


def resolve_tz(name: str | None, fallback: str = "UTC") -> ZoneInfo:
    """Return ZoneInfo for name, falling back to fallback (then UTC) if unknown."""
    for candidate in (name, fallback, "UTC"):
        if not candidate:
            continue
        try:
            return ZoneInfo(candidate)
        except (ZoneInfoNotFoundError, ValueError):
            continue
    return ZoneInfo("UTC")


def logical_date(ts: datetime, tz: ZoneInfo, grace_hour: int = DEFAULT_GRACE_HOUR) -> date:
    """Logical calendar date of ts in tz (pre-grace-hour counts as the previous day)."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    local = ts.astimezone(tz)
    if local.hour < grace_hour:
        return local.date() - timedelta(days=1)
    return local.date()


def logical_day_bounds(
    day: date, tz: ZoneInfo, grace_hour: int = DEFAULT_GRACE_HOUR
) -> tuple[datetime, datetime]:
    """
    UTC half-open interval [start, end) covered by logical day `day`.

    Computed from local wall times so DST transitions give 23h / 25h days.
    """
    start_local = datetime.combine(day, time(grace_hour), tzinfo=tz)
    end_local = datetime.combine(day + timedelta(days=1), time(grace_hour), tzinfo=tz)
    return start_local.astimezone(timezone.utc), end_local.astimezone(timezone.utc)


def local_at(day: date, hour: int, tz: ZoneInfo) -> datetime:
    """Aware UTC datetime for `hour:00` local time on calendar date `day`."""
    return datetime.combine(day, time(hour), tzinfo=tz).astimezone(timezone.utc)
