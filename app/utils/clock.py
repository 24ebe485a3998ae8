"""
UTC clock helpers shared by the reminder engine.

Usage:
    from app.utils.clock import utcnow, as_utc

    utcnow()                 -> aware datetime in UTC
    as_utc(naive_from_db)    -> same wall time, tagged UTC
    as_utc(aware_local)      -> converted to UTC

All timestamps are persisted in UTC. SQLite (tests) drops tzinfo on the way
back, so every value read from the database goes through as_utc().
"""
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Normalize a datetime to aware UTC (naive values are assumed UTC)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
