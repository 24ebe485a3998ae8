"""Tests for logical day resolution (night-owl grace hour)"""
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from app.domain.logical_day import local_at, logical_date, logical_day_bounds, resolve_tz

_tz = timezone.utc
UTC = ZoneInfo("UTC")


class TestLogicalDate:
    def test_before_grace_hour_is_previous_day(self):
        assert logical_date(datetime(2026, 3, 10, 2, 30, tzinfo=_tz), UTC) == date(2026, 3, 9)

    def test_grace_hour_starts_new_day(self):
        assert logical_date(datetime(2026, 3, 10, 3, 0, tzinfo=_tz), UTC) == date(2026, 3, 10)

    def test_late_evening_same_day(self):
        assert logical_date(datetime(2026, 3, 10, 23, 59, tzinfo=_tz), UTC) == date(2026, 3, 10)

    def test_uses_local_time(self):
        # 17:30 UTC is 02:30 next day in Tokyo → still the previous logical day
        ts = datetime(2026, 3, 10, 17, 30, tzinfo=_tz)
        assert logical_date(ts, ZoneInfo("Asia/Tokyo")) == date(2026, 3, 10)

    def test_naive_timestamp_treated_as_utc(self):
        assert logical_date(datetime(2026, 3, 10, 2, 0), UTC) == date(2026, 3, 9)

    def test_custom_grace_hour(self):
        ts = datetime(2026, 3, 10, 4, 0, tzinfo=_tz)
        assert logical_date(ts, UTC, grace_hour=5) == date(2026, 3, 9)


class TestLogicalDayBounds:
    def test_utc_bounds(self):
        start, end = logical_day_bounds(date(2026, 3, 10), UTC)
        assert start == datetime(2026, 3, 10, 3, 0, tzinfo=_tz)
        assert end == datetime(2026, 3, 11, 3, 0, tzinfo=_tz)

    def test_bounds_contain_their_own_timestamps(self):
        tz = ZoneInfo("Europe/Berlin")
        start, end = logical_day_bounds(date(2026, 3, 10), tz)
        assert logical_date(start, tz) == date(2026, 3, 10)
        assert logical_date(end - timedelta(seconds=1), tz) == date(2026, 3, 10)
        assert logical_date(end, tz) == date(2026, 3, 11)

    def test_dst_spring_forward_day_is_shorter(self):
        # New York switches to EDT at 02:00 on 2026-03-08
        start, end = logical_day_bounds(date(2026, 3, 7), ZoneInfo("America/New_York"))
        assert end - start == timedelta(hours=23)


class TestLocalAt:
    def test_converts_local_hour_to_utc(self):
        assert local_at(date(2026, 3, 10), 19, ZoneInfo("Europe/Berlin")) == datetime(2026, 3, 10, 18, 0, tzinfo=_tz)


class TestResolveTz:
    def test_known_zone(self):
        assert resolve_tz("Asia/Tokyo") == ZoneInfo("Asia/Tokyo")

    def test_unknown_zone_uses_fallback(self):
        assert resolve_tz("Not/AZone", "Europe/Berlin") == ZoneInfo("Europe/Berlin")

    def test_missing_zone_defaults_to_utc(self):
        assert resolve_tz(None) == ZoneInfo("UTC")
