"""Tests for the clock abstraction and business-day resolution."""

from datetime import date, datetime, timezone

import pytest

from lease_kernel.domain.clock import DeterministicClock, SystemClock, resolve_timezone


class TestResolveTimezone:
    @pytest.mark.parametrize("name", [None, "", "UTC", "utc"])
    def test_utc_aliases(self, name):
        assert resolve_timezone(name) is timezone.utc

    def test_named_zone(self):
        tz = resolve_timezone("Asia/Bangkok")
        assert datetime(2025, 1, 1, tzinfo=tz).utcoffset().total_seconds() == 7 * 3600


class TestDeterministicClock:
    def test_now_is_stable(self):
        clock = DeterministicClock(datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc))
        assert clock.now() == clock.now()

    def test_advance_days(self):
        clock = DeterministicClock(datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc))
        clock.advance_days(2)
        assert clock.today() == date(2025, 3, 3)

    def test_set_time_discards_advance(self):
        clock = DeterministicClock()
        clock.advance(3600)
        clock.set_time(datetime(2025, 6, 30, 0, 0, tzinfo=timezone.utc))
        assert clock.now() == datetime(2025, 6, 30, 0, 0, tzinfo=timezone.utc)

    def test_today_follows_business_timezone(self):
        # 20:00 UTC on Jan 31 is already Feb 1 in Bangkok
        clock = DeterministicClock(datetime(2025, 1, 31, 20, 0, tzinfo=timezone.utc))
        assert clock.today() == date(2025, 1, 31)
        assert clock.today(resolve_timezone("Asia/Bangkok")) == date(2025, 2, 1)


def test_system_clock_is_aware():
    assert SystemClock().now().tzinfo is not None
