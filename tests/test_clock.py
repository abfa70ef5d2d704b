"""Tests for time sources."""

from datetime import datetime, timedelta, timezone

from efb.clock import ManualClock, SystemClock


def test_system_clock_is_utc():
    now = SystemClock().now()
    assert now.tzinfo == timezone.utc


def test_manual_clock_naive_start_is_utc():
    clock = ManualClock(datetime(2025, 6, 15, 12))
    assert clock.now() == datetime(2025, 6, 15, 12, tzinfo=timezone.utc)


def test_manual_clock_advance_and_set():
    start = datetime(2025, 6, 15, 12, tzinfo=timezone.utc)
    clock = ManualClock(start)

    assert clock.advance(minutes=30) == start + timedelta(minutes=30)
    assert clock.advance(timedelta(hours=1)) == start + timedelta(minutes=90)

    clock.set(datetime(2025, 1, 1))
    assert clock.now() == datetime(2025, 1, 1, tzinfo=timezone.utc)
