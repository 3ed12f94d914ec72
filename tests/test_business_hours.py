"""Unit tests for the business-hours gate, driven by a fake clock."""

from __future__ import annotations

from datetime import datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from shelfindex.core.services.business_hours import BusinessHoursGate, parse_clock

AMS = ZoneInfo("Europe/Amsterdam")


class FakeClock:
    """Clock whose `sleep` advances `now` instead of blocking."""

    def __init__(self, now: datetime) -> None:
        self.now = now
        self.sleeps: list[float] = []

    def __call__(self) -> datetime:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += timedelta(seconds=seconds)


def _at(hour: int, minute: int = 0) -> datetime:
    return datetime(2026, 1, 15, hour, minute, tzinfo=AMS)


def test_parse_clock() -> None:
    assert parse_clock("08:30") == time(8, 30)
    assert parse_clock(" 21 ") == time(21, 0)
    with pytest.raises(ValueError):
        parse_clock("8:30:00")
    with pytest.raises(ValueError):
        parse_clock("25:00")


@pytest.mark.parametrize(
    "moment, expected",
    [
        (_at(7, 59), False),
        (_at(8, 0), True),
        (_at(12, 0), True),
        (_at(20, 59), True),
        (_at(21, 0), False),
        (_at(23, 30), False),
    ],
)
def test_default_window(moment: datetime, expected: bool) -> None:
    gate = BusinessHoursGate(tz="Europe/Amsterdam", start="08:00", end="21:00")
    assert gate.is_open(moment) is expected


def test_other_timezones_are_converted() -> None:
    gate = BusinessHoursGate(tz="Europe/Amsterdam")
    # 07:30 UTC in January is 08:30 in Amsterdam
    assert gate.is_open(datetime(2026, 1, 15, 7, 30, tzinfo=timezone.utc))
    assert not gate.is_open(datetime(2026, 1, 15, 6, 30, tzinfo=timezone.utc))


def test_window_wrapping_midnight() -> None:
    gate = BusinessHoursGate(start="22:00", end="06:00")
    assert gate.is_open(_at(23, 0))
    assert gate.is_open(_at(5, 59))
    assert not gate.is_open(_at(12, 0))


def test_equal_bounds_mean_always_open() -> None:
    gate = BusinessHoursGate(start="09:00", end="09:00")
    assert gate.is_open(_at(3, 0))


def test_disabled_gate_is_always_open() -> None:
    assert BusinessHoursGate(enabled=False).is_open(_at(3, 0))


def test_wait_returns_immediately_inside_window() -> None:
    clock = FakeClock(_at(10, 0))
    gate = BusinessHoursGate(clock=clock, sleep=clock.sleep)

    assert gate.wait_if_needed("before-convert") == 0
    assert clock.sleeps == []


def test_wait_polls_until_window_opens() -> None:
    clock = FakeClock(_at(7, 0))
    gate = BusinessHoursGate(poll_seconds=600, clock=clock, sleep=clock.sleep)

    polls = gate.wait_if_needed("run-start")

    assert polls == 6
    assert clock.sleeps == [600] * 6
    assert clock.now == _at(8, 0)
