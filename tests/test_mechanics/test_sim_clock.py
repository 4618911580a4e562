"""Tests for src/mart_economy/mechanics/sim_clock.py."""
from __future__ import annotations

import pytest

from mart_economy.mechanics.sim_clock import (
    SECONDS_PER_DAY,
    day_of_week,
    format_remaining,
    format_time,
    get_day,
    hours,
    time_remaining,
)


class TestDays:
    def test_first_day(self):
        assert get_day(0) == 1
        assert get_day(SECONDS_PER_DAY - 1) == 1

    def test_second_day(self):
        assert get_day(SECONDS_PER_DAY) == 2

    @pytest.mark.parametrize("day, expected", [(0, 0), (1, 1), (6, 6), (7, 0), (8, 1)])
    def test_day_of_week(self, day, expected):
        assert day_of_week(day * SECONDS_PER_DAY + 100) == expected


class TestRemaining:
    def test_open_window(self):
        assert time_remaining(100, None) is None
        assert format_remaining(None) == "no end"

    def test_never_negative(self):
        assert time_remaining(500, 100) == 0
        assert format_remaining(0) == "expired"

    def test_hours_and_minutes(self):
        assert format_remaining(hours(4) + 12 * 60) == "4h 12m left"

    def test_minutes_only(self):
        assert format_remaining(300) == "5m left"


class TestFormatTime:
    def test_start_of_time(self):
        assert format_time(0) == "Sunday, Day 1 (00:00)"

    def test_morning_of_day_two(self):
        assert format_time(SECONDS_PER_DAY + hours(8) + 30 * 60) == "Monday, Day 2 (08:30)"
