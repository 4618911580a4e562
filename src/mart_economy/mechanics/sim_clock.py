"""Simulated clock helpers. Times are whole seconds supplied by the host."""
from __future__ import annotations

SECONDS_PER_MINUTE = 60
SECONDS_PER_HOUR = 3600
SECONDS_PER_DAY = 86400  # 24 * 3600

DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


def hours(n: int | float) -> int:
    """Length of *n* simulated hours in seconds."""
    return int(n * SECONDS_PER_HOUR)


def get_day(total_seconds: int) -> int:
    """Day number (1-based)."""
    return (total_seconds // SECONDS_PER_DAY) + 1


def day_of_week(total_seconds: int) -> int:
    """0=Sunday .. 6=Saturday; simulated time 0 falls on a Sunday."""
    return (total_seconds // SECONDS_PER_DAY) % 7


def time_remaining(now: int, end: int | None) -> int | None:
    """Seconds left until *end*, never negative; None for open-ended windows."""
    if end is None:
        return None
    return max(0, end - now)


def format_remaining(seconds: int | None) -> str:
    """Short label, e.g. '4h 12m left'."""
    if seconds is None:
        return "no end"
    if seconds <= 0:
        return "expired"
    h, rem = divmod(seconds, SECONDS_PER_HOUR)
    m = rem // SECONDS_PER_MINUTE
    if h > 0:
        return f"{h}h {m}m left"
    if m > 0:
        return f"{m}m left"
    return "<1m left"


def format_time(total_seconds: int) -> str:
    """Human-readable time string, e.g. 'Monday, Day 2 (08:30)'."""
    day = get_day(total_seconds)
    seconds_into_day = total_seconds % SECONDS_PER_DAY
    hour = seconds_into_day // SECONDS_PER_HOUR
    minute = (seconds_into_day % SECONDS_PER_HOUR) // SECONDS_PER_MINUTE
    return f"{DAY_NAMES[day_of_week(total_seconds)]}, Day {day} ({hour:02d}:{minute:02d})"
