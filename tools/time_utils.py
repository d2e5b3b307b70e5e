"""
Time Utilities
Calendar arithmetic for slot times, weekdays and quiet-hour windows
"""

import re
from typing import Optional, Tuple
from datetime import datetime, date, time, timedelta
from zoneinfo import ZoneInfo

from config import settings
from models import Weekday
from errors import ValidationFailure


MINUTES_PER_DAY = 24 * 60

_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

# Indexed by date.weekday(): 0=Monday
_WEEKDAYS = [
    Weekday.MONDAY,
    Weekday.TUESDAY,
    Weekday.WEDNESDAY,
    Weekday.THURSDAY,
    Weekday.FRIDAY,
    Weekday.SATURDAY,
    Weekday.SUNDAY,
]


def parse_time(value) -> time:
    """Parse a strict 'HH:MM' string (or pass a time through)"""
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    if not isinstance(value, str):
        raise ValidationFailure(f"Time must be an 'HH:MM' string, got {type(value).__name__}")

    match = _TIME_PATTERN.match(value)
    if not match:
        raise ValidationFailure(f"Invalid time '{value}', expected HH:MM (00:00-23:59)")

    return time(int(match.group(1)), int(match.group(2)))


def format_time(value: time) -> str:
    return value.strftime("%H:%M")


def _minutes_of_day(value: time) -> int:
    return value.hour * 60 + value.minute


def add_hours_with_rollover(time_str: str, hours: float) -> Tuple[str, int]:
    """
    Add hours to a time of day.

    Returns:
        The wrapped 'HH:MM' result and the number of whole days crossed
        (negative when going backwards past midnight).
    """
    start = parse_time(time_str)
    total = _minutes_of_day(start) + round(hours * 60)
    days, minutes = divmod(total, MINUTES_PER_DAY)
    return f"{minutes // 60:02d}:{minutes % 60:02d}", days


def add_hours_wrapping(time_str: str, hours: float) -> str:
    """Add hours to a time of day, wrapping at 24:00. Day rollover is dropped."""
    wrapped, _ = add_hours_with_rollover(time_str, hours)
    return wrapped


def weekday_tag(day) -> Weekday:
    """Map a date (or datetime) to its weekday tag"""
    if isinstance(day, datetime):
        day = day.date()
    return _WEEKDAYS[day.weekday()]


def combine(day: date, time_str: str) -> datetime:
    """Compose a calendar day and an 'HH:MM' slot time into a naive instant"""
    return datetime.combine(day, parse_time(time_str))


def is_within_quiet_window(
    instant: datetime,
    start: Optional[str] = None,
    end: Optional[str] = None
) -> bool:
    """
    Check whether the time of day of an instant falls inside a quiet window.

    Both bounds are inclusive. A window whose start is not before its end
    crosses midnight. Missing bounds mean no quiet hours.
    """
    if not start or not end:
        return False

    current = instant.hour * 60 + instant.minute
    start_minutes = _minutes_of_day(parse_time(start))
    end_minutes = _minutes_of_day(parse_time(end))

    if start_minutes < end_minutes:
        return start_minutes <= current <= end_minutes

    # Crosses midnight
    return current >= start_minutes or current <= end_minutes


def shift_out_of_quiet_window(instant: datetime, end: str) -> datetime:
    """
    Move an instant to the end of the quiet window.

    Lands on the same calendar day at `end`. When that is not later than the
    instant (evening part of a window crossing midnight, or a degenerate
    window), lands on the next day at `end` instead.
    """
    end_time = parse_time(end)
    shifted = datetime.combine(instant.date(), end_time, tzinfo=instant.tzinfo)

    if shifted <= instant:
        shifted += timedelta(days=1)

    return shifted


def local_now() -> datetime:
    """Current naive wall-clock time in the configured timezone"""
    return datetime.now(ZoneInfo(settings.TIMEZONE)).replace(tzinfo=None)


def day_bounds(day: date) -> Tuple[datetime, datetime]:
    """Start (inclusive) and end (exclusive) instants of a calendar day"""
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)
