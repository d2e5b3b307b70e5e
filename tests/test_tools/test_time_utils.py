"""
Tests for Time Utilities
Tests slot time parsing, wraparound arithmetic, weekdays and quiet windows
"""

import pytest
from datetime import datetime, date, time

from errors import ValidationFailure
from models import Weekday
from tools.time_utils import (
    parse_time,
    format_time,
    add_hours_wrapping,
    add_hours_with_rollover,
    weekday_tag,
    combine,
    is_within_quiet_window,
    shift_out_of_quiet_window,
    day_bounds,
)


class TestParseTime:
    """Tests for strict HH:MM parsing"""

    @pytest.mark.parametrize("value,expected", [
        ("00:00", time(0, 0)),
        ("08:05", time(8, 5)),
        ("23:59", time(23, 59)),
    ])
    def test_valid_times(self, value, expected):
        assert parse_time(value) == expected

    @pytest.mark.parametrize("value", ["24:00", "8:00", "08:60", "0800", "", "ab:cd", "08:00:00"])
    def test_invalid_times_raise(self, value):
        with pytest.raises(ValidationFailure):
            parse_time(value)

    def test_non_string_raises(self):
        with pytest.raises(ValidationFailure):
            parse_time(800)

    def test_time_passes_through(self):
        assert parse_time(time(9, 30, 15)) == time(9, 30)

    def test_format_time_pads(self):
        assert format_time(time(7, 5)) == "07:05"


class TestAddHoursWrapping:
    """Tests for time-of-day addition"""

    def test_wraps_past_midnight(self):
        assert add_hours_wrapping("22:00", 8) == "06:00"

    def test_full_day_is_identity(self):
        assert add_hours_wrapping("08:00", 24) == "08:00"

    def test_fractional_hours(self):
        assert add_hours_wrapping("08:00", 1.5) == "09:30"

    def test_negative_hours_wrap_backwards(self):
        assert add_hours_wrapping("01:00", -2) == "23:00"

    def test_malformed_input_raises(self):
        with pytest.raises(ValidationFailure):
            add_hours_wrapping("25:00", 1)

    def test_rollover_counts_days(self):
        assert add_hours_with_rollover("08:00", 16) == ("00:00", 1)
        assert add_hours_with_rollover("08:00", 8) == ("16:00", 0)
        assert add_hours_with_rollover("23:00", 49) == ("00:00", 3)
        assert add_hours_with_rollover("01:00", -2) == ("23:00", -1)


class TestWeekdayTag:
    """Tests for weekday mapping"""

    def test_known_dates(self):
        assert weekday_tag(date(2025, 1, 12)) == Weekday.SUNDAY
        assert weekday_tag(date(2025, 1, 13)) == Weekday.MONDAY
        assert weekday_tag(date(2025, 1, 15)) == Weekday.WEDNESDAY
        assert weekday_tag(date(2025, 1, 18)) == Weekday.SATURDAY

    def test_accepts_datetime(self):
        assert weekday_tag(datetime(2025, 1, 17, 23, 59)) == Weekday.FRIDAY


class TestQuietWindow:
    """Tests for quiet window membership"""

    @pytest.mark.parametrize("hour,minute", [(23, 30), (6, 59), (22, 0), (7, 0), (0, 0)])
    def test_crossing_window_inside(self, hour, minute):
        instant = datetime(2025, 1, 15, hour, minute)
        assert is_within_quiet_window(instant, "22:00", "07:00") is True

    @pytest.mark.parametrize("hour,minute", [(12, 0), (7, 1), (21, 59)])
    def test_crossing_window_outside(self, hour, minute):
        instant = datetime(2025, 1, 15, hour, minute)
        assert is_within_quiet_window(instant, "22:00", "07:00") is False

    def test_same_day_window_inclusive(self):
        assert is_within_quiet_window(datetime(2025, 1, 15, 13, 0), "13:00", "15:00") is True
        assert is_within_quiet_window(datetime(2025, 1, 15, 15, 0), "13:00", "15:00") is True
        assert is_within_quiet_window(datetime(2025, 1, 15, 15, 1), "13:00", "15:00") is False

    def test_missing_bound_means_no_window(self):
        instant = datetime(2025, 1, 15, 23, 0)
        assert is_within_quiet_window(instant, None, "07:00") is False
        assert is_within_quiet_window(instant, "22:00", None) is False
        assert is_within_quiet_window(instant) is False


class TestShiftOutOfQuietWindow:
    """Tests for moving an instant to the end of quiet hours"""

    def test_morning_part_moves_to_same_day_end(self):
        shifted = shift_out_of_quiet_window(datetime(2025, 1, 15, 6, 30), "07:00")
        assert shifted == datetime(2025, 1, 15, 7, 0)

    def test_evening_part_moves_to_next_day_end(self):
        shifted = shift_out_of_quiet_window(datetime(2025, 1, 15, 23, 30), "07:00")
        assert shifted == datetime(2025, 1, 16, 7, 0)

    def test_instant_at_end_moves_a_day(self):
        shifted = shift_out_of_quiet_window(datetime(2025, 1, 15, 7, 0), "07:00")
        assert shifted == datetime(2025, 1, 16, 7, 0)


def test_combine_and_day_bounds():
    assert combine(date(2025, 1, 15), "16:45") == datetime(2025, 1, 15, 16, 45)
    start, end = day_bounds(date(2025, 1, 15))
    assert start == datetime(2025, 1, 15, 0, 0)
    assert end == datetime(2025, 1, 16, 0, 0)
