"""Tests for shared wall-clock helpers."""

from datetime import date, datetime, time

import pytest

from booking_engine.exceptions import ValidationError
from booking_engine.utils import (
    format_display_time,
    format_hhmm,
    parse_date,
    parse_wall_time,
    to_time,
    utc_now,
)


class TestParseWallTime:
    def test_hh_mm(self):
        assert parse_wall_time("09:30") == 570

    def test_single_digit_hour(self):
        assert parse_wall_time("9:05") == 545

    def test_with_seconds(self):
        assert parse_wall_time("17:00:00") == 1020

    def test_time_object(self):
        assert parse_wall_time(time(13, 15)) == 795

    def test_strips_whitespace(self):
        assert parse_wall_time("  08:00 ") == 480

    @pytest.mark.parametrize("bad", ["24:00", "12:60", "noon", "9am", "", "12"])
    def test_rejects_invalid(self, bad):
        with pytest.raises(ValidationError):
            parse_wall_time(bad)


class TestParseDate:
    def test_iso_string(self):
        assert parse_date("2025-03-18") == date(2025, 3, 18)

    def test_date_passthrough(self):
        assert parse_date(date(2025, 3, 18)) == date(2025, 3, 18)

    def test_datetime_truncated(self):
        assert parse_date(datetime(2025, 3, 18, 10, 30)) == date(2025, 3, 18)

    @pytest.mark.parametrize("bad", ["18/03/2025", "2025-02-30", "tomorrow"])
    def test_rejects_invalid(self, bad):
        with pytest.raises(ValidationError):
            parse_date(bad)


class TestFormatting:
    def test_format_hhmm(self):
        assert format_hhmm(545) == "09:05"

    def test_format_hhmm_end_of_day(self):
        assert format_hhmm(1440) == "24:00"

    @pytest.mark.parametrize("minutes, expected", [
        (0, "12:00 AM"),
        (570, "9:30 AM"),
        (720, "12:00 PM"),
        (780, "1:00 PM"),
        (1439, "11:59 PM"),
    ])
    def test_display_time(self, minutes, expected):
        assert format_display_time(minutes) == expected

    def test_to_time(self):
        assert to_time(615) == time(10, 15)

    def test_to_time_rejects_midnight_end(self):
        with pytest.raises(ValidationError):
            to_time(1440)


class TestClock:
    def test_utc_now_is_aware(self):
        assert utc_now().utcoffset().total_seconds() == 0
