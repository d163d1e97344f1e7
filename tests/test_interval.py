"""Tests for half-open shop-local time intervals."""

from datetime import date, time

import pytest

from booking_engine.exceptions import ValidationError
from booking_engine.scheduling.interval import TimeInterval
from tests.conftest import DAY, TZ


def iv(start: str, end: str, day: date = DAY) -> TimeInterval:
    return TimeInterval.from_bounds(day, start, end, TZ)


class TestConstruction:
    def test_from_bounds_parses_wall_times(self):
        interval = iv("09:30", "10:15")
        assert (interval.start, interval.end) == (570, 615)
        assert interval.duration == 45

    def test_from_duration(self):
        interval = TimeInterval.from_duration(DAY, "10:00", 60, TZ)
        assert interval.end_label == "11:00"

    def test_accepts_time_objects_and_minutes(self):
        assert TimeInterval.from_bounds(DAY, time(9, 0), 600, TZ) == iv("09:00", "10:00")

    def test_end_before_start_rejected(self):
        with pytest.raises(ValidationError):
            iv("10:00", "09:00")

    def test_zero_length_rejected(self):
        with pytest.raises(ValidationError):
            iv("10:00", "10:00")

    def test_crossing_midnight_rejected(self):
        with pytest.raises(ValidationError, match="midnight"):
            TimeInterval.from_duration(DAY, "23:30", 60, TZ)

    def test_ending_exactly_at_midnight_allowed(self):
        interval = TimeInterval.from_duration(DAY, "23:00", 60, TZ)
        assert interval.end_label == "24:00"

    def test_zero_duration_rejected(self):
        with pytest.raises(ValidationError):
            TimeInterval.from_duration(DAY, "10:00", 0, TZ)

    def test_bad_wall_time_rejected(self):
        with pytest.raises(ValidationError):
            iv("25:00", "26:00")

    def test_timezone_not_part_of_equality(self):
        assert TimeInterval(DAY, 600, 660, "UTC") == TimeInterval(DAY, 600, 660, TZ)


class TestOverlap:
    def test_partial_overlap(self):
        assert iv("09:00", "10:00").overlaps(iv("09:30", "10:30"))

    def test_touching_edges_do_not_overlap(self):
        assert not iv("09:00", "10:00").overlaps(iv("10:00", "11:00"))
        assert not iv("10:00", "11:00").overlaps(iv("09:00", "10:00"))

    def test_containment_overlaps(self):
        assert iv("09:00", "12:00").overlaps(iv("10:00", "10:30"))

    def test_different_days_never_overlap(self):
        assert not iv("09:00", "10:00").overlaps(iv("09:00", "10:00", date(2025, 3, 19)))

    def test_contains(self):
        assert iv("09:00", "17:00").contains(iv("16:00", "17:00"))
        assert not iv("09:00", "17:00").contains(iv("16:30", "17:30"))


class TestSubtract:
    def test_block_in_the_middle_splits(self):
        pieces = iv("09:00", "17:00").subtract([iv("12:00", "13:00")])
        assert pieces == [iv("09:00", "12:00"), iv("13:00", "17:00")]

    def test_block_covering_everything(self):
        assert iv("09:00", "10:00").subtract([iv("08:00", "11:00")]) == []

    def test_unrelated_block_leaves_interval(self):
        assert iv("09:00", "10:00").subtract([iv("11:00", "12:00")]) == [iv("09:00", "10:00")]

    def test_overlapping_blocks(self):
        pieces = iv("09:00", "17:00").subtract([iv("10:00", "12:00"), iv("11:00", "13:00")])
        assert pieces == [iv("09:00", "10:00"), iv("13:00", "17:00")]


class TestDerived:
    def test_shift_keeps_duration(self):
        moved = iv("10:00", "11:00").shift(30)
        assert moved == iv("10:30", "11:30")

    def test_with_start_and_end(self):
        base = iv("10:00", "11:00")
        assert base.with_start(630) == iv("10:30", "11:00")
        assert base.with_end(690) == iv("10:00", "11:30")

    def test_on_day(self):
        other = date(2025, 3, 20)
        assert iv("10:00", "11:00").on_day(other).day == other

    def test_absolute_instants_use_shop_timezone(self):
        interval = iv("10:00", "11:00")
        # Melbourne is UTC+11 during daylight saving in March.
        assert interval.starts_at.utcoffset().total_seconds() == 11 * 3600
        assert interval.ends_at.hour == 11

    def test_str(self):
        assert str(iv("09:30", "10:15")) == "2025-03-18 09:30-10:15"

    def test_display_labels(self):
        interval = iv("13:00", "14:30")
        assert interval.display_start == "1:00 PM"
        assert interval.display_end == "2:30 PM"
