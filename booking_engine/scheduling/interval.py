"""
Half-open shop-local time intervals.

Every time computation in the engine goes through ``TimeInterval``: a
``[start, end)`` range on one calendar day, measured in minutes since the
shop's local midnight and tagged with the shop's IANA timezone. Wall-clock
minutes keep the slot grid stable across DST changes; conversion to
absolute instants happens only when a caller asks for it.

Usage:
    slot = TimeInterval.from_duration(date(2025, 3, 18), "09:00", 60)
    other = TimeInterval.from_duration(date(2025, 3, 18), "09:30", 30)
    assert slot.overlaps(other)
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Iterable, Optional, Union
from zoneinfo import ZoneInfo

from booking_engine.config import settings
from booking_engine.exceptions import ValidationError
from booking_engine.utils import (
    MINUTES_PER_DAY,
    format_display_time,
    format_hhmm,
    parse_wall_time,
)

WallTime = Union[str, time, int]


def _to_minutes(value: WallTime) -> int:
    if isinstance(value, int):
        return value
    return parse_wall_time(value)


@dataclass(frozen=True, order=True)
class TimeInterval:
    """A ``[start, end)`` range of shop-local minutes on a single day."""

    day: date
    start: int
    end: int
    tz: str = field(default=settings.scheduling.shop_timezone, compare=False)

    def __post_init__(self) -> None:
        if not 0 <= self.start < MINUTES_PER_DAY:
            raise ValidationError(f"Interval start {self.start} is outside the day")
        if self.end <= self.start:
            raise ValidationError(
                f"Interval end {format_hhmm(self.end)} must be after start {format_hhmm(self.start)}"
            )
        if self.end > MINUTES_PER_DAY:
            raise ValidationError("Intervals crossing midnight are not supported")

    @classmethod
    def from_bounds(
        cls, day: date, start: WallTime, end: WallTime, tz: Optional[str] = None
    ) -> "TimeInterval":
        return cls(day, _to_minutes(start), _to_minutes(end), tz or settings.scheduling.shop_timezone)

    @classmethod
    def from_duration(
        cls, day: date, start: WallTime, duration: int, tz: Optional[str] = None
    ) -> "TimeInterval":
        """Build an interval whose end is ``start + duration`` minutes."""
        if duration < 1:
            raise ValidationError(f"Duration must be at least one minute, got {duration}")
        begin = _to_minutes(start)
        return cls(day, begin, begin + duration, tz or settings.scheduling.shop_timezone)

    @property
    def duration(self) -> int:
        return self.end - self.start

    def overlaps(self, other: "TimeInterval") -> bool:
        """True when the two ranges share at least one minute.

        Touching edges (``a.end == b.start``) do not overlap.
        """
        return self.day == other.day and self.start < other.end and other.start < self.end

    def contains(self, other: "TimeInterval") -> bool:
        return self.day == other.day and self.start <= other.start and other.end <= self.end

    def subtract(self, others: Iterable["TimeInterval"]) -> list["TimeInterval"]:
        """Remove every interval in ``others`` from this one.

        The result may be empty or split into several ordered pieces.
        """
        pieces = [self]
        for cut in sorted(o for o in others if o.day == self.day):
            remaining = []
            for piece in pieces:
                if not piece.overlaps(cut):
                    remaining.append(piece)
                    continue
                if piece.start < cut.start:
                    remaining.append(TimeInterval(self.day, piece.start, cut.start, self.tz))
                if cut.end < piece.end:
                    remaining.append(TimeInterval(self.day, cut.end, piece.end, self.tz))
            pieces = remaining
        return pieces

    def shift(self, minutes: int) -> "TimeInterval":
        return TimeInterval(self.day, self.start + minutes, self.end + minutes, self.tz)

    def with_start(self, start: int) -> "TimeInterval":
        return TimeInterval(self.day, start, self.end, self.tz)

    def with_end(self, end: int) -> "TimeInterval":
        return TimeInterval(self.day, self.start, end, self.tz)

    def on_day(self, day: date) -> "TimeInterval":
        return TimeInterval(day, self.start, self.end, self.tz)

    # ------------------------------------------------------------------ #
    # Shop-local anchoring
    # ------------------------------------------------------------------ #

    def _instant(self, minutes: int) -> datetime:
        base = datetime.combine(self.day, time(0, 0), tzinfo=ZoneInfo(self.tz))
        hours, mins = divmod(minutes, 60)
        if hours == 24:
            return datetime.combine(
                date.fromordinal(self.day.toordinal() + 1), time(0, 0), tzinfo=ZoneInfo(self.tz)
            )
        return base.replace(hour=hours, minute=mins)

    @property
    def starts_at(self) -> datetime:
        """Timezone-aware start instant in the shop's zone."""
        return self._instant(self.start)

    @property
    def ends_at(self) -> datetime:
        return self._instant(self.end)

    @property
    def start_label(self) -> str:
        return format_hhmm(self.start)

    @property
    def end_label(self) -> str:
        return format_hhmm(self.end)

    @property
    def display_start(self) -> str:
        return format_display_time(self.start)

    @property
    def display_end(self) -> str:
        return format_display_time(self.end)

    def __str__(self) -> str:
        return f"{self.day.isoformat()} {self.start_label}-{self.end_label}"
