"""Shared wall-clock helpers used across the booking engine."""

import re
from datetime import date, datetime, time, timezone
from typing import Callable, Union

from booking_engine.exceptions import ValidationError

MINUTES_PER_DAY = 24 * 60

Clock = Callable[[], datetime]

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")


def parse_wall_time(value: Union[str, time]) -> int:
    """Convert a shop-local wall time to minutes since midnight.

    Examples:
        >>> parse_wall_time("09:30")
        570
        >>> parse_wall_time("17:00:00")
        1020
    """
    if isinstance(value, time):
        return value.hour * 60 + value.minute
    match = _TIME_RE.match(value.strip())
    if not match:
        raise ValidationError(f"Invalid time {value!r}, expected HH:MM")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise ValidationError(f"Invalid time {value!r}, expected HH:MM")
    return hours * 60 + minutes


def parse_date(value: Union[str, date]) -> date:
    """Parse a YYYY-MM-DD date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError(f"Invalid date {value!r}, expected YYYY-MM-DD") from None


def format_hhmm(minutes: int) -> str:
    """Format minutes since midnight as 24h ``HH:MM``.

    A value of exactly one day renders as ``24:00`` so a window ending at
    midnight stays readable.
    """
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def format_display_time(minutes: int) -> str:
    """Format minutes since midnight as a 12h display time.

    Examples:
        >>> format_display_time(570)
        '9:30 AM'
        >>> format_display_time(780)
        '1:00 PM'
    """
    hours, mins = divmod(minutes % MINUTES_PER_DAY, 60)
    suffix = "AM" if hours < 12 else "PM"
    return f"{(hours % 12) or 12}:{mins:02d} {suffix}"


def to_time(minutes: int) -> time:
    """Convert minutes since midnight to a ``datetime.time``."""
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise ValidationError(f"{minutes} minutes is outside a single day")
    return time(minutes // 60, minutes % 60)


def utc_now() -> datetime:
    """Default engine clock. Hold expiry is always compared in UTC."""
    return datetime.now(timezone.utc)
