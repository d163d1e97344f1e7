"""Booking, hold and slot data models."""

from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from booking_engine.scheduling.interval import TimeInterval
from booking_engine.utils import MINUTES_PER_DAY, format_hhmm, parse_wall_time


class BookingStatus(str, Enum):
    """Lifecycle status of a booking."""
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


# Statuses that still occupy the calendar.
OCCUPYING_STATUSES: frozenset[BookingStatus] = frozenset(
    {BookingStatus.CONFIRMED, BookingStatus.COMPLETED}
)


class Booking(BaseModel):
    """A confirmed appointment. Mutated only through the state machine and validated edits."""
    id: str
    booking_number: str
    team_member_id: str
    shop_id: str
    service_id: str
    variant_id: Optional[str] = None
    day: date
    start_time: time
    duration: int = Field(gt=0)
    price: Decimal = Decimal("0")
    status: BookingStatus = BookingStatus.CONFIRMED
    client_id: Optional[str] = None
    client_note: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    no_show_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _fits_in_day(self) -> "Booking":
        if parse_wall_time(self.start_time) + self.duration > MINUTES_PER_DAY:
            raise ValueError("bookings cannot run past midnight")
        return self

    @property
    def occupies_calendar(self) -> bool:
        return self.status in OCCUPYING_STATUSES

    @property
    def end_label(self) -> str:
        return format_hhmm(parse_wall_time(self.start_time) + self.duration)

    def interval(self, tz: Optional[str] = None) -> TimeInterval:
        return TimeInterval.from_duration(self.day, self.start_time, self.duration, tz)


class Hold(BaseModel):
    """A short-lived exclusive claim on a slot, owned by one checkout session."""
    id: str
    session_id: str
    team_member_id: str
    shop_id: str
    service_id: str
    variant_id: Optional[str] = None
    day: date
    start_time: time
    duration: int = Field(gt=0)
    created_at: datetime
    expires_at: datetime

    @model_validator(mode="after")
    def _expires_after_creation(self) -> "Hold":
        if self.expires_at <= self.created_at:
            raise ValueError("expires_at must be after created_at")
        return self

    def is_live(self, now: datetime) -> bool:
        return self.expires_at > now

    @property
    def end_label(self) -> str:
        return format_hhmm(parse_wall_time(self.start_time) + self.duration)

    def interval(self, tz: Optional[str] = None) -> TimeInterval:
        return TimeInterval.from_duration(self.day, self.start_time, self.duration, tz)


class AvailabilitySlot(BaseModel):
    """Single candidate start time produced by the availability calculator."""
    slot_id: str
    team_member_id: str
    shop_id: str
    day: date
    start: int
    end: int
    is_available: bool = True

    @property
    def time(self) -> str:
        return format_hhmm(self.start)

    @property
    def end_time(self) -> str:
        return format_hhmm(self.end)
