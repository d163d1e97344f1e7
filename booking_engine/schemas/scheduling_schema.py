"""Shop, staff, catalog and availability data models."""

from datetime import date, time
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from booking_engine.config import settings


class Shop(BaseModel):
    """A bookable location. All of its times are wall times in ``timezone``."""
    id: str
    name: str
    timezone: str = settings.scheduling.shop_timezone
    booking_url: Optional[str] = None


class TeamMember(BaseModel):
    """A bookable staff member and the shops they are actively assigned to."""
    id: str
    name: str
    role: str = "staff"
    shop_ids: list[str] = Field(default_factory=list)
    is_active: bool = True

    def works_at(self, shop_id: str) -> bool:
        return self.is_active and shop_id in self.shop_ids


class Service(BaseModel):
    id: str
    name: str
    base_duration: int = Field(default=settings.scheduling.default_service_duration, gt=0)
    base_price: Decimal = Decimal("0")


class ServiceVariant(BaseModel):
    """A priced option on a service, e.g. long hair."""
    id: str
    service_id: str
    name: str
    duration_modifier: int = 0
    price_modifier: Decimal = Decimal("0")


class TeamMemberService(BaseModel):
    """Per-member overrides for a service. ``None`` falls back to the base value."""
    team_member_id: str
    service_id: str
    duration: Optional[int] = Field(default=None, gt=0)
    price: Optional[Decimal] = None
    is_available: bool = True


class AvailabilityWindow(BaseModel):
    """
    When a team member can be booked at a shop.

    Recurring windows repeat on ``weekday`` (0 = Monday); single-date
    windows apply only on ``on_date``.
    """
    id: str
    team_member_id: str
    shop_id: str
    start_time: time
    end_time: time
    recurring: bool = True
    weekday: Optional[int] = Field(default=None, ge=0, le=6)
    on_date: Optional[date] = None

    @model_validator(mode="after")
    def _check_shape(self) -> "AvailabilityWindow":
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time (overnight windows are unsupported)")
        if self.recurring and self.weekday is None:
            raise ValueError("recurring windows need a weekday")
        if not self.recurring and self.on_date is None:
            raise ValueError("single-date windows need on_date")
        return self

    def applies_to(self, day: date) -> bool:
        if self.recurring:
            return day.weekday() == self.weekday
        return day == self.on_date


class BlockedTime(BaseModel):
    """Time subtracted from availability (time off, admin block).

    A block without ``shop_id`` applies at every shop.
    """
    id: str
    team_member_id: str
    day: date
    start_time: time
    end_time: time
    shop_id: Optional[str] = None
    reason: str = ""

    @model_validator(mode="after")
    def _check_order(self) -> "BlockedTime":
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self

    def applies_to(self, day: date, shop_id: str) -> bool:
        return self.day == day and (self.shop_id is None or self.shop_id == shop_id)
