"""Validated request payloads accepted at the engine boundary."""

import datetime
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, Field

from booking_engine.exceptions import ValidationError
from booking_engine.schemas.booking_schema import BookingStatus
from booking_engine.utils import parse_wall_time


def _check_time(value: str) -> str:
    try:
        parse_wall_time(value)
    except ValidationError as exc:
        raise ValueError(str(exc)) from None
    return value


WallTimeStr = Annotated[str, AfterValidator(_check_time)]


class AvailabilityQuery(BaseModel):
    """Slot lookup. ``team_member_id == "any"`` pools every eligible member."""
    team_member_id: str = Field(min_length=1)
    service_id: str = Field(min_length=1)
    date: datetime.date
    shop_id: str = Field(min_length=1)
    session_id: Optional[str] = None
    variant_id: Optional[str] = None


class HoldRequest(BaseModel):
    """Checkout hold on a selected slot."""
    team_member_id: str = Field(min_length=1)
    shop_id: str = Field(min_length=1)
    service_id: str = Field(min_length=1)
    date: datetime.date
    start_time: WallTimeStr
    duration: int = Field(gt=0)
    session_id: str = Field(min_length=1)
    variant_id: Optional[str] = None


class BookingConfirmRequest(BaseModel):
    session_id: str = Field(min_length=1)
    client_id: Optional[str] = None
    variant_id: Optional[str] = None
    client_note: Optional[str] = None


class AdminBookingRequest(BaseModel):
    team_member_id: str = Field(min_length=1)
    shop_id: str = Field(min_length=1)
    service_id: str = Field(min_length=1)
    date: datetime.date
    start_time: WallTimeStr
    variant_id: Optional[str] = None
    duration: Optional[int] = Field(default=None, gt=0)
    client_id: Optional[str] = None
    client_note: Optional[str] = None


class BookingTimeUpdate(BaseModel):
    """Calendar PATCH: new local date/times and optionally a new team member."""
    date: datetime.date
    start_time: WallTimeStr
    end_time: WallTimeStr
    team_member_id: Optional[str] = None


class BookingStatusUpdate(BaseModel):
    status: BookingStatus
