"""Explicit calendar edit commands and their results."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from booking_engine.schemas.booking_schema import Booking
from booking_engine.scheduling.interval import TimeInterval


class DragMode(str, Enum):
    """Which part of a booking card is being dragged."""
    MOVE = "move"
    RESIZE_START = "resize-start"
    RESIZE_END = "resize-end"


@dataclass(frozen=True)
class Move:
    """Shift both edges, optionally onto another team member's column."""
    booking_id: str
    interval: TimeInterval
    team_member_id: Optional[str] = None


@dataclass(frozen=True)
class ResizeStart:
    booking_id: str
    interval: TimeInterval


@dataclass(frozen=True)
class ResizeEnd:
    booking_id: str
    interval: TimeInterval


@dataclass(frozen=True)
class Create:
    """New booking placed directly on the calendar by staff."""
    team_member_id: str
    shop_id: str
    service_id: str
    interval: TimeInterval
    variant_id: Optional[str] = None
    client_id: Optional[str] = None
    client_note: Optional[str] = None


CalendarCommand = Union[Move, ResizeStart, ResizeEnd, Create]


@dataclass(frozen=True)
class CommandResult:
    """Server verdict on a calendar command."""
    ok: bool
    booking: Optional[Booking] = None
    reason: Optional[str] = None
    error_code: Optional[str] = None
    conflicting_id: Optional[str] = None
