"""
Availability query boundary.

Returns the slot list for one team member, or for "any" professional
offering the service at the shop, in the shape the booking UI consumes.
"""

import logging
from typing import Optional, TypedDict

from pydantic import ValidationError as PydanticValidationError

from booking_engine.engine import BookingEngine, get_engine
from booking_engine.exceptions import BookingEngineError
from booking_engine.schemas.booking_schema import AvailabilitySlot
from booking_engine.schemas.request_schema import AvailabilityQuery
from booking_engine.scheduling.availability import resolve_service
from booking_engine.tools.responses import error_result
from booking_engine.utils import format_display_time

logger = logging.getLogger(__name__)

ANY_TEAM_MEMBER = "any"


class SlotDict(TypedDict):
    """A single slot as returned to the booking UI."""

    time: str
    display_time: str
    end_time: str
    display_end_time: str
    duration: int
    team_member_id: str
    shop_id: str
    slot_id: str
    is_available: bool


class AvailabilityResult(TypedDict, total=False):
    """Result from query_availability."""

    success: bool
    date: str
    service_duration: Optional[int]
    slots: list[SlotDict]
    total_slots: int
    available_count: int
    message: str
    error_code: str


def slot_to_dict(slot: AvailabilitySlot) -> SlotDict:
    return {
        "time": slot.time,
        "display_time": format_display_time(slot.start),
        "end_time": slot.end_time,
        "display_end_time": format_display_time(slot.end),
        "duration": slot.end - slot.start,
        "team_member_id": slot.team_member_id,
        "shop_id": slot.shop_id,
        "slot_id": slot.slot_id,
        "is_available": slot.is_available,
    }


def _pooled_duration(
    engine: BookingEngine, shop_id: str, service_id: str, variant_id: Optional[str]
) -> Optional[int]:
    """Shared duration across the members offering the service, or None when they differ."""
    durations = {
        resolve_service(engine.store, member.id, service_id, variant_id).duration
        for member in engine.store.team_members_offering(service_id, shop_id)
    }
    if len(durations) == 1:
        return durations.pop()
    return None


def query_availability(
    team_member_id: str,
    service_id: str,
    date: str,
    shop_id: str,
    session_id: Optional[str] = None,
    variant_id: Optional[str] = None,
    engine: Optional[BookingEngine] = None,
) -> AvailabilityResult:
    """
    List candidate slots for a date, ordered by start time.

    A date with no availability windows yields an empty list, not an error.
    Filtering out past slots for "today" is left to the caller.
    """
    engine = engine or get_engine()
    try:
        query = AvailabilityQuery(
            team_member_id=team_member_id,
            service_id=service_id,
            date=date,
            shop_id=shop_id,
            session_id=session_id,
            variant_id=variant_id,
        )
        engine.store.get_shop(query.shop_id)
        if query.team_member_id == ANY_TEAM_MEMBER:
            slots = engine.calculator.any_member_slots(
                query.shop_id,
                query.service_id,
                query.date,
                variant_id=query.variant_id,
                session_id=query.session_id,
            )
            duration = _pooled_duration(engine, query.shop_id, query.service_id, query.variant_id)
        else:
            slots = engine.calculator.slots(
                query.team_member_id,
                query.shop_id,
                query.service_id,
                query.date,
                variant_id=query.variant_id,
                session_id=query.session_id,
            )
            duration = resolve_service(
                engine.store, query.team_member_id, query.service_id, query.variant_id
            ).duration
    except (BookingEngineError, PydanticValidationError) as exc:
        return error_result(exc)

    available = sum(1 for s in slots if s.is_available)
    if not slots:
        message = f"No availability on {query.date.isoformat()}."
    else:
        message = f"{available} of {len(slots)} time slots available on {query.date.isoformat()}."

    logger.debug("Availability for %s/%s on %s: %s", team_member_id, service_id, date, message)
    return {
        "success": True,
        "date": query.date.isoformat(),
        "service_duration": duration,
        "slots": [slot_to_dict(s) for s in slots],
        "total_slots": len(slots),
        "available_count": available,
        "message": message,
    }
