"""
Checkout hold boundary.

A client selecting a slot takes a hold on it; releasing the hold or
letting it expire frees the slot for everyone else.
"""

import logging
from typing import Optional, TypedDict

from pydantic import ValidationError as PydanticValidationError

from booking_engine.engine import BookingEngine, get_engine
from booking_engine.exceptions import BookingEngineError
from booking_engine.logging_context import session_context
from booking_engine.schemas.booking_schema import Hold
from booking_engine.schemas.request_schema import HoldRequest
from booking_engine.scheduling.availability import parse_slot_id, resolve_service
from booking_engine.tools.responses import error_result
from booking_engine.utils import format_display_time, format_hhmm, parse_wall_time

logger = logging.getLogger(__name__)


class HoldResult(TypedDict, total=False):
    """Result from create_hold, extend_hold or release_hold."""

    success: bool
    message: str
    hold_id: str
    expires_at: str
    date: str
    start_time: str
    end_time: str
    error_code: str
    refresh_availability: bool
    conflicting_id: str


def _hold_result(hold: Hold, message: str) -> HoldResult:
    start = parse_wall_time(hold.start_time)
    return {
        "success": True,
        "hold_id": hold.id,
        "expires_at": hold.expires_at.isoformat(),
        "date": hold.day.isoformat(),
        "start_time": format_hhmm(start),
        "end_time": hold.end_label,
        "message": message,
    }


def create_hold(
    team_member_id: str,
    shop_id: str,
    service_id: str,
    date: str,
    start_time: str,
    duration: int,
    session_id: str,
    variant_id: Optional[str] = None,
    engine: Optional[BookingEngine] = None,
) -> HoldResult:
    """Hold a slot for a checkout session, replacing any earlier hold it owns."""
    engine = engine or get_engine()
    try:
        request = HoldRequest(
            team_member_id=team_member_id,
            shop_id=shop_id,
            service_id=service_id,
            date=date,
            start_time=start_time,
            duration=duration,
            session_id=session_id,
            variant_id=variant_id,
        )
        with session_context(request.session_id):
            hold = engine.reservations.create_hold(
                request.team_member_id,
                request.shop_id,
                request.service_id,
                request.date,
                request.start_time,
                request.duration,
                request.session_id,
                variant_id=request.variant_id,
            )
    except (BookingEngineError, PydanticValidationError) as exc:
        logger.info("Hold refused for session %s: %s", session_id, exc)
        return error_result(exc)

    start = parse_wall_time(hold.start_time)
    minutes = int(engine.reservations.ttl.total_seconds() // 60)
    return _hold_result(
        hold,
        f"{format_display_time(start)} on {hold.day.isoformat()} is held for {minutes} minutes.",
    )


def create_hold_for_slot(
    slot_id: str,
    shop_id: str,
    service_id: str,
    session_id: str,
    variant_id: Optional[str] = None,
    engine: Optional[BookingEngine] = None,
) -> HoldResult:
    """Hold a slot by the id returned from query_availability."""
    engine = engine or get_engine()
    try:
        team_member_id, day, start = parse_slot_id(slot_id)
        duration = resolve_service(engine.store, team_member_id, service_id, variant_id).duration
    except BookingEngineError as exc:
        return error_result(exc)
    return create_hold(
        team_member_id,
        shop_id,
        service_id,
        day.isoformat(),
        format_hhmm(start),
        duration,
        session_id,
        variant_id=variant_id,
        engine=engine,
    )


def extend_hold(session_id: str, engine: Optional[BookingEngine] = None) -> HoldResult:
    """Refresh the TTL of the session's live hold."""
    engine = engine or get_engine()
    try:
        with session_context(session_id):
            hold = engine.reservations.extend(session_id)
    except BookingEngineError as exc:
        return error_result(exc)
    return _hold_result(hold, f"Hold extended until {hold.expires_at.isoformat()}.")


def release_hold(session_id: str, engine: Optional[BookingEngine] = None) -> HoldResult:
    """Drop the session's hold. Releasing nothing is still a success."""
    engine = engine or get_engine()
    with session_context(session_id):
        engine.reservations.release(session_id)
    return {"success": True, "message": "Hold released."}
