"""
Booking boundary: confirm, admin create, status and time edits, calendar reads.

Every function validates its payload with the request schemas, calls the
engine, and maps engine errors through ``error_result`` so callers always
get a ``success`` flag and a message instead of an exception.
"""

import logging
from typing import Optional, TypedDict

from pydantic import ValidationError as PydanticValidationError

from booking_engine.engine import BookingEngine, get_engine
from booking_engine.exceptions import BookingEngineError, ValidationError
from booking_engine.logging_context import session_context
from booking_engine.schemas.booking_schema import Booking, BookingStatus
from booking_engine.schemas.request_schema import (
    AdminBookingRequest,
    BookingConfirmRequest,
    BookingStatusUpdate,
    BookingTimeUpdate,
)
from booking_engine.scheduling.interval import TimeInterval
from booking_engine.tools.responses import error_result
from booking_engine.utils import format_hhmm, parse_wall_time

logger = logging.getLogger(__name__)


class BookingRecord(TypedDict):
    """Booking as returned to the booking UI and the staff calendar."""

    booking_id: str
    booking_number: str
    team_member_id: str
    shop_id: str
    service_id: str
    variant_id: Optional[str]
    date: str
    start_time: str
    end_time: str
    duration: int
    price: str
    status: str
    client_id: Optional[str]
    client_note: Optional[str]
    created_at: str
    updated_at: str


class BookingResult(TypedDict, total=False):
    """Result from every booking write."""

    success: bool
    message: str
    booking_number: str
    details: BookingRecord
    error_code: str
    refresh_availability: bool
    no_op: bool
    conflicting_id: str


class CalendarResult(TypedDict, total=False):
    """Result from get_calendar_bookings."""

    success: bool
    message: str
    bookings: list[BookingRecord]
    total: int
    error_code: str


def booking_to_record(booking: Booking) -> BookingRecord:
    return {
        "booking_id": booking.id,
        "booking_number": booking.booking_number,
        "team_member_id": booking.team_member_id,
        "shop_id": booking.shop_id,
        "service_id": booking.service_id,
        "variant_id": booking.variant_id,
        "date": booking.day.isoformat(),
        "start_time": format_hhmm(parse_wall_time(booking.start_time)),
        "end_time": booking.end_label,
        "duration": booking.duration,
        "price": str(booking.price),
        "status": booking.status.value,
        "client_id": booking.client_id,
        "client_note": booking.client_note,
        "created_at": booking.created_at.isoformat(),
        "updated_at": booking.updated_at.isoformat(),
    }


def _success(booking: Booking, message: str) -> BookingResult:
    return {
        "success": True,
        "booking_number": booking.booking_number,
        "message": message,
        "details": booking_to_record(booking),
    }


def confirm_booking(
    session_id: str,
    client_id: Optional[str] = None,
    variant_id: Optional[str] = None,
    client_note: Optional[str] = None,
    engine: Optional[BookingEngine] = None,
) -> BookingResult:
    """Promote the session's live hold into a confirmed booking."""
    engine = engine or get_engine()
    try:
        request = BookingConfirmRequest(
            session_id=session_id,
            client_id=client_id,
            variant_id=variant_id,
            client_note=client_note,
        )
        with session_context(request.session_id):
            booking = engine.bookings.confirm_hold(
                request.session_id,
                client_id=request.client_id,
                variant_id=request.variant_id,
                client_note=request.client_note,
            )
    except (BookingEngineError, PydanticValidationError) as exc:
        logger.info("Confirmation failed for session %s: %s", session_id, exc)
        return error_result(exc)

    return _success(
        booking,
        f"Booking confirmed. Reference number: {booking.booking_number}. "
        f"{booking.day.isoformat()} at {format_hhmm(parse_wall_time(booking.start_time))}.",
    )


def create_admin_booking(
    team_member_id: str,
    shop_id: str,
    service_id: str,
    date: str,
    start_time: str,
    variant_id: Optional[str] = None,
    duration: Optional[int] = None,
    client_id: Optional[str] = None,
    client_note: Optional[str] = None,
    engine: Optional[BookingEngine] = None,
) -> BookingResult:
    """Create a booking from the staff calendar without a hold."""
    engine = engine or get_engine()
    try:
        request = AdminBookingRequest(
            team_member_id=team_member_id,
            shop_id=shop_id,
            service_id=service_id,
            date=date,
            start_time=start_time,
            variant_id=variant_id,
            duration=duration,
            client_id=client_id,
            client_note=client_note,
        )
        booking = engine.bookings.admin_create(
            request.team_member_id,
            request.shop_id,
            request.service_id,
            request.date,
            request.start_time,
            variant_id=request.variant_id,
            duration=request.duration,
            client_id=request.client_id,
            client_note=request.client_note,
        )
    except (BookingEngineError, PydanticValidationError) as exc:
        return error_result(exc)

    logger.info("Admin booking %s created for %s", booking.booking_number, team_member_id)
    return _success(booking, f"Booking {booking.booking_number} created.")


def update_booking_status(
    booking_id: str, status: str, engine: Optional[BookingEngine] = None
) -> BookingResult:
    """Move a booking to ``status`` if the lifecycle allows it."""
    engine = engine or get_engine()
    try:
        request = BookingStatusUpdate(status=status)
        booking = engine.bookings.change_status(booking_id, request.status)
    except (BookingEngineError, PydanticValidationError) as exc:
        return error_result(exc)
    return _success(booking, f"Booking {booking.booking_number} is now {booking.status.value}.")


def update_booking_time(
    booking_id: str,
    date: str,
    start_time: str,
    end_time: str,
    team_member_id: Optional[str] = None,
    engine: Optional[BookingEngine] = None,
) -> BookingResult:
    """
    Move or resize a booking from the staff calendar.

    Times are shop-local wall times. Passing a different ``team_member_id``
    reassigns the booking, picking up that member's custom price.
    """
    engine = engine or get_engine()
    try:
        request = BookingTimeUpdate(
            date=date,
            start_time=start_time,
            end_time=end_time,
            team_member_id=team_member_id,
        )
        current = engine.store.get_booking(booking_id)
        tz = engine.store.timezone_for(current.shop_id)
        candidate = TimeInterval.from_bounds(request.date, request.start_time, request.end_time, tz)
        booking = engine.bookings.reschedule(
            booking_id, candidate, team_member_id=request.team_member_id
        )
    except (BookingEngineError, PydanticValidationError) as exc:
        return error_result(exc)
    return _success(
        booking,
        f"Booking {booking.booking_number} moved to {booking.day.isoformat()} "
        f"{format_hhmm(parse_wall_time(booking.start_time))}-{booking.end_label}.",
    )


def delete_booking(booking_id: str, engine: Optional[BookingEngine] = None) -> BookingResult:
    """Remove a booking outright. Prefer cancelling for client-facing flows."""
    engine = engine or get_engine()
    try:
        booking = engine.bookings.delete(booking_id)
    except BookingEngineError as exc:
        return error_result(exc)
    logger.info("Booking %s deleted", booking.booking_number)
    return _success(booking, f"Booking {booking.booking_number} deleted.")


def get_booking(booking_id: str, engine: Optional[BookingEngine] = None) -> Optional[BookingRecord]:
    """Retrieve a booking by id."""
    engine = engine or get_engine()
    try:
        return booking_to_record(engine.store.get_booking(booking_id))
    except BookingEngineError:
        return None


def get_calendar_bookings(
    start_date: str,
    end_date: str,
    team_member_id: Optional[str] = None,
    status: Optional[str] = None,
    engine: Optional[BookingEngine] = None,
) -> CalendarResult:
    """Bookings in an inclusive date range, optionally filtered."""
    engine = engine or get_engine()
    try:
        wanted = BookingStatus(status) if status else None
    except ValueError:
        return {
            "success": False,
            "message": f"Unknown booking status {status!r}.",
            "error_code": ValidationError.error_code,
        }
    try:
        bookings = engine.bookings.bookings_between(start_date, end_date, team_member_id, wanted)
    except BookingEngineError as exc:
        return error_result(exc)
    return {
        "success": True,
        "bookings": [booking_to_record(b) for b in bookings],
        "total": len(bookings),
        "message": f"{len(bookings)} booking(s) between {start_date} and {end_date}.",
    }
