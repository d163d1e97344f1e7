"""
Boundary error mapping.

Each engine error becomes a distinct response so the UI can react:
conflicts and expired holds ask for an availability refresh with "slot no
longer available" messaging, illegal status changes are a no-op with an
explanation, everything else is a generic failure.
"""

import logging
from typing import TypedDict

from pydantic import ValidationError as PydanticValidationError

from booking_engine.exceptions import (
    BookingEngineError,
    ConflictError,
    ExpiredHoldError,
    StateTransitionError,
    ValidationError,
)

logger = logging.getLogger(__name__)

SLOT_UNAVAILABLE_MESSAGE = "That time slot is no longer available. Please pick another time."


class ErrorResult(TypedDict, total=False):
    """Failure payload shared by every boundary function."""

    success: bool
    message: str
    error_code: str
    refresh_availability: bool
    no_op: bool
    conflicting_id: str


def error_result(exc: Exception) -> ErrorResult:
    """Translate an engine or input-validation error into a boundary response."""
    if isinstance(exc, PydanticValidationError):
        fields = sorted({str(err["loc"][0]) for err in exc.errors() if err.get("loc")})
        return {
            "success": False,
            "message": f"Invalid or missing fields: {', '.join(fields)}.",
            "error_code": ValidationError.error_code,
        }

    if isinstance(exc, (ConflictError, ExpiredHoldError)):
        result: ErrorResult = {
            "success": False,
            "message": SLOT_UNAVAILABLE_MESSAGE,
            "error_code": exc.error_code,
            "refresh_availability": True,
        }
        if isinstance(exc, ConflictError) and exc.conflicting_id:
            result["conflicting_id"] = exc.conflicting_id
        return result

    if isinstance(exc, StateTransitionError):
        return {
            "success": False,
            "message": str(exc),
            "error_code": exc.error_code,
            "no_op": True,
        }

    if isinstance(exc, BookingEngineError):
        return {"success": False, "message": str(exc), "error_code": exc.error_code}

    raise exc
