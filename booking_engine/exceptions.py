"""
Error taxonomy for the availability and reservation engine.

Raised by the scheduling components and translated into distinct boundary
responses in ``booking_engine.tools``.
"""

from typing import Optional


class BookingEngineError(Exception):
    """Base exception for all booking engine errors."""

    error_code = "ERROR"


class ValidationError(BookingEngineError):
    """Malformed or missing input."""

    error_code = "VALIDATION"


class ConflictError(BookingEngineError):
    """The candidate interval overlaps a booking or another session's hold."""

    error_code = "CONFLICT"

    def __init__(self, reason: str, conflicting_id: Optional[str] = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.conflicting_id = conflicting_id


class ExpiredHoldError(BookingEngineError):
    """A hold was promoted or extended after its TTL elapsed."""

    error_code = "HOLD_EXPIRED"


class NotFoundError(BookingEngineError):
    """A referenced booking, hold, or catalog record does not exist."""

    error_code = "NOT_FOUND"


class StateTransitionError(BookingEngineError):
    """Illegal booking status change."""

    error_code = "INVALID_TRANSITION"
