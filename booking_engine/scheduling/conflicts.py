"""
Placement validation shared by checkout, calendar drag/resize and admin edits.

Every booking write runs through ``ConflictResolver.validate_placement``
with the same rules the calendar UI previews:

- no overlap with another occupying (confirmed/completed) booking of the
  same team member, ignoring the booking being edited;
- optionally, no overlap with another session's live hold;
- optionally, full containment in an availability window minus blocked
  time. Public checkout requires this; admins may book outside hours.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from booking_engine.exceptions import ConflictError
from booking_engine.scheduling.availability import AvailabilityCalculator
from booking_engine.scheduling.interval import TimeInterval
from booking_engine.scheduling.reservations import ReservationManager
from booking_engine.scheduling.store import SchedulingStore

logger = logging.getLogger(__name__)

REASON_BOOKING_OVERLAP = "Overlaps an existing booking"
REASON_HOLD_OVERLAP = "Slot is held by another client"
REASON_OUTSIDE_AVAILABILITY = "Outside the team member's availability"


@dataclass(frozen=True)
class PlacementResult:
    """Outcome of a placement check: ok, or the first conflict found."""

    ok: bool
    reason: Optional[str] = None
    conflicting_id: Optional[str] = None

    @classmethod
    def accept(cls) -> "PlacementResult":
        return cls(ok=True)

    @classmethod
    def conflict(cls, reason: str, conflicting_id: Optional[str] = None) -> "PlacementResult":
        return cls(ok=False, reason=reason, conflicting_id=conflicting_id)

    def raise_for_conflict(self) -> None:
        if not self.ok:
            raise ConflictError(self.reason or "Placement conflict", self.conflicting_id)


class ConflictResolver:
    """Validates a proposed interval against bookings, holds and availability."""

    def __init__(
        self,
        store: SchedulingStore,
        calculator: AvailabilityCalculator,
        reservations: ReservationManager,
    ) -> None:
        self._store = store
        self._calculator = calculator
        self._reservations = reservations

    def validate_placement(
        self,
        candidate: TimeInterval,
        team_member_id: str,
        shop_id: str,
        exclude_booking_id: Optional[str] = None,
        require_availability_window: bool = False,
        check_holds: bool = False,
        session_id: Optional[str] = None,
    ) -> PlacementResult:
        """
        Check ``candidate`` on ``team_member_id``'s calendar for its date.

        Args:
            candidate: Proposed interval in shop-local time.
            exclude_booking_id: The booking being moved or resized.
            require_availability_window: Demand containment in open hours.
            check_holds: Also reject overlap with live holds not owned by
                ``session_id``. Used when promoting a hold.

        Returns:
            ``PlacementResult.accept()`` or the first conflict found.
        """
        tz = candidate.tz
        for booking in self._store.bookings_for(team_member_id, candidate.day):
            if booking.id == exclude_booking_id:
                continue
            if candidate.overlaps(booking.interval(tz)):
                logger.info(
                    "Placement %s for %s conflicts with booking %s",
                    candidate, team_member_id, booking.booking_number,
                )
                return PlacementResult.conflict(REASON_BOOKING_OVERLAP, booking.id)

        if check_holds:
            for hold in self._reservations.live_holds(
                team_member_id, candidate.day, exclude_session=session_id
            ):
                if candidate.overlaps(hold.interval(tz)):
                    logger.info("Placement %s for %s conflicts with a live hold", candidate, team_member_id)
                    return PlacementResult.conflict(REASON_HOLD_OVERLAP, hold.id)

        if require_availability_window and not self._calculator.is_within_availability(
            team_member_id, shop_id, candidate
        ):
            logger.info("Placement %s for %s is outside availability", candidate, team_member_id)
            return PlacementResult.conflict(REASON_OUTSIDE_AVAILABILITY)

        return PlacementResult.accept()
