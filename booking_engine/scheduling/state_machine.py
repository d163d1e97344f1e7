"""
Finite state machine for booking status.

Bookings start ``confirmed`` and may move to ``completed``, ``cancelled``
or ``no_show``. Cancelled and no-show bookings can be reactivated;
completed bookings cannot. Entering a terminal-looking state stamps its
``*_at`` timestamp. Leaving it keeps the stamp as an audit trail.

Usage:
    sm = BookingStateMachine()
    booking = sm.transition(booking, BookingTrigger.CANCEL, now)
    assert booking.status == BookingStatus.CANCELLED
"""

import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from booking_engine.exceptions import StateTransitionError
from booking_engine.schemas.booking_schema import Booking, BookingStatus

logger = logging.getLogger(__name__)


class BookingTrigger(str, Enum):
    """Events that cause status transitions."""
    COMPLETE = "complete"
    CANCEL = "cancel"
    MARK_NO_SHOW = "mark_no_show"
    REACTIVATE = "reactivate"


@dataclass(frozen=True)
class Transition:
    """A single valid status transition."""
    from_state: BookingStatus
    to_state: BookingStatus
    trigger: BookingTrigger


@dataclass(frozen=True)
class StatusEntry:
    """Recorded history entry for a status change."""
    booking_id: str
    from_state: BookingStatus
    to_state: BookingStatus
    trigger: BookingTrigger
    changed_at: datetime


# Timestamp field stamped when a booking enters the status.
STAMP_FIELDS: dict[BookingStatus, str] = {
    BookingStatus.COMPLETED: "completed_at",
    BookingStatus.CANCELLED: "cancelled_at",
    BookingStatus.NO_SHOW: "no_show_at",
}


class BookingStateMachine:
    """
    Deterministic status transitions for bookings.

    Every transition must be listed in ``TRANSITIONS``. Anything else is
    rejected with a ``StateTransitionError`` naming the allowed moves.
    """

    INITIAL_STATE = BookingStatus.CONFIRMED

    TRANSITIONS: list[Transition] = [
        Transition(BookingStatus.CONFIRMED, BookingStatus.COMPLETED, BookingTrigger.COMPLETE),
        Transition(BookingStatus.CONFIRMED, BookingStatus.CANCELLED, BookingTrigger.CANCEL),
        Transition(BookingStatus.CONFIRMED, BookingStatus.NO_SHOW, BookingTrigger.MARK_NO_SHOW),

        # --- Reactivation ---
        Transition(BookingStatus.CANCELLED, BookingStatus.CONFIRMED, BookingTrigger.REACTIVATE),
        Transition(BookingStatus.NO_SHOW, BookingStatus.CONFIRMED, BookingTrigger.REACTIVATE),
    ]

    # Oldest entries are dropped once the log reaches this size.
    HISTORY_LIMIT = 1000

    def __init__(self, history_limit: Optional[int] = None) -> None:
        self._history: deque[StatusEntry] = deque(maxlen=history_limit or self.HISTORY_LIMIT)

    def find_transition(
        self, from_state: BookingStatus, to_state: BookingStatus
    ) -> Optional[Transition]:
        for t in self.TRANSITIONS:
            if t.from_state == from_state and t.to_state == to_state:
                return t
        return None

    def get_valid_targets(self, state: BookingStatus) -> list[BookingStatus]:
        """Return all statuses reachable from ``state``."""
        return [t.to_state for t in self.TRANSITIONS if t.from_state == state]

    def transition(self, booking: Booking, trigger: BookingTrigger, now: datetime) -> Booking:
        """
        Apply ``trigger`` to ``booking`` and return the updated copy.

        Raises:
            StateTransitionError: If no valid transition exists.
        """
        for t in self.TRANSITIONS:
            if t.from_state == booking.status and t.trigger == trigger:
                return self._apply(booking, t, now)

        valid = [t.trigger.value for t in self.TRANSITIONS if t.from_state == booking.status]
        raise StateTransitionError(
            f"No valid transition from '{booking.status.value}' "
            f"with trigger '{trigger.value}'. Valid triggers: {valid}"
        )

    def transition_to(self, booking: Booking, target: BookingStatus, now: datetime) -> Booking:
        """Move ``booking`` to ``target`` status, as the calendar's status buttons do."""
        t = self.find_transition(booking.status, target)
        if t is None:
            valid = [s.value for s in self.get_valid_targets(booking.status)]
            raise StateTransitionError(
                f"Cannot change booking {booking.booking_number} from "
                f"'{booking.status.value}' to '{target.value}'. Allowed: {valid}"
            )
        return self._apply(booking, t, now)

    def _apply(self, booking: Booking, t: Transition, now: datetime) -> Booking:
        update: dict = {"status": t.to_state, "updated_at": now}
        stamp = STAMP_FIELDS.get(t.to_state)
        if stamp is not None:
            update[stamp] = now

        self._history.append(StatusEntry(
            booking_id=booking.id,
            from_state=t.from_state,
            to_state=t.to_state,
            trigger=t.trigger,
            changed_at=now,
        ))
        logger.info(
            "Booking %s: %s -> %s (trigger: %s)",
            booking.booking_number, t.from_state.value, t.to_state.value, t.trigger.value,
        )
        return booking.model_copy(update=update)

    def get_history(self, booking_id: Optional[str] = None) -> list[StatusEntry]:
        """Return recorded status changes, optionally for one booking."""
        if booking_id is None:
            return list(self._history)
        return [e for e in self._history if e.booking_id == booking_id]
