"""
Optimistic drag, resize and create on the staff calendar.

The controller owns the UI-visible position of each booking card. A drag
captures the original interval, hover proposes a grid-quantized interval,
and drop shows the proposal immediately while the backend validates it.
On rejection the card snaps back to the original interval and the reason
is surfaced. Each card allows one in-flight operation at a time.

Usage:
    controller = CalendarDragController(EngineCalendarBackend(engine))
    controller.load(bookings)
    controller.begin_drag(booking_id, DragMode.RESIZE_START, pointer=600)
    controller.hover(booking_id, pointer=630)
    result = await controller.drop(booking_id)
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from booking_engine.calendar.backend import CalendarBackend
from booking_engine.calendar.commands import (
    CalendarCommand,
    CommandResult,
    Create,
    DragMode,
    Move,
    ResizeEnd,
    ResizeStart,
)
from booking_engine.config import settings
from booking_engine.exceptions import BookingEngineError, NotFoundError
from booking_engine.schemas.booking_schema import Booking
from booking_engine.scheduling.interval import TimeInterval
from booking_engine.utils import MINUTES_PER_DAY

logger = logging.getLogger(__name__)


class DragInProgressError(BookingEngineError):
    """A card already has a drag or a pending validation."""

    error_code = "DRAG_IN_PROGRESS"


@dataclass(frozen=True)
class CardState:
    """What the calendar currently shows for one booking."""
    booking_id: str
    team_member_id: str
    interval: TimeInterval


@dataclass
class DragSession:
    """Transient state of one drag gesture."""
    booking_id: str
    mode: DragMode
    original: CardState
    anchor: int
    proposed: TimeInterval
    target_team_member_id: Optional[str] = None


class CalendarDragController:
    """Client-side optimistic scheduler with rollback on rejection."""

    def __init__(
        self,
        backend: CalendarBackend,
        step_minutes: Optional[int] = None,
        tz: Optional[str] = None,
    ) -> None:
        self._backend = backend
        self.step = step_minutes or settings.scheduling.calendar_step_minutes
        self._tz = tz
        self._cards: dict[str, CardState] = {}
        self._drags: dict[str, DragSession] = {}
        self._pending: set[str] = set()
        self.last_error: Optional[str] = None

    # ------------------------------------------------------------------ #
    # Local state
    # ------------------------------------------------------------------ #

    def load(self, bookings: Iterable[Booking]) -> None:
        """Replace the visible cards with server state."""
        self._cards = {
            b.id: CardState(b.id, b.team_member_id, b.interval(self._tz))
            for b in bookings
        }

    def card(self, booking_id: str) -> CardState:
        try:
            return self._cards[booking_id]
        except KeyError:
            raise NotFoundError(f"Booking {booking_id} is not on the calendar") from None

    def interval_of(self, booking_id: str) -> TimeInterval:
        return self.card(booking_id).interval

    def is_locked(self, booking_id: str) -> bool:
        """True while the card must not accept another drag."""
        return booking_id in self._pending or booking_id in self._drags

    # ------------------------------------------------------------------ #
    # Gesture
    # ------------------------------------------------------------------ #

    def snap(self, minutes: int) -> int:
        """Round a pointer position to the nearest grid line."""
        return ((minutes + self.step // 2) // self.step) * self.step

    def begin_drag(self, booking_id: str, mode: DragMode, pointer: int) -> DragSession:
        """Capture the original interval. ``pointer`` is minutes since midnight."""
        if self.is_locked(booking_id):
            raise DragInProgressError(f"Booking {booking_id} already has a pending change")
        card = self.card(booking_id)
        session = DragSession(
            booking_id=booking_id,
            mode=DragMode(mode),
            original=card,
            anchor=pointer,
            proposed=card.interval,
        )
        self._drags[booking_id] = session
        return session

    def hover(
        self, booking_id: str, pointer: int, team_member_id: Optional[str] = None
    ) -> TimeInterval:
        """Propose an interval for the current pointer position."""
        session = self._drags.get(booking_id)
        if session is None:
            raise NotFoundError(f"No drag in progress for booking {booking_id}")

        original = session.original.interval
        delta = pointer - session.anchor

        if session.mode == DragMode.MOVE:
            start = self.snap(original.start + delta)
            start = max(0, min(start, MINUTES_PER_DAY - original.duration))
            proposed = original.shift(start - original.start)
            session.target_team_member_id = team_member_id
        elif session.mode == DragMode.RESIZE_START:
            start = max(0, min(self.snap(original.start + delta), original.end - self.step))
            proposed = original.with_start(start)
        else:
            end = min(MINUTES_PER_DAY, max(self.snap(original.end + delta), original.start + self.step))
            proposed = original.with_end(end)

        session.proposed = proposed
        return proposed

    def cancel_drag(self, booking_id: str) -> None:
        """Abandon the gesture without contacting the server."""
        self._drags.pop(booking_id, None)

    async def drop(self, booking_id: str) -> CommandResult:
        """
        Show the proposal optimistically and ask the server to commit it.

        Returns the server's verdict. On rejection, or if the backend call
        fails, the card is restored to its pre-drag interval.
        """
        session = self._drags.pop(booking_id, None)
        if session is None:
            raise NotFoundError(f"No drag in progress for booking {booking_id}")

        original = session.original
        target_member = session.target_team_member_id or original.team_member_id
        if session.proposed == original.interval and target_member == original.team_member_id:
            return CommandResult(ok=True)

        command = self._command_for(session)
        self._pending.add(booking_id)
        self._cards[booking_id] = CardState(booking_id, target_member, session.proposed)
        try:
            result = await self._backend.submit(command)
        except Exception:
            self._cards[booking_id] = original
            logger.exception("Calendar commit failed for booking %s, rolled back", booking_id)
            raise
        finally:
            self._pending.discard(booking_id)

        if result.ok:
            if result.booking is not None:
                self._cards[booking_id] = CardState(
                    booking_id, result.booking.team_member_id, result.booking.interval(self._tz)
                )
            self.last_error = None
            logger.info("Booking %s %s committed at %s", booking_id, session.mode.value, session.proposed)
        else:
            self._cards[booking_id] = original
            self.last_error = result.reason
            logger.info("Booking %s %s rejected: %s", booking_id, session.mode.value, result.reason)
        return result

    def _command_for(self, session: DragSession) -> CalendarCommand:
        if session.mode == DragMode.MOVE:
            return Move(session.booking_id, session.proposed, session.target_team_member_id)
        if session.mode == DragMode.RESIZE_START:
            return ResizeStart(session.booking_id, session.proposed)
        return ResizeEnd(session.booking_id, session.proposed)

    # ------------------------------------------------------------------ #
    # Create
    # ------------------------------------------------------------------ #

    async def create(self, command: Create) -> CommandResult:
        """Place a new booking from the time-slot menu. Shown only once committed."""
        result = await self._backend.submit(command)
        if result.ok and result.booking is not None:
            booking = result.booking
            self._cards[booking.id] = CardState(booking.id, booking.team_member_id, booking.interval(self._tz))
            self.last_error = None
        else:
            self.last_error = result.reason
        return result
