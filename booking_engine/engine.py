"""
Engine composition root.

Wires the store, reservation manager, availability calculator, conflict
resolver and booking service together. The boundary functions in
``booking_engine.tools`` use the process-wide engine from ``get_engine``
unless they are handed one explicitly.
"""

import logging
from typing import Optional

from booking_engine.scheduling.availability import AvailabilityCalculator
from booking_engine.scheduling.bookings import BookingService
from booking_engine.scheduling.conflicts import ConflictResolver
from booking_engine.scheduling.reservations import HoldSweeper, ReservationManager
from booking_engine.scheduling.store import SchedulingStore
from booking_engine.utils import Clock, utc_now

logger = logging.getLogger(__name__)


class BookingEngine:
    """All engine components sharing one store and one clock."""

    def __init__(
        self,
        store: Optional[SchedulingStore] = None,
        clock: Clock = utc_now,
        hold_ttl_minutes: Optional[int] = None,
        slot_step_minutes: Optional[int] = None,
    ) -> None:
        self.store = store or SchedulingStore()
        self.reservations = ReservationManager(self.store, ttl_minutes=hold_ttl_minutes, clock=clock)
        self.calculator = AvailabilityCalculator(
            self.store, self.reservations, step_minutes=slot_step_minutes
        )
        self.resolver = ConflictResolver(self.store, self.calculator, self.reservations)
        self.bookings = BookingService(self.store, self.reservations, self.resolver)
        self._sweeper: Optional[HoldSweeper] = None

    def start_sweeper(self, interval_seconds: Optional[float] = None) -> HoldSweeper:
        """Start the optional background cleanup of expired holds."""
        if self._sweeper is None:
            self._sweeper = HoldSweeper(self.reservations, interval_seconds)
        self._sweeper.start()
        return self._sweeper

    def shutdown(self) -> None:
        if self._sweeper is not None:
            self._sweeper.stop()
            self._sweeper = None

    def reset(self) -> None:
        """Clear all state. Used by test fixtures for isolation."""
        self.shutdown()
        self.reservations.reset()
        self.store.reset()


_engine: Optional[BookingEngine] = None


def get_engine() -> BookingEngine:
    """Return the process-wide engine, creating it on first use."""
    global _engine
    if _engine is None:
        _engine = BookingEngine()
        logger.debug("Booking engine created")
    return _engine


def set_engine(engine: Optional[BookingEngine]) -> None:
    """Install (or clear, with ``None``) the process-wide engine."""
    global _engine
    if _engine is not None and _engine is not engine:
        _engine.shutdown()
    _engine = engine
