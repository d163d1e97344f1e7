"""
Server-side handler for calendar commands.

Each command is validated and persisted in one step by ``BookingService``.
Writes run on a worker thread because they wait on the same calendar locks
as checkout holds. A rejected command leaves the stored booking untouched
and comes back as a failed ``CommandResult`` carrying the conflict reason.
"""

import asyncio
import logging
from typing import Protocol

from booking_engine.calendar.commands import (
    CalendarCommand,
    CommandResult,
    Create,
    Move,
    ResizeEnd,
    ResizeStart,
)
from booking_engine.engine import BookingEngine
from booking_engine.exceptions import BookingEngineError, ConflictError

logger = logging.getLogger(__name__)


class CalendarBackend(Protocol):
    async def submit(self, command: CalendarCommand) -> CommandResult: ...


class EngineCalendarBackend:
    """Runs calendar commands against a ``BookingEngine``."""

    def __init__(self, engine: BookingEngine) -> None:
        self._engine = engine

    async def submit(self, command: CalendarCommand) -> CommandResult:
        try:
            booking = await asyncio.to_thread(self._execute, command)
        except ConflictError as exc:
            return CommandResult(
                ok=False,
                reason=exc.reason,
                error_code=exc.error_code,
                conflicting_id=exc.conflicting_id,
            )
        except BookingEngineError as exc:
            logger.info("Calendar command %s rejected: %s", type(command).__name__, exc)
            return CommandResult(ok=False, reason=str(exc), error_code=exc.error_code)
        return CommandResult(ok=True, booking=booking)

    def _execute(self, command: CalendarCommand):
        bookings = self._engine.bookings
        if isinstance(command, Move):
            return bookings.reschedule(command.booking_id, command.interval, command.team_member_id)
        if isinstance(command, (ResizeStart, ResizeEnd)):
            return bookings.reschedule(command.booking_id, command.interval)
        if isinstance(command, Create):
            return bookings.admin_create(
                command.team_member_id,
                command.shop_id,
                command.service_id,
                command.interval.day,
                command.interval.start,
                variant_id=command.variant_id,
                duration=command.interval.duration,
                client_id=command.client_id,
                client_note=command.client_note,
            )
        raise TypeError(f"Unknown calendar command: {command!r}")
