"""Tests for optimistic calendar drag, resize and create with rollback."""

import asyncio
import threading

import pytest

from booking_engine.calendar import (
    CalendarDragController,
    CommandResult,
    Create,
    DragInProgressError,
    DragMode,
    EngineCalendarBackend,
    Move,
    ResizeStart,
)
from booking_engine.exceptions import NotFoundError
from booking_engine.scheduling.conflicts import REASON_BOOKING_OVERLAP
from booking_engine.scheduling.interval import TimeInterval
from tests.conftest import DAY, SHOP, TZ, book


def iv(start: str, end: str) -> TimeInterval:
    return TimeInterval.from_bounds(DAY, start, end, TZ)


class GatedBackend:
    """Backend that waits for the test to release each submission."""

    def __init__(self, result: CommandResult) -> None:
        self.result = result
        self.gate = asyncio.Event()
        self.commands = []

    async def submit(self, command):
        self.commands.append(command)
        await self.gate.wait()
        return self.result


class FailingBackend:
    async def submit(self, command):
        raise ConnectionError("network down")


@pytest.fixture
def calendar(engine):
    """Two bookings for tm-1: 09:30-10:15 and 10:30-11:30."""
    first = book(engine, "09:30", 45)
    second = book(engine, "10:30", 60)
    controller = CalendarDragController(EngineCalendarBackend(engine), step_minutes=15, tz=TZ)
    controller.load(engine.store.bookings_for("tm-1", DAY))
    return controller, first, second


class TestHover:
    def test_move_snaps_to_grid(self, calendar):
        controller, _, second = calendar
        controller.begin_drag(second.id, DragMode.MOVE, pointer=640)
        assert controller.hover(second.id, pointer=700) == iv("11:30", "12:30")

    def test_move_clamped_to_end_of_day(self, calendar):
        controller, _, second = calendar
        controller.begin_drag(second.id, DragMode.MOVE, pointer=640)
        proposed = controller.hover(second.id, pointer=640 + 24 * 60)
        assert proposed.end == 24 * 60
        assert proposed.duration == 60

    def test_resize_start_keeps_minimum_duration(self, calendar):
        controller, _, second = calendar
        controller.begin_drag(second.id, DragMode.RESIZE_START, pointer=630)
        assert controller.hover(second.id, pointer=900) == iv("11:15", "11:30")

    def test_resize_end_keeps_minimum_duration(self, calendar):
        controller, _, second = calendar
        controller.begin_drag(second.id, DragMode.RESIZE_END, pointer=690)
        assert controller.hover(second.id, pointer=0) == iv("10:30", "10:45")

    def test_resize_end_clamped_to_midnight(self, calendar):
        controller, _, second = calendar
        controller.begin_drag(second.id, DragMode.RESIZE_END, pointer=690)
        assert controller.hover(second.id, pointer=3000).end == 24 * 60

    def test_hover_without_drag(self, calendar):
        controller, _, second = calendar
        with pytest.raises(NotFoundError):
            controller.hover(second.id, pointer=600)

    def test_cancel_drag_restores_nothing_to_commit(self, calendar):
        controller, _, second = calendar
        controller.begin_drag(second.id, DragMode.MOVE, pointer=640)
        controller.hover(second.id, pointer=700)
        controller.cancel_drag(second.id)
        assert not controller.is_locked(second.id)
        assert controller.interval_of(second.id) == iv("10:30", "11:30")


class TestDrop:
    @pytest.mark.asyncio
    async def test_accepted_resize_commits(self, calendar, engine):
        controller, _, second = calendar
        controller.begin_drag(second.id, DragMode.RESIZE_START, pointer=630)
        controller.hover(second.id, pointer=660)
        result = await controller.drop(second.id)
        assert result.ok
        assert controller.interval_of(second.id) == iv("11:00", "11:30")
        assert engine.store.get_booking(second.id).interval(TZ) == iv("11:00", "11:30")

    @pytest.mark.asyncio
    async def test_rejected_resize_rolls_back(self, calendar, engine):
        controller, first, second = calendar
        controller.begin_drag(second.id, DragMode.RESIZE_START, pointer=630)
        controller.hover(second.id, pointer=585)
        result = await controller.drop(second.id)
        assert not result.ok
        assert result.reason == REASON_BOOKING_OVERLAP
        assert result.conflicting_id == first.id
        assert controller.interval_of(second.id) == iv("10:30", "11:30")
        assert controller.last_error == REASON_BOOKING_OVERLAP
        assert engine.store.get_booking(second.id).interval(TZ) == iv("10:30", "11:30")

    @pytest.mark.asyncio
    async def test_move_onto_busy_member_rolls_back(self, calendar, engine):
        controller, _, second = calendar
        book(engine, "11:00", 60, team_member_id="tm-2")
        controller.begin_drag(second.id, DragMode.MOVE, pointer=630)
        controller.hover(second.id, pointer=630, team_member_id="tm-2")
        result = await controller.drop(second.id)
        assert not result.ok
        card = controller.card(second.id)
        assert card.team_member_id == "tm-1"
        assert card.interval == iv("10:30", "11:30")
        assert engine.store.get_booking(second.id).team_member_id == "tm-1"

    @pytest.mark.asyncio
    async def test_move_to_free_member_reassigns(self, calendar, engine):
        controller, _, second = calendar
        controller.begin_drag(second.id, DragMode.MOVE, pointer=630)
        controller.hover(second.id, pointer=630, team_member_id="tm-2")
        result = await controller.drop(second.id)
        assert result.ok
        assert controller.card(second.id).team_member_id == "tm-2"

    @pytest.mark.asyncio
    async def test_unchanged_drop_sends_nothing(self, calendar):
        controller, _, second = calendar
        controller._backend = GatedBackend(CommandResult(ok=True))
        controller.begin_drag(second.id, DragMode.MOVE, pointer=630)
        controller.hover(second.id, pointer=634)
        result = await controller.drop(second.id)
        assert result.ok
        assert controller._backend.commands == []

    @pytest.mark.asyncio
    async def test_backend_failure_rolls_back_and_unlocks(self, calendar):
        controller, _, second = calendar
        controller._backend = FailingBackend()
        controller.begin_drag(second.id, DragMode.MOVE, pointer=630)
        controller.hover(second.id, pointer=690)
        with pytest.raises(ConnectionError):
            await controller.drop(second.id)
        assert controller.interval_of(second.id) == iv("10:30", "11:30")
        assert not controller.is_locked(second.id)

    @pytest.mark.asyncio
    async def test_drop_waiting_on_checkout_lock_keeps_loop_running(self, calendar, engine):
        controller, _, second = calendar
        locked, release = threading.Event(), threading.Event()

        def checkout():
            with engine.reservations.critical_section(("tm-1", DAY)):
                locked.set()
                release.wait(timeout=5)

        holder = threading.Thread(target=checkout)
        holder.start()
        assert locked.wait(timeout=5)

        controller.begin_drag(second.id, DragMode.RESIZE_END, pointer=690)
        controller.hover(second.id, pointer=720)
        drop = asyncio.create_task(controller.drop(second.id))
        await asyncio.sleep(0.05)
        assert not drop.done()

        release.set()
        result = await drop
        holder.join()
        assert result.ok
        assert engine.store.get_booking(second.id).interval(TZ) == iv("10:30", "12:00")


class TestSingleFlight:
    @pytest.mark.asyncio
    async def test_optimistic_state_while_pending(self, calendar):
        controller, _, second = calendar
        backend = GatedBackend(CommandResult(ok=False, reason="nope"))
        controller._backend = backend
        controller.begin_drag(second.id, DragMode.MOVE, pointer=630)
        controller.hover(second.id, pointer=690)

        task = asyncio.create_task(controller.drop(second.id))
        await asyncio.sleep(0)
        assert controller.interval_of(second.id) == iv("11:30", "12:30")
        assert controller.is_locked(second.id)
        assert isinstance(backend.commands[0], Move)

        with pytest.raises(DragInProgressError):
            controller.begin_drag(second.id, DragMode.RESIZE_END, pointer=750)

        backend.gate.set()
        result = await task
        assert not result.ok
        assert controller.interval_of(second.id) == iv("10:30", "11:30")
        assert not controller.is_locked(second.id)

    def test_second_drag_on_same_card_rejected(self, calendar):
        controller, _, second = calendar
        controller.begin_drag(second.id, DragMode.MOVE, pointer=630)
        with pytest.raises(DragInProgressError):
            controller.begin_drag(second.id, DragMode.RESIZE_END, pointer=690)

    def test_other_cards_can_drag_concurrently(self, calendar):
        controller, first, second = calendar
        controller.begin_drag(second.id, DragMode.MOVE, pointer=630)
        controller.begin_drag(first.id, DragMode.MOVE, pointer=570)
        assert controller.is_locked(first.id)

    @pytest.mark.asyncio
    async def test_resize_start_command_type(self, calendar):
        controller, _, second = calendar
        backend = GatedBackend(CommandResult(ok=True))
        backend.gate.set()
        controller._backend = backend
        controller.begin_drag(second.id, DragMode.RESIZE_START, pointer=630)
        controller.hover(second.id, pointer=660)
        await controller.drop(second.id)
        assert isinstance(backend.commands[0], ResizeStart)
        assert controller.interval_of(second.id) == iv("11:00", "11:30")


class TestCreate:
    @pytest.mark.asyncio
    async def test_create_adds_card(self, calendar):
        controller, _, _ = calendar
        result = await controller.create(
            Create(team_member_id="tm-1", shop_id=SHOP, service_id="cut", interval=iv("13:00", "14:00"))
        )
        assert result.ok
        assert controller.interval_of(result.booking.id) == iv("13:00", "14:00")

    @pytest.mark.asyncio
    async def test_conflicting_create_not_shown(self, calendar):
        controller, _, _ = calendar
        result = await controller.create(
            Create(team_member_id="tm-1", shop_id=SHOP, service_id="cut", interval=iv("10:00", "11:00"))
        )
        assert not result.ok
        assert result.error_code == "CONFLICT"
        assert controller.last_error == REASON_BOOKING_OVERLAP
