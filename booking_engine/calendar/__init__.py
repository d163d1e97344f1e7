from booking_engine.calendar.backend import CalendarBackend, EngineCalendarBackend
from booking_engine.calendar.commands import (
    CommandResult,
    Create,
    DragMode,
    Move,
    ResizeEnd,
    ResizeStart,
)
from booking_engine.calendar.drag_controller import (
    CalendarDragController,
    CardState,
    DragInProgressError,
)

__all__ = [
    "CalendarDragController",
    "CalendarBackend",
    "EngineCalendarBackend",
    "CardState",
    "CommandResult",
    "Create",
    "DragInProgressError",
    "DragMode",
    "Move",
    "ResizeEnd",
    "ResizeStart",
]
