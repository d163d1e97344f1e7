"""
Offline console demo: walks through client booking, hold contention and
staff calendar edits against an in-memory demo salon.

No network and no database. Designed for live demo walkthroughs.

Usage:
    python console_demo.py
    python console_demo.py --scenario contention
    python console_demo.py --scenario calendar
"""

import argparse
import asyncio
import sys
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timedelta, timezone
from threading import Barrier

from booking_engine.calendar import (
    CalendarDragController,
    DragMode,
    EngineCalendarBackend,
)
from booking_engine.config import settings
from booking_engine.engine import BookingEngine
from booking_engine.tools.availability import query_availability
from booking_engine.tools.booking import (
    confirm_booking,
    create_admin_booking,
    get_calendar_bookings,
    update_booking_status,
)
from booking_engine.tools.catalog import DEMO_SHOP_ID, seed_demo_shop
from booking_engine.tools.holds import create_hold, create_hold_for_slot

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"


class DemoClock:
    """Wall clock that the demo can fast-forward to show hold expiry."""

    def __init__(self) -> None:
        self._offset = timedelta()

    def __call__(self) -> datetime:
        return datetime.now(timezone.utc) + self._offset

    def advance(self, minutes: int) -> None:
        self._offset += timedelta(minutes=minutes)


def _next_weekday(start: date) -> date:
    day = start + timedelta(days=1)
    while day.weekday() > 4:
        day += timedelta(days=1)
    return day


class ConsoleSession:
    """Runs the demo scenarios against a fresh engine."""

    SCENARIOS = ("booking", "contention", "calendar")

    def __init__(self) -> None:
        self.clock = DemoClock()
        self.engine = BookingEngine(clock=self.clock)
        self.shop = seed_demo_shop(self.engine.store, settings.scheduling.shop_timezone)
        self.day = _next_weekday(date.today()).isoformat()

    def say(self, who: str, text: str, colour: str = GREEN) -> None:
        print(f"{colour}{BOLD}[{who}]{RESET} {colour}{text}{RESET}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def banner(self, title: str) -> None:
        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  {settings.app_name.upper()} - {title}{RESET}")
        print(f"{BOLD}  Shop: {self.shop.name} ({self.shop.timezone}){RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

    def _outcome(self, who: str, result: dict) -> None:
        if result["success"]:
            self.say(who, result["message"])
        else:
            colour = YELLOW if result.get("refresh_availability") or result.get("no_op") else RED
            self.say(who, f"{result['message']} ({result.get('error_code')})", colour)

    def _print_slots(self, member: str, service: str, session_id=None, limit: int = 6) -> dict:
        result = query_availability(
            member, service, self.day, DEMO_SHOP_ID, session_id=session_id, engine=self.engine
        )
        if not result["success"]:
            self._outcome("Availability", result)
            return result
        self.system_log(result["message"])
        for slot in result["slots"][:limit]:
            mark = f"{GREEN}free{RESET}" if slot["is_available"] else f"{RED}taken{RESET}"
            print(f"     {slot['display_time']:>8} - {slot['display_end_time']:<8} {slot['team_member_id']:<8} {mark}")
        return result

    # ------------------------------------------------------------------ #
    # Scenarios
    # ------------------------------------------------------------------ #

    def run_scenario(self, scenario: str) -> None:
        handler = getattr(self, f"_scenario_{scenario}", None)
        if handler is None:
            print(f"{RED}Unknown scenario: {scenario}{RESET}")
            return
        self.banner(f"Scenario: {scenario}")
        handler()
        print(f"\n{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  Scenario '{scenario}' complete.{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

    def _scenario_booking(self) -> None:
        self.say("Client", f"Looking for a women's cut with anyone on {self.day}", BLUE)
        slots = self._print_slots("any", "womens-cut")
        first = next(s for s in slots["slots"] if s["is_available"])

        self.say("Client", f"Selecting {first['display_time']} with {first['team_member_id']}", BLUE)
        self._outcome(
            "Hold",
            create_hold_for_slot(first["slot_id"], DEMO_SHOP_ID, "womens-cut", "web-1", engine=self.engine),
        )
        self._print_slots(first["team_member_id"], "womens-cut", limit=3)

        result = confirm_booking("web-1", client_id="client-42", client_note="Fringe trim too", engine=self.engine)
        self._outcome("Checkout", result)
        if result["success"]:
            self.system_log(f"Price: ${result['details']['price']}")

    def _scenario_contention(self) -> None:
        self.say("System", "Two clients submit the same slot at once", BLUE)
        barrier = Barrier(2)

        def attempt(session_id: str) -> dict:
            barrier.wait()
            return create_hold(
                "tm-alex", DEMO_SHOP_ID, "womens-cut", self.day, "10:00", 60, session_id, engine=self.engine
            )

        with ThreadPoolExecutor(max_workers=2) as pool:
            results = dict(zip(("web-a", "web-b"), pool.map(attempt, ("web-a", "web-b"))))
        for session_id, result in results.items():
            self._outcome(session_id, result)

        winner = next(sid for sid, r in results.items() if r["success"])
        loser = next(sid for sid, r in results.items() if not r["success"])

        minutes = settings.holds.ttl_minutes + 1
        self.say("System", f"{winner} walks away; fast-forwarding {minutes} minutes", BLUE)
        self.clock.advance(minutes)
        self._outcome(winner, confirm_booking(winner, engine=self.engine))

        self.say("System", f"{loser} retries the freed slot", BLUE)
        self._outcome(
            loser,
            create_hold("tm-alex", DEMO_SHOP_ID, "womens-cut", self.day, "10:00", 60, loser, engine=self.engine),
        )
        self._outcome(loser, confirm_booking(loser, engine=self.engine))

    def _scenario_calendar(self) -> None:
        first = create_admin_booking("tm-sam", DEMO_SHOP_ID, "mens-cut", self.day, "09:30", duration=45,
                                     engine=self.engine)
        second = create_admin_booking("tm-sam", DEMO_SHOP_ID, "mens-cut", self.day, "10:30", duration=60,
                                      engine=self.engine)
        self._outcome("Front desk", first)
        self._outcome("Front desk", second)
        asyncio.run(self._drag_walkthrough(second["details"]["booking_id"]))

        self._outcome("Front desk", update_booking_status(first["details"]["booking_id"], "completed",
                                                          engine=self.engine))
        self._outcome("Front desk", update_booking_status(first["details"]["booking_id"], "cancelled",
                                                          engine=self.engine))

        calendar = get_calendar_bookings(self.day, self.day, engine=self.engine)
        self.system_log(calendar["message"])
        for record in calendar["bookings"]:
            print(f"     {record['booking_number']} {record['team_member_id']:<8} "
                  f"{record['start_time']}-{record['end_time']} {record['status']}")

    async def _drag_walkthrough(self, booking_id: str) -> None:
        controller = CalendarDragController(EngineCalendarBackend(self.engine), tz=self.shop.timezone)
        controller.load(self.engine.store.bookings_for("tm-sam", date.fromisoformat(self.day)))

        self.say("Calendar", f"Showing {controller.interval_of(booking_id)}", BLUE)
        controller.begin_drag(booking_id, DragMode.RESIZE_START, pointer=630)
        proposed = controller.hover(booking_id, pointer=600)
        self.say("Calendar", f"Resize start to {proposed.start_label}", BLUE)
        result = await controller.drop(booking_id)
        self._report_drop(controller, booking_id, result)

        controller.begin_drag(booking_id, DragMode.RESIZE_START, pointer=630)
        proposed = controller.hover(booking_id, pointer=660)
        self.say("Calendar", f"Resize start to {proposed.start_label}", BLUE)
        result = await controller.drop(booking_id)
        self._report_drop(controller, booking_id, result)

    def _report_drop(self, controller: CalendarDragController, booking_id: str, result) -> None:
        if result.ok:
            self.say("Calendar", f"Saved: {controller.interval_of(booking_id)}")
        else:
            self.say("Calendar", f"Rolled back to {controller.interval_of(booking_id)}: {result.reason}", YELLOW)

    def run(self) -> None:
        for scenario in self.SCENARIOS:
            self.run_scenario(scenario)


def main() -> None:
    parser = argparse.ArgumentParser(description="Salon booking engine console demo")
    parser.add_argument(
        "--scenario",
        choices=ConsoleSession.SCENARIOS,
        help="Run a single scenario instead of all of them",
    )
    args = parser.parse_args()

    session = ConsoleSession()
    try:
        if args.scenario:
            session.run_scenario(args.scenario)
        else:
            session.run()
    except KeyboardInterrupt:
        print(f"\n{DIM}Demo interrupted.{RESET}")
        sys.exit(0)
    finally:
        session.engine.shutdown()


if __name__ == "__main__":
    main()
