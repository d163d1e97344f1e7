"""Tests for the demo catalogue, the console demo and session logging."""

import io
import logging
from decimal import Decimal

from booking_engine.engine import BookingEngine
from booking_engine.logging_context import (
    NO_SESSION,
    SessionIdFilter,
    get_session_id,
    get_session_logger,
    make_handler,
    session_context,
)
from booking_engine.scheduling.availability import resolve_service
from booking_engine.tools.booking import update_booking_status
from booking_engine.tools.catalog import DEMO_SHOP_ID, SERVICE_CATALOG, TEAM, seed_demo_shop
from booking_engine.tools.holds import create_hold
from console_demo import ConsoleSession
from tests.conftest import SHOP, book


class TestDemoCatalog:
    def setup_method(self):
        self.engine = BookingEngine()
        seed_demo_shop(self.engine.store)

    def test_everything_seeded(self):
        store = self.engine.store
        assert store.get_shop(DEMO_SHOP_ID).timezone == "Australia/Melbourne"
        assert set(store.services) == set(SERVICE_CATALOG)
        assert set(store.team_members) == set(TEAM)

    def test_member_overrides(self):
        store = self.engine.store
        assert resolve_service(store, "tm-alex", "womens-cut").price == Decimal("95.00")
        assert resolve_service(store, "tm-sam", "womens-cut").duration == 75
        assert resolve_service(store, "tm-jo", "mens-cut").price == Decimal("40.00")

    def test_variant_ids_are_namespaced(self):
        variant = self.engine.store.get_variant("womens-cut:long-hair")
        assert variant.service_id == "womens-cut"

    def test_open_monday_to_saturday(self):
        from datetime import date

        monday, sunday = date(2025, 3, 17), date(2025, 3, 23)
        assert self.engine.calculator.slots("tm-jo", DEMO_SHOP_ID, "mens-cut", monday)
        assert self.engine.calculator.slots("tm-jo", DEMO_SHOP_ID, "mens-cut", sunday) == []


class TestConsoleDemo:
    def test_booking_scenario(self, capsys):
        session = ConsoleSession()
        session.run_scenario("booking")
        out = capsys.readouterr().out
        assert "Booking confirmed" in out
        assert "Scenario 'booking' complete" in out

    def test_contention_scenario_has_one_winner(self, capsys):
        session = ConsoleSession()
        session.run_scenario("contention")
        out = capsys.readouterr().out
        assert "CONFLICT" in out
        assert "HOLD_EXPIRED" in out

    def test_calendar_scenario_rolls_back(self, capsys):
        session = ConsoleSession()
        session.run_scenario("calendar")
        out = capsys.readouterr().out
        assert "Rolled back" in out
        assert "INVALID_TRANSITION" in out

    def test_unknown_scenario(self, capsys):
        ConsoleSession().run_scenario("nope")
        assert "Unknown scenario" in capsys.readouterr().out


class TestSessionLogging:
    def test_session_id_attached_to_records(self, caplog):
        logger = get_session_logger("booking_engine.test")
        with caplog.at_level(logging.INFO, logger="booking_engine.test"):
            with session_context("sess-123"):
                logger.info("hello")
        assert caplog.records[-1].session_id == "sess-123"

    def test_context_resets_after_block(self):
        with session_context("sess-123"):
            assert get_session_id() == "sess-123"
        assert get_session_id() == NO_SESSION

    def test_filter_added_once(self):
        logger = get_session_logger("booking_engine.test.once")
        get_session_logger("booking_engine.test.once")
        assert sum(isinstance(f, SessionIdFilter) for f in logger.filters) == 1

    def test_formatted_lines_show_checkout_session(self, open_day):
        stream = io.StringIO()
        handler = make_handler(stream)
        logger = logging.getLogger("booking_engine")
        logger.addHandler(handler)
        previous_level = logger.level
        logger.setLevel(logging.INFO)
        try:
            create_hold("tm-1", SHOP, "cut", "2025-03-18", "10:00", 60, "web-7", engine=open_day)
            update_booking_status(
                book(open_day, "13:00").id, "cancelled", engine=open_day
            )
        finally:
            logger.removeHandler(handler)
            logger.setLevel(previous_level)

        lines = stream.getvalue().splitlines()
        assert any("[web-7]: Hold created" in line for line in lines)
        assert any(f"[{NO_SESSION}]: Booking" in line for line in lines)
        assert not any("[web-7]: Booking" in line for line in lines)
