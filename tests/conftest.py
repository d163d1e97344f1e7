"""Shared test fixtures and helpers."""

from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Optional

import pytest

from booking_engine.engine import BookingEngine
from booking_engine.schemas.scheduling_schema import (
    AvailabilityWindow,
    BlockedTime,
    Service,
    ServiceVariant,
    Shop,
    TeamMember,
    TeamMemberService,
)
from booking_engine.scheduling.store import SchedulingStore

# A Tuesday.
DAY = date(2025, 3, 18)
SHOP = "shop-1"
TZ = "Australia/Melbourne"


class FrozenClock:
    """Injectable clock that only moves when a test says so."""

    def __init__(self, now: Optional[datetime] = None) -> None:
        self.now = now or datetime(2025, 3, 17, 22, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: float = 0, seconds: float = 0) -> None:
        self.now += timedelta(minutes=minutes, seconds=seconds)


def add_window(
    store: SchedulingStore,
    team_member_id: str = "tm-1",
    start: str = "09:00",
    end: str = "17:00",
    day: date = DAY,
    shop_id: str = SHOP,
) -> AvailabilityWindow:
    """Helper to add a single-date availability window."""
    return store.add_window(
        AvailabilityWindow(
            id=f"w-{team_member_id}-{day}-{start}",
            team_member_id=team_member_id,
            shop_id=shop_id,
            start_time=time.fromisoformat(start),
            end_time=time.fromisoformat(end),
            recurring=False,
            on_date=day,
        )
    )


def add_block(
    store: SchedulingStore,
    team_member_id: str = "tm-1",
    start: str = "12:00",
    end: str = "13:00",
    day: date = DAY,
    shop_id: Optional[str] = None,
) -> BlockedTime:
    """Helper to add blocked time."""
    return store.add_block(
        BlockedTime(
            id=f"b-{team_member_id}-{day}-{start}",
            team_member_id=team_member_id,
            day=day,
            start_time=time.fromisoformat(start),
            end_time=time.fromisoformat(end),
            shop_id=shop_id,
            reason="lunch",
        )
    )


def seed_store(store: SchedulingStore) -> SchedulingStore:
    """One shop, two team members and a 60 minute cut with a long-hair variant."""
    store.add_shop(Shop(id=SHOP, name="Test Salon", timezone=TZ))
    store.add_team_member(TeamMember(id="tm-1", name="Alex", shop_ids=[SHOP]))
    store.add_team_member(TeamMember(id="tm-2", name="Sam", shop_ids=[SHOP]))
    store.add_team_member(TeamMember(id="tm-away", name="Jo", shop_ids=["shop-2"]))
    store.add_service(
        Service(id="cut", name="Cut", base_duration=60, base_price=Decimal("50.00")),
        [
            ServiceVariant(
                id="cut-long",
                service_id="cut",
                name="Long hair",
                duration_modifier=30,
                price_modifier=Decimal("15.00"),
            )
        ],
    )
    store.add_service(Service(id="trim", name="Trim", base_duration=30, base_price=Decimal("25.00")))
    store.add_member_service(
        TeamMemberService(team_member_id="tm-2", service_id="cut", price=Decimal("70.00"))
    )
    return store


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def engine(clock):
    engine = BookingEngine(
        store=seed_store(SchedulingStore()),
        clock=clock,
        hold_ttl_minutes=10,
        slot_step_minutes=30,
    )
    yield engine
    engine.shutdown()


@pytest.fixture
def store(engine):
    return engine.store


@pytest.fixture
def open_day(engine):
    """Both team members available 09:00-17:00 on DAY."""
    add_window(engine.store, "tm-1")
    add_window(engine.store, "tm-2")
    return engine


def book(
    engine: BookingEngine,
    start: str,
    duration: int = 60,
    team_member_id: str = "tm-1",
    service_id: str = "cut",
    day: date = DAY,
):
    """Helper to place an admin booking directly through the engine."""
    return engine.bookings.admin_create(
        team_member_id, SHOP, service_id, day, start, duration=duration
    )
