"""Demo salon catalogue used by the console demo and the test fixtures."""

import logging
from datetime import time
from decimal import Decimal

from booking_engine.schemas.scheduling_schema import (
    AvailabilityWindow,
    Service,
    ServiceVariant,
    Shop,
    TeamMember,
    TeamMemberService,
)
from booking_engine.scheduling.store import SchedulingStore

logger = logging.getLogger(__name__)

DEMO_SHOP_ID = "shop-fitzroy"

SERVICE_CATALOG: dict[str, dict] = {
    "womens-cut": {
        "name": "Women's Cut & Blow Dry",
        "duration": 60,
        "price": "85.00",
        "variants": {
            "long-hair": {"name": "Long hair", "duration": 15, "price": "20.00"},
        },
    },
    "mens-cut": {
        "name": "Men's Cut",
        "duration": 30,
        "price": "45.00",
        "variants": {},
    },
    "colour": {
        "name": "Full Colour",
        "duration": 90,
        "price": "160.00",
        "variants": {
            "toner": {"name": "Add toner", "duration": 15, "price": "35.00"},
        },
    },
}

# member id -> (name, role, {service_id: (duration override, price override)})
TEAM: dict[str, tuple[str, str, dict[str, tuple]]] = {
    "tm-alex": ("Alex", "senior stylist", {
        "womens-cut": (None, "95.00"),
        "colour": (None, None),
    }),
    "tm-sam": ("Sam", "stylist", {
        "womens-cut": (75, None),
        "mens-cut": (None, None),
    }),
    "tm-jo": ("Jo", "barber", {
        "mens-cut": (None, "40.00"),
    }),
}

# Monday to Saturday, 09:00-17:00
OPENING_WEEKDAYS = range(6)
OPENING_HOURS = (time(9, 0), time(17, 0))


def seed_demo_shop(store: SchedulingStore, timezone: str = "Australia/Melbourne") -> Shop:
    """Populate ``store`` with one shop, its services and three team members."""
    shop = store.add_shop(Shop(id=DEMO_SHOP_ID, name="Fitzroy Hair Studio", timezone=timezone))

    for service_id, info in SERVICE_CATALOG.items():
        variants = [
            ServiceVariant(
                id=f"{service_id}:{variant_id}",
                service_id=service_id,
                name=v["name"],
                duration_modifier=v["duration"],
                price_modifier=Decimal(v["price"]),
            )
            for variant_id, v in info["variants"].items()
        ]
        store.add_service(
            Service(
                id=service_id,
                name=info["name"],
                base_duration=info["duration"],
                base_price=Decimal(info["price"]),
            ),
            variants,
        )

    for member_id, (name, role, services) in TEAM.items():
        store.add_team_member(TeamMember(id=member_id, name=name, role=role, shop_ids=[shop.id]))
        for service_id, (duration, price) in services.items():
            store.add_member_service(
                TeamMemberService(
                    team_member_id=member_id,
                    service_id=service_id,
                    duration=duration,
                    price=Decimal(price) if price else None,
                )
            )
        for weekday in OPENING_WEEKDAYS:
            store.add_window(
                AvailabilityWindow(
                    id=f"{member_id}-w{weekday}",
                    team_member_id=member_id,
                    shop_id=shop.id,
                    start_time=OPENING_HOURS[0],
                    end_time=OPENING_HOURS[1],
                    weekday=weekday,
                )
            )

    logger.debug("Seeded demo shop %s with %d team members", shop.id, len(TEAM))
    return shop
