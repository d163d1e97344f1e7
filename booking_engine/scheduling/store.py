"""
In-memory scheduling store.

Holds the catalog (shops, staff, services), availability windows, blocked
time and bookings. In production this is backed by the relational store;
the engine only depends on the lookups and CRUD methods below.
"""

import logging
import threading
import uuid
from datetime import date
from typing import Iterable, Optional

from booking_engine.config import settings
from booking_engine.exceptions import NotFoundError
from booking_engine.schemas.booking_schema import Booking, BookingStatus, OCCUPYING_STATUSES
from booking_engine.schemas.scheduling_schema import (
    AvailabilityWindow,
    BlockedTime,
    Service,
    ServiceVariant,
    Shop,
    TeamMember,
    TeamMemberService,
)

logger = logging.getLogger(__name__)

BOOKING_NUMBER_HEX_DIGITS = 6


class SchedulingStore:
    """Thread-safe in-memory source of truth for catalog and bookings."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self.shops: dict[str, Shop] = {}
        self.team_members: dict[str, TeamMember] = {}
        self.services: dict[str, Service] = {}
        self.variants: dict[str, ServiceVariant] = {}
        self.member_services: dict[tuple[str, str], TeamMemberService] = {}
        self.windows: dict[str, AvailabilityWindow] = {}
        self.blocks: dict[str, BlockedTime] = {}
        self._bookings: dict[str, Booking] = {}

    # ------------------------------------------------------------------ #
    # Catalog
    # ------------------------------------------------------------------ #

    def add_shop(self, shop: Shop) -> Shop:
        self.shops[shop.id] = shop
        return shop

    def add_team_member(self, member: TeamMember) -> TeamMember:
        self.team_members[member.id] = member
        return member

    def add_service(self, service: Service, variants: Iterable[ServiceVariant] = ()) -> Service:
        self.services[service.id] = service
        for variant in variants:
            self.variants[variant.id] = variant
        return service

    def add_member_service(self, link: TeamMemberService) -> TeamMemberService:
        self.member_services[(link.team_member_id, link.service_id)] = link
        return link

    def add_window(self, window: AvailabilityWindow) -> AvailabilityWindow:
        self.windows[window.id] = window
        return window

    def add_block(self, block: BlockedTime) -> BlockedTime:
        self.blocks[block.id] = block
        return block

    def get_shop(self, shop_id: str) -> Shop:
        try:
            return self.shops[shop_id]
        except KeyError:
            raise NotFoundError(f"Shop {shop_id} not found") from None

    def get_team_member(self, team_member_id: str) -> TeamMember:
        try:
            return self.team_members[team_member_id]
        except KeyError:
            raise NotFoundError(f"Team member {team_member_id} not found") from None

    def get_service(self, service_id: str) -> Service:
        try:
            return self.services[service_id]
        except KeyError:
            raise NotFoundError(f"Service {service_id} not found") from None

    def get_variant(self, variant_id: str) -> ServiceVariant:
        try:
            return self.variants[variant_id]
        except KeyError:
            raise NotFoundError(f"Service variant {variant_id} not found") from None

    def get_member_service(self, team_member_id: str, service_id: str) -> Optional[TeamMemberService]:
        return self.member_services.get((team_member_id, service_id))

    def team_members_offering(self, service_id: str, shop_id: str) -> list[TeamMember]:
        """Active members assigned to the shop who have not opted out of the service."""
        members = []
        for member in self.team_members.values():
            if not member.works_at(shop_id):
                continue
            link = self.get_member_service(member.id, service_id)
            if link is not None and not link.is_available:
                continue
            members.append(member)
        return sorted(members, key=lambda m: m.id)

    def timezone_for(self, shop_id: str) -> str:
        shop = self.shops.get(shop_id)
        return shop.timezone if shop else settings.scheduling.shop_timezone

    def windows_for(self, team_member_id: str, shop_id: str, day: date) -> list[AvailabilityWindow]:
        return sorted(
            (
                w for w in self.windows.values()
                if w.team_member_id == team_member_id
                and w.shop_id == shop_id
                and w.applies_to(day)
            ),
            key=lambda w: (w.start_time, w.end_time),
        )

    def blocks_for(self, team_member_id: str, shop_id: str, day: date) -> list[BlockedTime]:
        return [
            b for b in self.blocks.values()
            if b.team_member_id == team_member_id and b.applies_to(day, shop_id)
        ]

    # ------------------------------------------------------------------ #
    # Bookings
    # ------------------------------------------------------------------ #

    def next_booking_number(self) -> str:
        prefix = settings.scheduling.booking_number_prefix
        with self._lock:
            taken = {b.booking_number for b in self._bookings.values()}
            while True:
                number = f"{prefix}-{uuid.uuid4().hex[:BOOKING_NUMBER_HEX_DIGITS].upper()}"
                if number not in taken:
                    return number

    def add_booking(self, booking: Booking) -> Booking:
        with self._lock:
            if booking.id in self._bookings:
                raise ValueError(f"Booking {booking.id} already exists")
            self._bookings[booking.id] = booking
        logger.info("Booking stored: %s (%s)", booking.booking_number, booking.id)
        return booking

    def get_booking(self, booking_id: str) -> Booking:
        with self._lock:
            booking = self._bookings.get(booking_id)
        if booking is None:
            raise NotFoundError(f"Booking {booking_id} not found")
        return booking

    def save_booking(self, booking: Booking) -> Booking:
        """Replace an existing booking record."""
        with self._lock:
            if booking.id not in self._bookings:
                raise NotFoundError(f"Booking {booking.id} not found")
            self._bookings[booking.id] = booking
        return booking

    def delete_booking(self, booking_id: str) -> Booking:
        with self._lock:
            booking = self._bookings.pop(booking_id, None)
        if booking is None:
            raise NotFoundError(f"Booking {booking_id} not found")
        logger.info("Booking deleted: %s", booking.booking_number)
        return booking

    def bookings_for(
        self,
        team_member_id: str,
        day: date,
        statuses: Optional[frozenset[BookingStatus]] = OCCUPYING_STATUSES,
    ) -> list[Booking]:
        """Bookings for one member on one day, by default only those occupying the calendar."""
        with self._lock:
            found = [
                b for b in self._bookings.values()
                if b.team_member_id == team_member_id
                and b.day == day
                and (statuses is None or b.status in statuses)
            ]
        return sorted(found, key=lambda b: b.start_time)

    def bookings_between(
        self,
        start: date,
        end: date,
        team_member_id: Optional[str] = None,
        status: Optional[BookingStatus] = None,
    ) -> list[Booking]:
        """Bookings in an inclusive date range, for the calendar views."""
        with self._lock:
            found = [
                b for b in self._bookings.values()
                if start <= b.day <= end
                and (team_member_id is None or b.team_member_id == team_member_id)
                and (status is None or b.status == status)
            ]
        return sorted(found, key=lambda b: (b.day, b.start_time, b.team_member_id))

    def reset(self) -> None:
        """Clear all data. Used by test fixtures for isolation."""
        with self._lock:
            self.shops.clear()
            self.team_members.clear()
            self.services.clear()
            self.variants.clear()
            self.member_services.clear()
            self.windows.clear()
            self.blocks.clear()
            self._bookings.clear()
