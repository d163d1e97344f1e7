"""
Availability calculation - turns (team member, service, date, shop) into slots.

Steps:
    1. Resolve the service duration (member override or base, plus variant).
    2. Collect the member's windows for the date at the shop.
    3. Subtract blocked time, which may split a window.
    4. Walk each remaining sub-window on the step grid, anchored to its start.
    5. Mark candidates that overlap an occupying booking or another
       session's live hold as unavailable.

Reads are best-effort snapshots. Nothing here takes the reservation lock;
correctness on contention comes from ``ReservationManager.create_hold``.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Protocol, Union

from booking_engine.config import settings
from booking_engine.exceptions import ValidationError
from booking_engine.schemas.booking_schema import AvailabilitySlot, Hold
from booking_engine.scheduling.interval import TimeInterval
from booking_engine.scheduling.store import SchedulingStore
from booking_engine.utils import parse_date, parse_wall_time

logger = logging.getLogger(__name__)

SLOT_ID_SEPARATOR = "_"


class HoldSource(Protocol):
    def live_holds(
        self, team_member_id: str, day: date, exclude_session: Optional[str] = None
    ) -> list[Hold]: ...


@dataclass(frozen=True)
class ResolvedService:
    """Duration and price for one (member, service, variant) combination."""

    duration: int
    price: Decimal


def resolve_service(
    store: SchedulingStore,
    team_member_id: str,
    service_id: str,
    variant_id: Optional[str] = None,
) -> ResolvedService:
    """Resolve duration/price: member override or base value, plus variant modifier."""
    service = store.get_service(service_id)
    link = store.get_member_service(team_member_id, service_id)

    duration = service.base_duration
    price = service.base_price
    if link is not None:
        if link.duration is not None:
            duration = link.duration
        if link.price is not None:
            price = link.price

    if variant_id:
        variant = store.get_variant(variant_id)
        if variant.service_id != service_id:
            raise ValidationError(f"Variant {variant_id} does not belong to service {service_id}")
        duration += variant.duration_modifier
        price += variant.price_modifier

    if duration < 1:
        raise ValidationError(f"Resolved duration for service {service_id} is {duration} minutes")
    return ResolvedService(duration=duration, price=price)


def make_slot_id(team_member_id: str, day: date, start: int) -> str:
    """Stable slot reference derived from (team member, date, start)."""
    return f"{team_member_id}{SLOT_ID_SEPARATOR}{day:%Y%m%d}{SLOT_ID_SEPARATOR}{start // 60:02d}{start % 60:02d}"


def parse_slot_id(slot_id: str) -> tuple[str, date, int]:
    """Inverse of ``make_slot_id``. Team member IDs may themselves contain the separator."""
    try:
        member, day_part, time_part = slot_id.rsplit(SLOT_ID_SEPARATOR, 2)
        day = datetime.strptime(day_part, "%Y%m%d").date()
        start = parse_wall_time(f"{time_part[:2]}:{time_part[2:]}")
    except (ValueError, ValidationError):
        raise ValidationError(f"Malformed slot id {slot_id!r}") from None
    if not member or len(time_part) != 4:
        raise ValidationError(f"Malformed slot id {slot_id!r}")
    return member, day, start


class AvailabilityCalculator:
    """Computes candidate slots for a team member on one date."""

    def __init__(
        self,
        store: SchedulingStore,
        holds: HoldSource,
        step_minutes: Optional[int] = None,
    ) -> None:
        self._store = store
        self._holds = holds
        self.step_minutes = step_minutes or settings.scheduling.slot_step_minutes
        if self.step_minutes < 1:
            raise ValueError(f"step_minutes must be >= 1, got {self.step_minutes}")

    def open_intervals(self, team_member_id: str, shop_id: str, day: date) -> list[TimeInterval]:
        """Availability windows for the date with blocked time removed."""
        tz = self._store.timezone_for(shop_id)
        windows = self._store.windows_for(team_member_id, shop_id, day)
        if not windows:
            return []

        blocks = [
            TimeInterval.from_bounds(day, b.start_time, b.end_time, tz)
            for b in self._store.blocks_for(team_member_id, shop_id, day)
        ]
        pieces: list[TimeInterval] = []
        for window in windows:
            span = TimeInterval.from_bounds(day, window.start_time, window.end_time, tz)
            pieces.extend(span.subtract(blocks))
        return sorted(pieces)

    def is_within_availability(
        self, team_member_id: str, shop_id: str, candidate: TimeInterval
    ) -> bool:
        return any(
            piece.contains(candidate)
            for piece in self.open_intervals(team_member_id, shop_id, candidate.day)
        )

    def slots(
        self,
        team_member_id: str,
        shop_id: str,
        service_id: str,
        day: Union[date, str],
        variant_id: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> list[AvailabilitySlot]:
        """
        Candidate slots for one member, ordered by start time.

        Holds owned by ``session_id`` do not block, so a client sees the
        slot it is currently holding as available.
        """
        day = parse_date(day)
        link = self._store.get_member_service(team_member_id, service_id)
        if link is not None and not link.is_available:
            logger.debug("Member %s does not offer service %s", team_member_id, service_id)
            return []

        duration = resolve_service(self._store, team_member_id, service_id, variant_id).duration
        pieces = self.open_intervals(team_member_id, shop_id, day)
        if not pieces:
            return []

        tz = pieces[0].tz
        occupied = [
            b.interval(tz) for b in self._store.bookings_for(team_member_id, day)
        ]
        occupied += [
            h.interval(tz)
            for h in self._holds.live_holds(team_member_id, day, exclude_session=session_id)
        ]

        seen: set[int] = set()
        result: list[AvailabilitySlot] = []
        for piece in pieces:
            start = piece.start
            while start + duration <= piece.end:
                if start not in seen:
                    seen.add(start)
                    candidate = TimeInterval(day, start, start + duration, tz)
                    taken = any(candidate.overlaps(iv) for iv in occupied)
                    result.append(
                        AvailabilitySlot(
                            slot_id=make_slot_id(team_member_id, day, start),
                            team_member_id=team_member_id,
                            shop_id=shop_id,
                            day=day,
                            start=start,
                            end=start + duration,
                            is_available=not taken,
                        )
                    )
                start += self.step_minutes

        result.sort(key=lambda s: s.start)
        logger.debug(
            "Computed %d slot(s) for %s on %s (%d available)",
            len(result), team_member_id, day, sum(s.is_available for s in result),
        )
        return result

    def any_member_slots(
        self,
        shop_id: str,
        service_id: str,
        day: Union[date, str],
        variant_id: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> list[AvailabilitySlot]:
        """
        Merged slots for "any professional".

        One entry per start time: the first member (by id) with the slot
        free, or an unavailable entry when every member is taken. Each
        member's slots are sized by that member's resolved duration, so
        entries in the merged list may differ in length.
        """
        day = parse_date(day)
        by_start: dict[int, AvailabilitySlot] = {}
        for member in self._store.team_members_offering(service_id, shop_id):
            for slot in self.slots(
                member.id, shop_id, service_id, day, variant_id=variant_id, session_id=session_id
            ):
                current = by_start.get(slot.start)
                if current is None or (slot.is_available and not current.is_available):
                    by_start[slot.start] = slot
        merged = [by_start[start] for start in sorted(by_start)]
        logger.debug("Merged %d start time(s) across members on %s", len(merged), day)
        return merged

