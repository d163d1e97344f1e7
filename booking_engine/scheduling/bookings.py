"""
Booking writes: hold promotion, admin creation, status changes, reschedules.

Each write re-validates through ``ConflictResolver`` inside the
reservation critical section for every calendar it touches, so a booking
can never be committed on top of a concurrent hold or booking. Edits that
lose a race are rejected, never silently applied over the winner.
"""

import uuid
from datetime import date
from typing import Optional, Union

from booking_engine.exceptions import ValidationError
from booking_engine.logging_context import get_session_logger
from booking_engine.schemas.booking_schema import Booking, BookingStatus, Hold, OCCUPYING_STATUSES
from booking_engine.scheduling.availability import resolve_service
from booking_engine.scheduling.conflicts import ConflictResolver
from booking_engine.scheduling.interval import TimeInterval
from booking_engine.scheduling.reservations import ReservationManager
from booking_engine.scheduling.state_machine import BookingStateMachine
from booking_engine.scheduling.store import SchedulingStore
from booking_engine.utils import parse_date, to_time

logger = get_session_logger(__name__)


class BookingService:
    """Creates and edits bookings under the engine's conflict rules."""

    def __init__(
        self,
        store: SchedulingStore,
        reservations: ReservationManager,
        resolver: ConflictResolver,
        state_machine: Optional[BookingStateMachine] = None,
    ) -> None:
        self._store = store
        self._reservations = reservations
        self._resolver = resolver
        self.state_machine = state_machine or BookingStateMachine()

    def _new_booking(self, **fields) -> Booking:
        now = self._reservations.now()
        return Booking(
            id=uuid.uuid4().hex,
            booking_number=self._store.next_booking_number(),
            status=self.state_machine.INITIAL_STATE,
            created_at=now,
            updated_at=now,
            **fields,
        )

    # ------------------------------------------------------------------ #
    # Creation
    # ------------------------------------------------------------------ #

    def confirm_hold(
        self,
        session_id: str,
        client_id: Optional[str] = None,
        variant_id: Optional[str] = None,
        client_note: Optional[str] = None,
    ) -> Booking:
        """
        Promote a session's hold into a confirmed booking.

        The hold's earlier success is not trusted: the placement is checked
        again against bookings, other sessions' holds and availability.
        ``variant_id`` defaults to the variant the hold was taken for, and
        the resolved service must fill exactly the held interval.

        Raises:
            NotFoundError: The session holds nothing.
            ExpiredHoldError: The hold's TTL has elapsed.
            ValidationError: The resolved duration differs from the hold's.
            ConflictError: The slot was taken since the hold was created.
        """
        hold = self._reservations.require_live_hold(session_id)
        while True:
            key = (hold.team_member_id, hold.day)
            with self._reservations.critical_section(key):
                hold = self._reservations.require_live_hold(session_id)
                if (hold.team_member_id, hold.day) == key:
                    booking = self._promote(hold, client_id, variant_id, client_note)
                    break
            logger.debug("Hold for session %s moved to another calendar, relocking", session_id)

        logger.info("Hold promoted to booking %s on %s", booking.booking_number, booking.interval())
        return booking

    def _promote(
        self,
        hold: Hold,
        client_id: Optional[str],
        variant_id: Optional[str],
        client_note: Optional[str],
    ) -> Booking:
        # Caller holds the critical section for the hold's calendar.
        variant_id = variant_id if variant_id is not None else hold.variant_id
        resolved = resolve_service(self._store, hold.team_member_id, hold.service_id, variant_id)
        if resolved.duration != hold.duration:
            raise ValidationError(
                f"Hold covers {hold.duration} minutes but the selected service takes "
                f"{resolved.duration}; hold the slot again for the new service"
            )

        tz = self._store.timezone_for(hold.shop_id)
        self._resolver.validate_placement(
            hold.interval(tz),
            hold.team_member_id,
            hold.shop_id,
            require_availability_window=True,
            check_holds=True,
            session_id=hold.session_id,
        ).raise_for_conflict()

        booking = self._new_booking(
            team_member_id=hold.team_member_id,
            shop_id=hold.shop_id,
            service_id=hold.service_id,
            variant_id=variant_id,
            day=hold.day,
            start_time=hold.start_time,
            duration=hold.duration,
            price=resolved.price,
            client_id=client_id,
            client_note=client_note,
        )
        self._store.add_booking(booking)
        self._reservations.release(hold.session_id, hold_id=hold.id)
        return booking

    def admin_create(
        self,
        team_member_id: str,
        shop_id: str,
        service_id: str,
        day: Union[date, str],
        start: Union[str, int],
        variant_id: Optional[str] = None,
        duration: Optional[int] = None,
        client_id: Optional[str] = None,
        client_note: Optional[str] = None,
        require_availability_window: bool = False,
    ) -> Booking:
        """Create a booking directly from the admin calendar. No hold is involved."""
        day = parse_date(day)
        member = self._store.get_team_member(team_member_id)
        if not member.works_at(shop_id):
            raise ValidationError(f"Team member {team_member_id} is not assigned to shop {shop_id}")

        resolved = resolve_service(self._store, team_member_id, service_id, variant_id)
        tz = self._store.timezone_for(shop_id)
        candidate = TimeInterval.from_duration(day, start, duration or resolved.duration, tz)

        with self._reservations.critical_section((team_member_id, day)):
            self._resolver.validate_placement(
                candidate,
                team_member_id,
                shop_id,
                require_availability_window=require_availability_window,
                check_holds=True,
            ).raise_for_conflict()
            booking = self._new_booking(
                team_member_id=team_member_id,
                shop_id=shop_id,
                service_id=service_id,
                variant_id=variant_id,
                day=day,
                start_time=to_time(candidate.start),
                duration=candidate.duration,
                price=resolved.price,
                client_id=client_id,
                client_note=client_note,
            )
            self._store.add_booking(booking)
        return booking

    # ------------------------------------------------------------------ #
    # Edits
    # ------------------------------------------------------------------ #

    def change_status(self, booking_id: str, target: BookingStatus) -> Booking:
        """
        Apply a status change through the state machine.

        Reactivating a cancelled or no-show booking re-claims its time, so
        the placement is re-validated first.
        """
        booking = self._store.get_booking(booking_id)
        with self._reservations.critical_section((booking.team_member_id, booking.day)):
            booking = self._store.get_booking(booking_id)
            reclaims = (
                target in OCCUPYING_STATUSES
                and not booking.occupies_calendar
                and self.state_machine.find_transition(booking.status, target) is not None
            )
            if reclaims:
                tz = self._store.timezone_for(booking.shop_id)
                self._resolver.validate_placement(
                    booking.interval(tz),
                    booking.team_member_id,
                    booking.shop_id,
                    exclude_booking_id=booking.id,
                    check_holds=True,
                ).raise_for_conflict()
            updated = self.state_machine.transition_to(booking, target, self._reservations.now())
            return self._store.save_booking(updated)

    def reschedule(
        self,
        booking_id: str,
        candidate: TimeInterval,
        team_member_id: Optional[str] = None,
        require_availability_window: bool = False,
    ) -> Booking:
        """
        Move or resize a booking, optionally onto another team member.

        Staff edits apply immediately without taking a hold of their own,
        but a live client hold on the target time still rejects them.
        """
        booking = self._store.get_booking(booking_id)
        target_member = team_member_id or booking.team_member_id
        if target_member != booking.team_member_id:
            member = self._store.get_team_member(target_member)
            if not member.works_at(booking.shop_id):
                raise ValidationError(
                    f"Team member {target_member} is not assigned to shop {booking.shop_id}"
                )

        with self._reservations.critical_section(
            (booking.team_member_id, booking.day), (target_member, candidate.day)
        ):
            booking = self._store.get_booking(booking_id)
            if booking.status != BookingStatus.CONFIRMED:
                raise ValidationError(
                    f"Only confirmed bookings can be rescheduled ({booking.booking_number} is {booking.status.value})"
                )
            self._resolver.validate_placement(
                candidate,
                target_member,
                booking.shop_id,
                exclude_booking_id=booking.id,
                require_availability_window=require_availability_window,
                check_holds=True,
            ).raise_for_conflict()

            update: dict = {
                "day": candidate.day,
                "start_time": to_time(candidate.start),
                "duration": candidate.duration,
                "updated_at": self._reservations.now(),
            }
            if target_member != booking.team_member_id:
                update["team_member_id"] = target_member
                link = self._store.get_member_service(target_member, booking.service_id)
                if link is not None and link.price is not None:
                    update["price"] = link.price
            updated = self._store.save_booking(booking.model_copy(update=update))

        logger.info(
            "Booking %s rescheduled to %s for %s",
            updated.booking_number, candidate, updated.team_member_id,
        )
        return updated

    def delete(self, booking_id: str) -> Booking:
        return self._store.delete_booking(booking_id)

    def bookings_between(
        self,
        start: Union[date, str],
        end: Union[date, str],
        team_member_id: Optional[str] = None,
        status: Optional[BookingStatus] = None,
    ) -> list[Booking]:
        start, end = parse_date(start), parse_date(end)
        if end < start:
            raise ValidationError("Range end must not be before its start")
        return self._store.bookings_between(start, end, team_member_id, status)
