"""
Checkout holds with per-(team member, date) exclusivity.

A hold is a short-lived claim on a slot while a client finishes checkout.
``create_hold`` is the only operation that needs serializable semantics:
the overlap check and the insert run inside one critical section keyed by
``(team_member_id, date)``, so two sessions racing for overlapping time on
the same calendar get exactly one success.

Expiry is lazy. A hold whose ``expires_at`` has passed is treated as absent
by every read, whether or not it has been deleted yet. ``sweep_expired``
and ``HoldSweeper`` only reclaim storage.
"""

import threading
import uuid
from contextlib import ExitStack, contextmanager
from datetime import date, datetime, timedelta
from typing import Iterator, Optional, Union

from booking_engine.config import settings
from booking_engine.exceptions import ConflictError, ExpiredHoldError, NotFoundError, ValidationError
from booking_engine.logging_context import get_session_logger
from booking_engine.schemas.booking_schema import Hold
from booking_engine.scheduling.interval import TimeInterval
from booking_engine.scheduling.store import SchedulingStore
from booking_engine.utils import Clock, parse_date, to_time, utc_now

logger = get_session_logger(__name__)

CalendarKey = tuple[str, date]


class _KeyLock:
    """A calendar lock and the number of callers using or waiting on it."""

    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


class ReservationManager:
    """Creates, extends and releases TTL-bound holds."""

    def __init__(
        self,
        store: SchedulingStore,
        ttl_minutes: Optional[int] = None,
        clock: Clock = utc_now,
    ) -> None:
        self._store = store
        self.ttl = timedelta(minutes=ttl_minutes or settings.holds.ttl_minutes)
        self._clock = clock
        self._holds: dict[str, Hold] = {}  # session_id -> hold
        self._registry_lock = threading.Lock()
        self._key_locks: dict[CalendarKey, _KeyLock] = {}

    def now(self) -> datetime:
        return self._clock()

    # ------------------------------------------------------------------ #
    # Critical sections
    # ------------------------------------------------------------------ #

    @contextmanager
    def _locked(self, key: CalendarKey) -> Iterator[None]:
        # Entries live only while someone holds or waits on them.
        with self._registry_lock:
            entry = self._key_locks.get(key)
            if entry is None:
                entry = self._key_locks[key] = _KeyLock()
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._registry_lock:
                entry.users -= 1
                if entry.users == 0 and self._key_locks.get(key) is entry:
                    del self._key_locks[key]

    def locked_calendars(self) -> int:
        """Number of calendars currently locked or contended."""
        with self._registry_lock:
            return len(self._key_locks)

    @contextmanager
    def critical_section(self, *keys: CalendarKey) -> Iterator[None]:
        """
        Serialize writers on one or more (team member, date) calendars.

        Locks are taken in sorted order so a move between two calendars
        cannot deadlock against the reverse move.
        """
        with ExitStack() as stack:
            for key in sorted(set(keys)):
                stack.enter_context(self._locked(key))
            yield

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    def live_holds(
        self, team_member_id: str, day: date, exclude_session: Optional[str] = None
    ) -> list[Hold]:
        """Non-expired holds on one calendar, optionally ignoring one session's own hold."""
        now = self.now()
        with self._registry_lock:
            holds = list(self._holds.values())
        return [
            h for h in holds
            if h.team_member_id == team_member_id
            and h.day == day
            and h.session_id != exclude_session
            and h.is_live(now)
        ]

    def get_hold(self, session_id: str) -> Optional[Hold]:
        """The session's live hold, or ``None`` if missing or expired."""
        with self._registry_lock:
            hold = self._holds.get(session_id)
        if hold is None or not hold.is_live(self.now()):
            return None
        return hold

    def require_live_hold(self, session_id: str) -> Hold:
        """Return the session's hold, distinguishing expired from missing."""
        with self._registry_lock:
            hold = self._holds.get(session_id)
        if hold is None:
            raise NotFoundError(f"No hold for session {session_id}")
        if not hold.is_live(self.now()):
            raise ExpiredHoldError(
                f"Hold for session {session_id} expired at {hold.expires_at.isoformat()}"
            )
        return hold

    # ------------------------------------------------------------------ #
    # Writes
    # ------------------------------------------------------------------ #

    def create_hold(
        self,
        team_member_id: str,
        shop_id: str,
        service_id: str,
        day: Union[date, str],
        start: Union[str, int],
        duration: int,
        session_id: str,
        variant_id: Optional[str] = None,
    ) -> Hold:
        """
        Claim ``[start, start + duration)`` for a session.

        Any other live hold owned by the same session is replaced in the
        same critical section, so a session never owns two holds.
        ``variant_id`` is recorded so confirmation prices and sizes the
        booking from the same service the slot was held for.

        Raises:
            ValidationError: Missing fields or a member not assigned to the shop.
            ConflictError: Overlap with an occupying booking or another
                session's live hold.
        """
        if not session_id or not session_id.strip():
            raise ValidationError("session_id is required")
        day = parse_date(day)
        member = self._store.get_team_member(team_member_id)
        if not member.works_at(shop_id):
            raise ValidationError(f"Team member {team_member_id} is not assigned to shop {shop_id}")
        self._store.get_service(service_id)
        if variant_id and self._store.get_variant(variant_id).service_id != service_id:
            raise ValidationError(f"Variant {variant_id} does not belong to service {service_id}")

        tz = self._store.timezone_for(shop_id)
        candidate = TimeInterval.from_duration(day, start, duration, tz)

        with self.critical_section((team_member_id, day)):
            for booking in self._store.bookings_for(team_member_id, day):
                if candidate.overlaps(booking.interval(tz)):
                    logger.info(
                        "Hold rejected for %s: overlaps booking %s",
                        candidate, booking.booking_number,
                    )
                    raise ConflictError("Overlaps an existing booking", booking.id)

            for other in self.live_holds(team_member_id, day, exclude_session=session_id):
                if candidate.overlaps(other.interval(tz)):
                    logger.info("Hold rejected for %s: held by another session", candidate)
                    raise ConflictError("Slot is held by another client", other.id)

            now = self.now()
            hold = Hold(
                id=uuid.uuid4().hex,
                session_id=session_id,
                team_member_id=team_member_id,
                shop_id=shop_id,
                service_id=service_id,
                variant_id=variant_id,
                day=day,
                start_time=to_time(candidate.start),
                duration=candidate.duration,
                created_at=now,
                expires_at=now + self.ttl,
            )
            with self._registry_lock:
                previous = self._holds.get(session_id)
                self._holds[session_id] = hold

        if previous is not None:
            logger.debug("Replaced previous hold %s for session %s", previous.id, session_id)
        logger.info(
            "Hold created for %s on %s, expires %s",
            team_member_id, candidate, hold.expires_at.isoformat(),
        )
        return hold

    def extend(self, session_id: str) -> Hold:
        """Push a live hold's expiry to ``now + TTL``."""
        with self._registry_lock:
            hold = self._holds.get(session_id)
            if hold is None:
                raise NotFoundError(f"No hold for session {session_id}")
            now = self.now()
            if not hold.is_live(now):
                raise ExpiredHoldError(f"Hold for session {session_id} has already expired")
            hold = hold.model_copy(update={"expires_at": now + self.ttl})
            self._holds[session_id] = hold
        logger.info("Hold extended for session %s until %s", session_id, hold.expires_at.isoformat())
        return hold

    def release(self, session_id: str, hold_id: Optional[str] = None) -> None:
        """
        Delete the session's hold. Idempotent.

        With ``hold_id``, only that hold is dropped. A newer hold the session
        took in the meantime is left alone.
        """
        with self._registry_lock:
            hold = self._holds.get(session_id)
            if hold is not None and hold_id is not None and hold.id != hold_id:
                hold = None
            if hold is not None:
                del self._holds[session_id]
        if hold is not None:
            logger.info("Hold released for session %s", session_id)

    def sweep_expired(self) -> int:
        """Physically delete expired holds. Storage hygiene only."""
        now = self.now()
        with self._registry_lock:
            stale = [sid for sid, h in self._holds.items() if not h.is_live(now)]
            for sid in stale:
                del self._holds[sid]
        if stale:
            logger.info("Swept %d expired hold(s)", len(stale))
        return len(stale)

    def reset(self) -> None:
        """Clear all holds. Used by test fixtures for isolation."""
        with self._registry_lock:
            self._holds.clear()


class HoldSweeper:
    """Background thread that periodically calls ``sweep_expired``."""

    def __init__(self, reservations: ReservationManager, interval_seconds: Optional[float] = None) -> None:
        self._reservations = reservations
        self.interval = interval_seconds or settings.holds.sweep_interval_seconds
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="hold-sweeper", daemon=True)
        self._thread.start()
        logger.debug("Hold sweeper started (every %.1fs)", self.interval)

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self._reservations.sweep_expired()
            except Exception:
                logger.exception("Hold sweep failed")
