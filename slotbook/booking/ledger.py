"""
Authoritative store of committed bookings.

The ledger alone decides whether a booking may exist. Slot locks are a
courtesy to the user; every create and reschedule here re-checks the
specialist's other bookings no matter what lock state the caller holds.
"""

import uuid
from datetime import datetime
from typing import ContextManager, Optional

from slotbook.clock import Clock
from slotbook.errors import InvalidState, NotFound, SlotConflict
from slotbook.logging_context import get_session_logger
from slotbook.schemas.booking_schema import Booking, BookingDraft, BookingStatus
from slotbook.scheduling.timemath import check_interval, overlaps
from slotbook.store.base import BOOKINGS, SPECIALISTS, KeyValueStore

logger = get_session_logger(__name__)


class BookingLedger:
    """
    Conflict-free booking store.

    ``create``, ``reschedule``, ``cancel`` and ``complete`` run inside the
    store's exclusive section for the owning specialist, so the conflict
    check and the write that follows it see the same bookings, even with
    several ledgers over one store. Different specialists never block
    each other.
    """

    def __init__(self, store: KeyValueStore, clock: Clock) -> None:
        self._store = store
        self._clock = clock

    def hold_schedule(self, specialist_id: str) -> ContextManager[None]:
        """Exclusive section over one specialist's bookings. Reentrant."""
        return self._store.exclusive(SPECIALISTS, specialist_id)

    # --- writes ---

    def create(self, draft: BookingDraft) -> Booking:
        """
        Commit a new booking.

        Raises:
            SlotConflict: If a non-cancelled booking of the same specialist
                overlaps the draft's interval. Nothing is written.
        """
        with self.hold_schedule(draft.specialist_id):
            clashes = self.overlapping(draft.specialist_id, draft.start_time, draft.end_time)
            if clashes:
                logger.info(
                    "Create rejected for %s %s-%s: overlaps %s",
                    draft.specialist_id, draft.start_time, draft.end_time,
                    [b.id for b in clashes],
                )
                raise SlotConflict("This time slot is already taken. Please choose another time.")

            booking = Booking(
                **draft.model_dump(),
                id=f"booking-{uuid.uuid4().hex[:12]}",
                status=BookingStatus.ACTIVE,
                created_at=self._clock.now(),
            )
            if not self._store.compare_and_swap(BOOKINGS, booking.id, None, booking):
                raise RuntimeError(f"Booking id collision on {booking.id}")

        logger.info(
            "Booking %s created: %s with %s, %s-%s",
            booking.id, booking.user_id, booking.specialist_id,
            booking.start_time, booking.end_time,
        )
        return booking

    def cancel(self, booking_id: str) -> Booking:
        """
        Mark a booking cancelled. Cancelled bookings are kept for history.

        Cancelling an already-cancelled booking succeeds and returns it
        unchanged.

        Raises:
            NotFound: No booking with this id.
            InvalidState: The booking has already been completed.
        """
        booking = self._require(booking_id)
        with self.hold_schedule(booking.specialist_id):
            booking = self._require(booking_id)
            if booking.status == BookingStatus.CANCELLED:
                logger.debug("Booking %s already cancelled", booking_id)
                return booking
            if booking.status == BookingStatus.COMPLETED:
                raise InvalidState("A completed booking cannot be cancelled.")
            return self._set_status(booking, BookingStatus.CANCELLED)

    def reschedule(self, booking_id: str, new_start: datetime, new_end: datetime) -> Booking:
        """
        Move an active booking to a new interval in one check-and-write.

        Raises:
            NotFound: No booking with this id.
            InvalidInterval: ``new_end`` is not after ``new_start``.
            InvalidState: The booking is cancelled or completed.
            SlotConflict: Another non-cancelled booking of the same
                specialist overlaps the new interval. The booking keeps
                its old times.
        """
        check_interval(new_start, new_end)
        booking = self._require(booking_id)
        with self.hold_schedule(booking.specialist_id):
            booking = self._require(booking_id)
            if booking.status != BookingStatus.ACTIVE:
                raise InvalidState(f"Only active bookings can be moved (this one is {booking.status.value}).")

            clashes = self.overlapping(
                booking.specialist_id, new_start, new_end, exclude_id=booking.id
            )
            if clashes:
                logger.info(
                    "Reschedule of %s to %s-%s rejected: overlaps %s",
                    booking_id, new_start, new_end, [b.id for b in clashes],
                )
                raise SlotConflict("The selected time is already taken.")

            moved = booking.model_copy(update={"start_time": new_start, "end_time": new_end})
            self._store.put(BOOKINGS, booking.id, moved)

        logger.info("Booking %s moved to %s-%s", booking_id, new_start, new_end)
        return moved

    def complete(self, booking_id: str) -> Booking:
        """Mark an active booking completed. Called by the external completion job."""
        booking = self._require(booking_id)
        with self.hold_schedule(booking.specialist_id):
            booking = self._require(booking_id)
            if booking.status != BookingStatus.ACTIVE:
                raise InvalidState(f"Only active bookings can be completed (this one is {booking.status.value}).")
            return self._set_status(booking, BookingStatus.COMPLETED)

    def complete_elapsed(self) -> list[Booking]:
        """Complete every active booking that has already ended."""
        now = self._clock.now()
        due = self._store.list_by_predicate(
            BOOKINGS, lambda b: b.status == BookingStatus.ACTIVE and b.end_time <= now
        )
        completed = []
        for booking in due:
            try:
                completed.append(self.complete(booking.id))
            except InvalidState:
                # Cancelled between the scan and the write.
                continue
        return completed

    # --- reads ---

    def get(self, booking_id: str) -> Optional[Booking]:
        return self._store.get(BOOKINGS, booking_id)

    def overlapping(
        self,
        specialist_id: str,
        start: datetime,
        end: datetime,
        exclude_id: Optional[str] = None,
    ) -> list[Booking]:
        """Non-cancelled bookings of a specialist that intersect [start, end)."""
        return self._sorted(self._store.list_by_predicate(
            BOOKINGS,
            lambda b: (
                b.specialist_id == specialist_id
                and b.is_blocking
                and b.id != exclude_id
                and overlaps(start, end, b.start_time, b.end_time)
            ),
        ))

    def list_for_specialist(
        self, specialist_id: str, window_start: datetime, window_end: datetime
    ) -> list[Booking]:
        """Non-cancelled bookings of a specialist lying wholly inside the window."""
        return self._sorted(self._store.list_by_predicate(
            BOOKINGS,
            lambda b: (
                b.specialist_id == specialist_id
                and b.is_blocking
                and b.start_time >= window_start
                and b.end_time <= window_end
            ),
        ))

    def list_for_user(self, user_id: str) -> list[Booking]:
        return self._sorted(self._store.list_by_predicate(BOOKINGS, lambda b: b.user_id == user_id))

    def list_all(self) -> list[Booking]:
        return self._sorted(self._store.list_by_predicate(BOOKINGS, lambda b: True))

    def has_active_for_service(self, service_id: str) -> bool:
        return bool(self._store.list_by_predicate(
            BOOKINGS, lambda b: b.service_id == service_id and b.status == BookingStatus.ACTIVE
        ))

    def has_active_for_specialist(self, specialist_id: str) -> bool:
        return bool(self._store.list_by_predicate(
            BOOKINGS, lambda b: b.specialist_id == specialist_id and b.status == BookingStatus.ACTIVE
        ))

    # --- helpers ---

    def _require(self, booking_id: str) -> Booking:
        booking = self.get(booking_id)
        if booking is None:
            raise NotFound(f"Booking {booking_id} not found.")
        return booking

    def _set_status(self, booking: Booking, status: BookingStatus) -> Booking:
        updated = booking.model_copy(update={"status": status})
        self._store.put(BOOKINGS, booking.id, updated)
        logger.info("Booking %s %s", booking.id, status.value)
        return updated

    @staticmethod
    def _sorted(bookings: list[Booking]) -> list[Booking]:
        return sorted(bookings, key=lambda b: (b.start_time, b.id))
