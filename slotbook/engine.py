"""
Engine facade: the operations other layers call.

Wires the resolver, lock manager, ledger and catalog over one store and
one clock. Transport layers (HTTP handlers, bots, the console demo) talk
to this class only.

Usage:
    engine = BookingEngine.from_settings()
    slots = engine.resolve_availability("specialist-1", "service-1", day, "user-1")
    lock = engine.acquire_lock(slots[0].key, "user-1")
    booking = engine.confirm_booking(slots[0].key, "service-1", "specialist-1",
                                     "user-1", slots[0].start_time, slots[0].end_time)
"""

from datetime import date, datetime, timedelta
from typing import Optional, Union

from slotbook.booking.catalog import Catalog
from slotbook.booking.ledger import BookingLedger
from slotbook.booking.lock_manager import LockManager
from slotbook.clock import Clock, SystemClock
from slotbook.config import AppConfig, settings
from slotbook.errors import InvalidDuration, ServiceNotOffered, StoreUnavailable
from slotbook.logging_context import get_session_logger
from slotbook.schemas.booking_schema import (
    Booking,
    BookingDraft,
    CandidateSlot,
    SlotKey,
    SlotLock,
)
from slotbook.schemas.catalog_schema import Service, Specialist
from slotbook.schemas.session_schema import Identity, Role
from slotbook.scheduling.availability import AvailabilityResolver
from slotbook.scheduling.timemath import day_bounds
from slotbook.store.base import KeyValueStore
from slotbook.store.faults import FaultInjectingStore
from slotbook.store.memory import InMemoryStore

logger = get_session_logger(__name__)

SlotKeyLike = Union[SlotKey, str]


def _as_key(slot_key: SlotKeyLike) -> SlotKey:
    return slot_key if isinstance(slot_key, SlotKey) else SlotKey.parse(slot_key)


class BookingEngine:
    """Availability, locking and booking operations over a shared store."""

    def __init__(
        self,
        store: KeyValueStore,
        clock: Optional[Clock] = None,
        step_minutes: int = 30,
        lock_minutes: int = 5,
    ) -> None:
        self.clock = clock or SystemClock()
        self.store = store
        self.ledger = BookingLedger(store, self.clock)
        self.locks = LockManager(store, self.clock, default_minutes=lock_minutes)
        self.catalog = Catalog(store, self.ledger)
        self.resolver = AvailabilityResolver(self.clock, step_minutes=step_minutes)

    @classmethod
    def from_settings(
        cls,
        config: AppConfig = settings,
        store: Optional[KeyValueStore] = None,
        clock: Optional[Clock] = None,
    ) -> "BookingEngine":
        """Build an engine from configuration, wrapping the store for fault injection if enabled."""
        store = store or InMemoryStore()
        if config.faults.failure_rate > 0:
            logger.warning(
                "Fault injection enabled at %.0f%% of store writes",
                config.faults.failure_rate * 100,
            )
            store = FaultInjectingStore(store, config.faults.failure_rate, seed=config.faults.seed)
        return cls(
            store,
            clock=clock,
            step_minutes=config.scheduling.slot_step_minutes,
            lock_minutes=config.scheduling.lock_duration_minutes,
        )

    # --- availability ---

    def resolve_availability(
        self,
        specialist_id: str,
        service_id: str,
        day: date,
        requester_id: str = "",
    ) -> list[CandidateSlot]:
        """
        Classified slots for one specialist, service and day.

        Raises:
            NotFound: Unknown specialist or service.
            ServiceNotOffered: The specialist does not perform the service.
        """
        specialist, service = self.pairing(specialist_id, service_id)
        day_start, day_end = day_bounds(day)
        bookings = self.ledger.overlapping(
            specialist.id,
            day_start - timedelta(minutes=service.buffer_before),
            day_end + timedelta(minutes=service.buffer_after),
        )
        return self.resolver.resolve(
            specialist,
            service,
            day,
            bookings,
            self.locks.active_locks_for(specialist.id),
            requester_id,
        )

    def specialists_for_service(self, service_id: str) -> list[Specialist]:
        self.catalog.require_service(service_id)
        return self.catalog.specialists_for_service(service_id)

    # --- locks ---

    def acquire_lock(self, slot_key: SlotKeyLike, user_id: str) -> SlotLock:
        """Grant or renew ``user_id``'s hold on a slot. Raises SlotLockedByOther."""
        return self.locks.acquire(_as_key(slot_key), user_id)

    def release_lock(self, slot_key: SlotKeyLike, user_id: str) -> None:
        self.locks.release(_as_key(slot_key), user_id)

    # --- bookings ---

    def confirm_booking(
        self,
        slot_key: SlotKeyLike,
        service_id: str,
        specialist_id: str,
        user_id: str,
        start: datetime,
        end: datetime,
    ) -> Booking:
        """
        Commit a booking for a slot and release the caller's lock on it.

        The ledger re-checks conflicts whether or not the caller holds the
        lock. The pairing check and the write share one exclusive section
        with catalog deletions, so a booking never lands on a service or
        specialist being removed. Once the booking is written, failing to
        drop the lock is logged and left to expiry.

        Raises:
            NotFound: Unknown specialist or service.
            ServiceNotOffered: The specialist does not perform the service.
            InvalidDuration: ``end - start`` differs from the service duration.
            SlotConflict: The interval overlaps another booking.
        """
        key = _as_key(slot_key)
        if key != SlotKey(specialist_id, start):
            raise ValueError(f"Slot key {key} does not match {specialist_id} at {start}.")
        with self.catalog.hold_service(service_id), self.ledger.hold_schedule(specialist_id):
            _, service = self.pairing(specialist_id, service_id)
            if end - start != timedelta(minutes=service.duration):
                raise InvalidDuration(
                    f"{service.name} lasts {service.duration} minutes; "
                    f"got {int((end - start).total_seconds() // 60)}."
                )

            booking = self.ledger.create(BookingDraft(
                service_id=service_id,
                specialist_id=specialist_id,
                user_id=user_id,
                time_slot_id=str(key),
                start_time=start,
                end_time=end,
            ))

        try:
            self.locks.release(key, user_id)
        except StoreUnavailable:
            logger.warning(
                "Booking %s committed but lock on %s not released; it will expire",
                booking.id, key,
            )
        return booking

    def cancel_booking(self, booking_id: str) -> Booking:
        return self.ledger.cancel(booking_id)

    def reschedule_booking(self, booking_id: str, new_start: datetime, new_end: datetime) -> Booking:
        return self.ledger.reschedule(booking_id, new_start, new_end)

    def get_booking(self, booking_id: str) -> Optional[Booking]:
        return self.ledger.get(booking_id)

    def list_bookings(self, identity: Identity) -> list[Booking]:
        """Role-scoped view: admins see everything, users their own, guests nothing."""
        if identity.role == Role.ADMIN:
            return self.ledger.list_all()
        if identity.role == Role.USER and identity.user_id:
            return self.ledger.list_for_user(identity.user_id)
        return []

    # --- catalog ---

    def pairing(self, specialist_id: str, service_id: str) -> tuple[Specialist, Service]:
        """Look up a specialist and a service, checking the one performs the other."""
        specialist = self.catalog.require_specialist(specialist_id)
        service = self.catalog.require_service(service_id)
        if not specialist.offers(service_id):
            raise ServiceNotOffered(f"{specialist.name} does not offer {service.name}.")
        return specialist, service
