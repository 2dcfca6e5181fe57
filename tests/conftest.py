"""Shared test fixtures and helpers."""

import threading
import time
from datetime import date, datetime, timedelta
from typing import Optional

import pytest

from slotbook.clock import ManualClock
from slotbook.engine import BookingEngine
from slotbook.schemas.booking_schema import BookingDraft, SlotKey
from slotbook.schemas.catalog_schema import Service, Specialist, WorkingHours
from slotbook.schemas.session_schema import Identity, Role
from slotbook.seed import seed_catalog
from slotbook.errors import StoreUnavailable
from slotbook.store.base import BOOKINGS, LOCKS
from slotbook.store.memory import InMemoryStore

# A Monday (weekday index 1 in the 0 = Sunday convention).
MONDAY = date(2025, 3, 17)
SUNDAY = date(2025, 3, 16)


def at(day: date, hour: int, minute: int = 0) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute)


@pytest.fixture
def clock():
    """Pinned a week before MONDAY so every MONDAY slot lies in the future."""
    return ManualClock(at(MONDAY - timedelta(days=7), 9, 0))


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def engine(store, clock):
    return BookingEngine(store, clock=clock)


@pytest.fixture
def seeded_engine(engine):
    seed_catalog(engine)
    return engine


def make_service(
    service_id: str = "svc",
    duration: int = 60,
    buffer_before: int = 0,
    buffer_after: int = 0,
) -> Service:
    """Helper to create a Service with sensible defaults."""
    return Service(
        id=service_id,
        name=f"Service {service_id}",
        duration=duration,
        price=1000,
        buffer_before=buffer_before,
        buffer_after=buffer_after,
    )


def make_specialist(
    specialist_id: str = "spec",
    hours: Optional[dict[int, tuple[str, str]]] = None,
    service_ids: tuple[str, ...] = ("svc",),
) -> Specialist:
    """Helper to create a Specialist. Defaults to Mondays 09:00-18:00."""
    if hours is None:
        hours = {1: ("09:00", "18:00")}
    return Specialist(
        id=specialist_id,
        name=f"Specialist {specialist_id}",
        working_hours={day: WorkingHours(start=s, end=e) for day, (s, e) in hours.items()},
        service_ids=frozenset(service_ids),
    )


def make_draft(
    start: datetime,
    minutes: int = 60,
    specialist_id: str = "spec",
    service_id: str = "svc",
    user_id: str = "user-1",
) -> BookingDraft:
    """Helper to create a BookingDraft for ``minutes`` from ``start``."""
    return BookingDraft(
        service_id=service_id,
        specialist_id=specialist_id,
        user_id=user_id,
        time_slot_id=str(SlotKey(specialist_id, start)),
        start_time=start,
        end_time=start + timedelta(minutes=minutes),
    )


def user(user_id: str) -> Identity:
    return Identity(user_id=user_id, role=Role.USER)


class SlowScanStore(InMemoryStore):
    """InMemoryStore whose bookings scans stall, widening check-then-write races.

    ``scanning`` is set as soon as any bookings scan starts.
    """

    def __init__(self, delay: float = 0.05) -> None:
        super().__init__()
        self.delay = delay
        self.scanning = threading.Event()

    def list_by_predicate(self, collection, predicate):
        if collection == BOOKINGS:
            self.scanning.set()
            time.sleep(self.delay)
        return super().list_by_predicate(collection, predicate)


class LockReleaseFailingStore(InMemoryStore):
    """InMemoryStore that cannot delete lock entries; every other write works."""

    def compare_and_swap(self, collection, key, expected, new):
        if collection == LOCKS and new is None:
            raise StoreUnavailable("Network error: request failed. Please try again.")
        return super().compare_and_swap(collection, key, expected, new)
