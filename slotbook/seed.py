"""Demo catalog: services, specialists and a few bookings around today."""

import logging
from datetime import date, datetime, time, timedelta

from slotbook.engine import BookingEngine
from slotbook.schemas.booking_schema import BookingDraft, SlotKey
from slotbook.schemas.catalog_schema import Service, Specialist, WorkingHours

logger = logging.getLogger(__name__)

SERVICE_CATALOG: list[Service] = [
    Service(
        id="service-1", name="Consultation", duration=60, price=2500,
        buffer_before=10, buffer_after=10,
        description="Initial consultation with a specialist",
    ),
    Service(
        id="service-2", name="Diagnostics", duration=45, price=1800,
        buffer_before=5, buffer_after=5,
        description="Comprehensive diagnostics",
    ),
    Service(
        id="service-3", name="Therapy", duration=90, price=4000,
        buffer_before=15, buffer_after=15,
        description="Therapy session",
    ),
    Service(
        id="service-4", name="Express consultation", duration=30, price=1500,
        buffer_before=5, buffer_after=5,
        description="Quick consultation on a specific question",
    ),
]


def _week(weekdays: dict[int, tuple[str, str]]) -> dict[int, WorkingHours]:
    return {day: WorkingHours(start=start, end=end) for day, (start, end) in weekdays.items()}


SPECIALISTS: list[Specialist] = [
    Specialist(
        id="specialist-1", name="Anna Petrova", specialization="Therapist",
        working_hours=_week({
            1: ("09:00", "18:00"), 2: ("09:00", "18:00"), 3: ("09:00", "18:00"),
            4: ("09:00", "18:00"), 5: ("09:00", "16:00"),
        }),
        service_ids=frozenset({"service-1", "service-2", "service-3"}),
    ),
    Specialist(
        id="specialist-2", name="Dmitry Ivanov", specialization="Diagnostician",
        working_hours=_week({
            1: ("10:00", "19:00"), 2: ("10:00", "19:00"), 4: ("10:00", "19:00"),
            5: ("10:00", "19:00"), 6: ("10:00", "15:00"),
        }),
        service_ids=frozenset({"service-1", "service-2", "service-4"}),
    ),
    Specialist(
        id="specialist-3", name="Elena Sidorova", specialization="Consultant",
        working_hours=_week({
            1: ("08:00", "14:00"), 2: ("08:00", "14:00"), 3: ("08:00", "14:00"),
            4: ("08:00", "14:00"), 5: ("08:00", "14:00"),
        }),
        service_ids=frozenset({"service-1", "service-4"}),
    ),
]

# (service, specialist, user, days from today, start, completed)
DEMO_BOOKINGS = [
    ("service-1", "specialist-1", "user-001", 2, time(10, 0), False),
    ("service-2", "specialist-2", "user-001", -3, time(14, 0), True),
    ("service-3", "specialist-1", "user-002", 1, time(15, 0), False),
    ("service-1", "specialist-3", "user-003", 3, time(9, 0), False),
]


def seed_catalog(engine: BookingEngine) -> None:
    for service in SERVICE_CATALOG:
        engine.catalog.save_service(service)
    for specialist in SPECIALISTS:
        engine.catalog.save_specialist(specialist)


def seed_demo(engine: BookingEngine, today: date) -> None:
    """Load the catalog and the demo bookings relative to ``today``."""
    seed_catalog(engine)
    durations = {s.id: s.duration for s in SERVICE_CATALOG}
    for service_id, specialist_id, user_id, offset, start_at, completed in DEMO_BOOKINGS:
        start = datetime.combine(today + timedelta(days=offset), start_at)
        booking = engine.ledger.create(BookingDraft(
            service_id=service_id,
            specialist_id=specialist_id,
            user_id=user_id,
            time_slot_id=str(SlotKey(specialist_id, start)),
            start_time=start,
            end_time=start + timedelta(minutes=durations[service_id]),
        ))
        if completed:
            engine.ledger.complete(booking.id)
    logger.info("Seeded %d demo bookings", len(DEMO_BOOKINGS))
