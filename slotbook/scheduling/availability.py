"""
Availability resolution: turn working hours, bookings and locks into a
classified list of candidate slots for one specialist, service and day.

Usage:
    resolver = AvailabilityResolver(clock)
    slots = resolver.resolve(specialist, service, day, bookings, locks, "user-1")
"""

import logging
from datetime import date, timedelta
from typing import Iterable, Mapping

from slotbook.clock import Clock
from slotbook.schemas.booking_schema import (
    Booking,
    CandidateSlot,
    SlotKey,
    SlotLock,
    SlotStatus,
)
from slotbook.schemas.catalog_schema import Service, Specialist
from slotbook.scheduling.timemath import (
    apply_buffers,
    at_clock_time,
    overlaps,
    slots_in_window,
    weekday_index,
)

logger = logging.getLogger(__name__)

DEFAULT_STEP_MINUTES = 30


class AvailabilityResolver:
    """
    Classifies every grid slot of a working day as free, locked or booked.

    Resolution is read-only. The result is a snapshot: a slot reported free
    may be locked or booked by the time the caller acts on it, which the
    lock manager and ledger detect on their own.
    """

    def __init__(self, clock: Clock, step_minutes: int = DEFAULT_STEP_MINUTES) -> None:
        self._clock = clock
        self._step_minutes = step_minutes

    def resolve(
        self,
        specialist: Specialist,
        service: Service,
        day: date,
        existing_bookings: Iterable[Booking],
        active_locks: Mapping[SlotKey, SlotLock],
        requester_id: str,
    ) -> list[CandidateSlot]:
        hours = specialist.hours_for(weekday_index(day))
        if hours is None:
            logger.debug("%s does not work on %s", specialist.id, day)
            return []

        now = self._clock.now()
        blocking = [
            b for b in existing_bookings
            if b.specialist_id == specialist.id and b.is_blocking
        ]
        duration = timedelta(minutes=service.duration)
        window = slots_in_window(
            at_clock_time(day, hours.start),
            at_clock_time(day, hours.end),
            service.duration,
            self._step_minutes,
        )

        slots: list[CandidateSlot] = []
        for start in window:
            if day == now.date() and start < now:
                continue

            end = start + duration
            key = SlotKey(specialist.id, start)
            padded_start, padded_end = apply_buffers(
                start, end, service.buffer_before, service.buffer_after
            )

            if any(overlaps(padded_start, padded_end, b.start_time, b.end_time) for b in blocking):
                status = SlotStatus.BOOKED
            elif self._locked_by_other(active_locks.get(key), requester_id, now):
                status = SlotStatus.LOCKED
            else:
                status = SlotStatus.FREE

            slots.append(CandidateSlot(key=key, start_time=start, end_time=end, status=status))

        logger.debug(
            "Resolved %d slots for %s/%s on %s", len(slots), specialist.id, service.id, day
        )
        return slots

    @staticmethod
    def _locked_by_other(lock, requester_id: str, now) -> bool:
        return lock is not None and lock.is_active(now) and lock.locked_by != requester_id
