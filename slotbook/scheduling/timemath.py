"""
Pure date/time arithmetic for slot scheduling.

Nothing here reads the clock or touches state. All datetimes are naive
and interpreted in the single local zone the engine runs in.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterator

from slotbook.errors import InvalidDuration, InvalidInterval


def check_interval(start: datetime, end: datetime) -> None:
    if end <= start:
        raise InvalidInterval(f"Interval end {end} must be after start {start}.")


@dataclass(frozen=True)
class SlotWindow:
    """
    Candidate start instants on a fixed grid inside a working window.

    Iterating yields ``day_start``, ``day_start + step`` and so on, stopping
    before the first start whose slot would end after ``day_end``. The object
    can be iterated any number of times and always yields the same starts.
    """
    day_start: datetime
    day_end: datetime
    slot_duration: timedelta
    step: timedelta

    def __iter__(self) -> Iterator[datetime]:
        current = self.day_start
        while current + self.slot_duration <= self.day_end:
            yield current
            current += self.step


def slots_in_window(
    day_start: datetime,
    day_end: datetime,
    slot_duration: int,
    step_minutes: int,
) -> SlotWindow:
    """
    Build the grid of slot starts for one working window.

    The step is independent of the slot duration so services of different
    lengths line up on a common grid.

    Raises:
        InvalidInterval: If ``day_end`` is not after ``day_start``.
        InvalidDuration: If the slot duration or step is not positive.
    """
    check_interval(day_start, day_end)
    if slot_duration <= 0:
        raise InvalidDuration(f"Slot duration must be positive, got {slot_duration} minutes.")
    if step_minutes <= 0:
        raise InvalidDuration(f"Grid step must be positive, got {step_minutes} minutes.")
    return SlotWindow(
        day_start=day_start,
        day_end=day_end,
        slot_duration=timedelta(minutes=slot_duration),
        step=timedelta(minutes=step_minutes),
    )


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Return True iff the half-open intervals [a_start, a_end) and [b_start, b_end) intersect."""
    check_interval(a_start, a_end)
    check_interval(b_start, b_end)
    return a_start < b_end and b_start < a_end


def apply_buffers(
    start: datetime, end: datetime, buffer_before: int, buffer_after: int
) -> tuple[datetime, datetime]:
    """Pad an interval by the service buffers. Used for conflict tests only."""
    check_interval(start, end)
    if buffer_before < 0 or buffer_after < 0:
        raise InvalidDuration(
            f"Buffers must not be negative, got {buffer_before}/{buffer_after} minutes."
        )
    return start - timedelta(minutes=buffer_before), end + timedelta(minutes=buffer_after)


def parse_clock_time(value: str) -> time:
    """Parse a 24h ``HH:MM`` string."""
    return datetime.strptime(value.strip(), "%H:%M").time()


def at_clock_time(day: date, value: str) -> datetime:
    """Combine a calendar day with an ``HH:MM`` clock time."""
    return datetime.combine(day, parse_clock_time(value))


def weekday_index(day: date) -> int:
    """Weekday number used by working hours: 0 = Sunday ... 6 = Saturday."""
    return day.isoweekday() % 7


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Midnight-to-midnight bounds of a calendar day."""
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)
