from slotbook.scheduling.availability import AvailabilityResolver
from slotbook.scheduling.timemath import (
    apply_buffers,
    overlaps,
    slots_in_window,
    weekday_index,
)

__all__ = [
    "AvailabilityResolver",
    "apply_buffers",
    "overlaps",
    "slots_in_window",
    "weekday_index",
]
