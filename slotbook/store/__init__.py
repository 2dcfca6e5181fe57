from slotbook.store.base import BOOKINGS, LOCKS, SERVICES, SPECIALISTS, KeyValueStore
from slotbook.store.faults import FaultInjectingStore
from slotbook.store.memory import InMemoryStore

__all__ = [
    "KeyValueStore",
    "InMemoryStore",
    "FaultInjectingStore",
    "SERVICES",
    "SPECIALISTS",
    "BOOKINGS",
    "LOCKS",
]
