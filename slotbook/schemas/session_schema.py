"""Caller identity and per-flow selection state."""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional

from slotbook.schemas.booking_schema import SlotKey


class Role(str, Enum):
    GUEST = "guest"
    USER = "user"
    ADMIN = "admin"


@dataclass(frozen=True)
class Identity:
    """Who is calling, as reported by the external identity provider."""
    user_id: Optional[str] = None
    role: Role = Role.GUEST

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None and self.role != Role.GUEST


GUEST = Identity()


@dataclass
class FlowSelection:
    """
    Selections made so far in one booking flow.

    Mutated by BookingWorkflow as the user moves through the steps.
    Clearing an earlier selection clears everything that depends on it.
    """
    service_id: Optional[str] = None
    specialist_id: Optional[str] = None
    date: Optional[date] = None
    slot_key: Optional[SlotKey] = None
    lock_expires_at: Optional[datetime] = None
    booking_id: Optional[str] = None

    def clear_slot(self) -> None:
        self.slot_key = None
        self.lock_expires_at = None
