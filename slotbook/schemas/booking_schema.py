"""Booking, slot and lock data models."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, model_validator


class BookingStatus(str, Enum):
    """Lifecycle status of a committed booking."""
    ACTIVE = "active"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class SlotStatus(str, Enum):
    """Derived availability of a candidate slot."""
    FREE = "free"
    LOCKED = "locked"
    BOOKED = "booked"


@dataclass(frozen=True)
class SlotKey:
    """
    Identity of a slot: the specialist plus the slot's start instant.

    The string form ``"<specialist_id>@<ISO start>"`` round-trips through
    ``SlotKey.parse``. Parsing splits on the last ``@`` so the specialist id
    is taken verbatim.
    """
    specialist_id: str
    start: datetime

    def __str__(self) -> str:
        return f"{self.specialist_id}@{self.start.isoformat()}"

    @classmethod
    def parse(cls, raw: str) -> "SlotKey":
        specialist_id, sep, start = raw.rpartition("@")
        if not sep or not specialist_id:
            raise ValueError(f"Malformed slot key: {raw!r}")
        try:
            return cls(specialist_id, datetime.fromisoformat(start))
        except ValueError:
            raise ValueError(f"Malformed slot key: {raw!r}") from None


@dataclass(frozen=True)
class SlotLock:
    """A time-boxed hold on one slot key."""
    key: SlotKey
    locked_by: str
    locked_until: datetime

    def is_active(self, now: datetime) -> bool:
        return self.locked_until > now


@dataclass(frozen=True)
class CandidateSlot:
    """A slot offered to the caller. Computed on demand, never stored."""
    key: SlotKey
    start_time: datetime
    end_time: datetime
    status: SlotStatus


class BookingDraft(BaseModel):
    """Booking fields supplied by the caller before the ledger assigns an id."""
    model_config = ConfigDict(frozen=True)

    service_id: str
    specialist_id: str
    user_id: str
    time_slot_id: str
    start_time: datetime
    end_time: datetime

    @model_validator(mode="after")
    def start_before_end(self) -> "BookingDraft":
        if self.end_time <= self.start_time:
            raise ValueError("booking must end after it starts")
        return self


class Booking(BookingDraft):
    """A committed booking as held by the ledger."""

    id: str
    status: BookingStatus = BookingStatus.ACTIVE
    created_at: datetime

    @property
    def is_blocking(self) -> bool:
        """Whether this booking occupies its interval (everything but cancelled)."""
        return self.status != BookingStatus.CANCELLED
