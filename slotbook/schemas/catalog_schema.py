"""Service and specialist catalog models."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def _validate_clock_time(value: str) -> str:
    """Validate time is in HH:MM format."""
    try:
        datetime.strptime(value.strip(), "%H:%M")
    except ValueError:
        raise ValueError(f"expected HH:MM, got {value!r}") from None
    return value.strip()


class WorkingHours(BaseModel):
    """One day's working window in local 24h time."""
    model_config = ConfigDict(frozen=True)

    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def check_format(cls, value: str) -> str:
        return _validate_clock_time(value)

    @model_validator(mode="after")
    def end_after_start(self) -> "WorkingHours":
        # Zero-padded HH:MM strings compare in clock order.
        if self.end.zfill(5) <= self.start.zfill(5):
            raise ValueError(f"working day must end after it starts ({self.start}-{self.end})")
        return self


class Service(BaseModel):
    """A bookable service with its duration and conflict buffers."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    duration: int = Field(gt=0, description="Minutes")
    price: float = Field(ge=0)
    buffer_before: int = Field(default=0, ge=0)
    buffer_after: int = Field(default=0, ge=0)
    description: Optional[str] = None


class Specialist(BaseModel):
    """
    A specialist and the weekly hours they work.

    ``working_hours`` is keyed by weekday with 0 = Sunday through 6 = Saturday.
    A missing or ``None`` entry means the specialist is off that day.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    specialization: Optional[str] = None
    working_hours: dict[int, Optional[WorkingHours]] = Field(default_factory=dict)
    service_ids: frozenset[str] = frozenset()

    @field_validator("working_hours")
    @classmethod
    def weekday_keys(cls, value: dict[int, Optional[WorkingHours]]) -> dict[int, Optional[WorkingHours]]:
        bad = [day for day in value if not 0 <= day <= 6]
        if bad:
            raise ValueError(f"weekday keys must be 0-6, got {bad}")
        return value

    def hours_for(self, weekday: int) -> Optional[WorkingHours]:
        return self.working_hours.get(weekday)

    def offers(self, service_id: str) -> bool:
        return service_id in self.service_ids
