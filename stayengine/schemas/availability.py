"""Pydantic v2 response schemas for occupancy and calendar window endpoints."""

import uuid
from datetime import date, datetime

from pydantic import BaseModel, Field

from stayengine.availability.aggregator import OccupancyVerdict


class OccupancyResponse(BaseModel):
    """Occupancy verdict for one unit over ``[from, to)``."""

    unit_id: uuid.UUID
    date_from: date = Field(serialization_alias="from")
    date_to: date = Field(serialization_alias="to")
    timezone: str
    booked_days: list[date]
    blocked_days: list[date]
    disabled_days: list[date]
    conflict_days: list[date]
    degraded: bool = False
    generated_at: datetime

    @classmethod
    def from_verdict(
        cls, unit_id: uuid.UUID, verdict: OccupancyVerdict, generated_at: datetime
    ) -> "OccupancyResponse":
        return cls(
            unit_id=unit_id,
            date_from=verdict.window.start,
            date_to=verdict.window.end,
            timezone=str(verdict.window.tz),
            booked_days=sorted(verdict.booked_days),
            blocked_days=sorted(verdict.blocked_days),
            disabled_days=sorted(verdict.disabled_days),
            conflict_days=sorted(verdict.conflict_days),
            degraded=verdict.degraded,
            generated_at=generated_at,
        )


class CalendarWindowResponse(BaseModel):
    """The caller's rolling window and the verdict fetched for it."""

    unit_id: uuid.UUID
    window_start: date
    window_end: date
    position: date
    state: str
    stamp: int
    latest: bool
    extended: bool
    occupancy: OccupancyResponse
