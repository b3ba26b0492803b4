"""Pydantic v2 request/response schemas for booking endpoints."""

import uuid
from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class BookingCreate(BaseModel):
    """Reserve a nightly stay. Range rules are enforced by the quote service."""

    unit_id: uuid.UUID
    check_in: date
    check_out: date
    guest_name: str | None = Field(None, max_length=255)
    channel: str = Field("direct", max_length=20)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class BookingResponse(BaseModel):
    """A booking with its frozen pricing snapshot."""

    id: uuid.UUID
    unit_id: uuid.UUID
    check_in_at: datetime
    check_out_at: datetime
    status: str
    channel: str
    guest_name: str | None = None
    nights: int
    currency: str
    host_net_total_minor: int
    guest_total_minor: int
    guest_unit_price_minor: int
    service_fee_bps: int
    processor_var_bps: int
    processor_fixed_minor: int
    pricing_version: str

    model_config = ConfigDict(from_attributes=True)
