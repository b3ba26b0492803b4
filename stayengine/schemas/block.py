"""Pydantic v2 request/response schemas for calendar block endpoints."""

import uuid
from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, model_validator

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class BlockCreate(BaseModel):
    """Create a manual block from an inclusive date range or an instant range."""

    start_date: date | None = None
    end_date: date | None = None
    start_at: datetime | None = None
    end_at: datetime | None = None
    label: str | None = Field(None, max_length=255)
    notes: str | None = None
    color: str | None = Field(None, max_length=20)
    created_by: str | None = Field(None, max_length=255)

    @model_validator(mode="after")
    def check_range_form(self) -> "BlockCreate":
        """Exactly one of the two range forms must be complete."""
        dates = self.start_date is not None and self.end_date is not None
        instants = self.start_at is not None and self.end_at is not None
        if dates == instants:
            raise ValueError("provide start_date/end_date or start_at/end_at")
        return self


class BlockUpdate(BaseModel):
    """Partial update. Only presentation fields can change."""

    label: str | None = Field(None, max_length=255)
    notes: str | None = None
    color: str | None = Field(None, max_length=20)


class ChannelImportRequest(BaseModel):
    url: HttpUrl
    source: str = Field("other", pattern="^(airbnb|vrbo|bookingcom|expedia|other)$")


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class BlockResponse(BaseModel):
    id: uuid.UUID
    unit_id: uuid.UUID
    source: str | None = None
    label: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    start_at: datetime | None = None
    end_at: datetime | None = None
    color: str | None = None
    notes: str | None = None
    external_uid: str | None = None
    created_by: str | None = None

    model_config = ConfigDict(from_attributes=True)


class ChannelImportResponse(BaseModel):
    unit_id: uuid.UUID
    source: str
    imported: int


class MessageResponse(BaseModel):
    message: str
