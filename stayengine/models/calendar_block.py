"""Calendar block model — manual holds and channel (iCal) imports."""

import uuid
from datetime import date, datetime

from sqlalchemy import Date, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from stayengine.database import Base, TimestampMixin, UUIDPrimaryKeyMixin


class CalendarBlock(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Days (or hours) a unit cannot be booked that are not bookings.

    Nightly blocks use the inclusive ``start_date``/``end_date`` pair; hourly
    blocks use ``start_at``/``end_at``.
    """

    __tablename__ = "calendar_blocks"

    unit_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("units.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    source: Mapped[str] = mapped_column(String(20), default="manual")  # manual, airbnb, vrbo, bookingcom, expedia, other
    label: Mapped[str | None] = mapped_column(String(255), nullable=True)
    color: Mapped[str | None] = mapped_column(String(20), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    start_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    end_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    external_uid: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_by: Mapped[str | None] = mapped_column(String(255), nullable=True)

    __table_args__ = (Index("ix_calendar_blocks_unit_source", "unit_id", "source"),)

    def __repr__(self) -> str:
        return f"<CalendarBlock(id={self.id}, unit_id={self.unit_id}, source={self.source!r})>"
