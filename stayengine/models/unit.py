"""Unit model — a bookable rental unit with its nightly rate and timezone."""

import uuid

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from stayengine.database import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Unit(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A listing's rentable unit. Rates are stored in minor currency units."""

    __tablename__ = "units"

    host_id: Mapped[uuid.UUID | None] = mapped_column(nullable=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    nightly_rate_minor: Mapped[int | None] = mapped_column(Integer, default=None)
    currency: Mapped[str] = mapped_column(String(3), default="GBP", nullable=False)
    timezone: Mapped[str | None] = mapped_column(String(64), default=None)  # IANA name, e.g. Europe/London
    booking_unit: Mapped[str] = mapped_column(String(20), default="nightly", nullable=False)  # nightly, hourly
    min_nights: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    def __repr__(self) -> str:
        return f"<Unit(id={self.id}, name={self.name!r}, rate={self.nightly_rate_minor})>"
