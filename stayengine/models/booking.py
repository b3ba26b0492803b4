"""Booking model — guest reservations with their pricing snapshot."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from stayengine.database import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Booking(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A reservation of a unit between two instants.

    The pricing columns freeze the quote the guest accepted; ``pricing_version``
    says which fee formula produced them.
    """

    __tablename__ = "bookings"

    unit_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("units.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    check_in_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    check_out_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[str] = mapped_column(
        String(50),
        default="awaiting_payment",
        index=True,
    )  # pending, awaiting_payment, approved, confirmed, paid, completed, declined, cancelled
    stay_type: Mapped[str] = mapped_column(String(20), default="nightly")  # nightly, crashpad, day_use
    channel: Mapped[str] = mapped_column(String(20), default="direct")
    guest_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Pricing snapshot (minor units)
    nights: Mapped[int | None] = mapped_column(Integer, nullable=True)
    currency: Mapped[str] = mapped_column(String(3), default="GBP")
    host_net_total_minor: Mapped[int | None] = mapped_column(Integer, nullable=True)
    guest_total_minor: Mapped[int | None] = mapped_column(Integer, nullable=True)
    guest_unit_price_minor: Mapped[int | None] = mapped_column(Integer, nullable=True)
    service_fee_bps: Mapped[int | None] = mapped_column(Integer, nullable=True)
    processor_var_bps: Mapped[int | None] = mapped_column(Integer, nullable=True)
    processor_fixed_minor: Mapped[int | None] = mapped_column(Integer, nullable=True)
    pricing_version: Mapped[str | None] = mapped_column(String(64), nullable=True)

    __table_args__ = (Index("ix_bookings_unit_check_in", "unit_id", "check_in_at"),)

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, unit_id={self.unit_id}, status={self.status})>"
