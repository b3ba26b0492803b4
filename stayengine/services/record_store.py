"""Record store — raw booking and block rows, plus block mutations.

The store is an explicit collaborator: services receive it as an argument
and never reach for a global client. ``SqlRecordStore`` opens a session per
read so callers can run the bookings and blocks fetches concurrently.
Database failures surface as ``UpstreamError``.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import AsyncIterator, Iterator, Sequence
from contextlib import AbstractAsyncContextManager, asynccontextmanager, contextmanager
from dataclasses import dataclass, fields
from datetime import date, datetime, timezone
from typing import Protocol

from sqlalchemy import and_, delete, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from stayengine.availability.aggregator import Window
from stayengine.availability.intervals import (
    BLOCK_SOURCE_MANUAL,
    NIGHTLY_STAY_TYPES,
    OCCUPYING_BOOKING_STATUSES,
    BlockRecord,
    BookingRecord,
    local_midnight,
)
from stayengine.errors import NotFoundError, UpstreamError, ValidationError
from stayengine.models import Booking, CalendarBlock, Unit

logger = logging.getLogger(__name__)

COMPLETED_BOOKING_STATUSES = {"confirmed", "completed"}
EDITABLE_BLOCK_FIELDS = {"notes", "label", "color"}


@dataclass(frozen=True)
class BlockDraft:
    """Values for a new calendar block. Exactly one range form is set."""

    unit_id: uuid.UUID
    source: str = BLOCK_SOURCE_MANUAL
    label: str | None = None
    start_date: date | None = None
    end_date: date | None = None  # inclusive
    start_at: datetime | None = None
    end_at: datetime | None = None
    color: str | None = None
    notes: str | None = None
    external_uid: str | None = None
    created_by: str | None = None

    def __post_init__(self) -> None:
        has_dates = self.start_date is not None or self.end_date is not None
        has_instants = self.start_at is not None or self.end_at is not None
        if has_dates == has_instants:
            raise ValidationError("Give either a date range or an instant range", code="invalid_range")
        if has_dates:
            if self.start_date is None or self.end_date is None:
                raise ValidationError("start_date and end_date are both required", code="invalid_range")
            if self.end_date < self.start_date:
                raise ValidationError("end_date must be on or after start_date", code="reversed_range")
        else:
            if self.start_at is None or self.end_at is None:
                raise ValidationError("start_at and end_at are both required", code="invalid_range")
            if self.start_at.tzinfo is None or self.end_at.tzinfo is None:
                raise ValidationError("start_at and end_at must carry a UTC offset", code="invalid_range")
            if self.end_at <= self.start_at:
                raise ValidationError("end_at must be after start_at", code="reversed_range")


@dataclass(frozen=True)
class BookingDraft:
    unit_id: uuid.UUID
    check_in_at: datetime
    check_out_at: datetime
    nights: int
    currency: str
    host_net_total_minor: int
    guest_total_minor: int
    guest_unit_price_minor: int
    service_fee_bps: int
    processor_var_bps: int
    processor_fixed_minor: int
    pricing_version: str
    status: str = "awaiting_payment"
    stay_type: str = "nightly"
    channel: str = "direct"
    guest_name: str | None = None


class UnitTransaction(Protocol):
    async def fetch_bookings(self, window: Window) -> list[BookingRecord]: ...

    async def fetch_blocks(self, window: Window) -> list[BlockRecord]: ...

    async def insert_booking(self, draft: BookingDraft) -> Booking: ...

    async def count_completed_bookings(self, host_id: uuid.UUID) -> int: ...


class RecordStore(Protocol):
    async def fetch_bookings(self, unit_id: uuid.UUID, window: Window) -> list[BookingRecord]: ...

    async def fetch_blocks(self, unit_id: uuid.UUID, window: Window) -> list[BlockRecord]: ...

    async def get_block(self, block_id: uuid.UUID) -> BlockRecord: ...

    async def create_block(self, draft: BlockDraft) -> BlockRecord: ...

    async def update_block(self, block_id: uuid.UUID, changes: dict) -> BlockRecord: ...

    async def delete_block(self, block_id: uuid.UUID) -> BlockRecord: ...

    async def replace_channel_blocks(
        self, unit_id: uuid.UUID, source: str, drafts: Sequence[BlockDraft]
    ) -> int: ...

    def locked_unit(
        self, unit_id: uuid.UUID, host_id: uuid.UUID | None = None
    ) -> AbstractAsyncContextManager[UnitTransaction]: ...


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _utc(value: datetime | None) -> datetime | None:
    """Aware UTC for writes and query bounds; naive values read back as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@contextmanager
def _translate_errors(action: str) -> Iterator[None]:
    try:
        yield
    except (SQLAlchemyError, OSError) as e:
        logger.exception("Record store failed to %s", action)
        raise UpstreamError(f"Record store unavailable ({action})") from e


def _window_instants(window: Window) -> tuple[datetime, datetime]:
    return (
        _utc(local_midnight(window.start, window.tz)),
        _utc(local_midnight(window.end, window.tz)),
    )


def _bookings_query(unit_id: uuid.UUID, window: Window):
    start_at, end_at = _window_instants(window)
    return select(Booking).where(
        Booking.unit_id == unit_id,
        Booking.check_in_at < end_at,
        Booking.check_out_at > start_at,
        Booking.status.in_(sorted(OCCUPYING_BOOKING_STATUSES)),
        Booking.stay_type.in_(sorted(NIGHTLY_STAY_TYPES)),
    )


def _blocks_query(unit_id: uuid.UUID, window: Window):
    start_at, end_at = _window_instants(window)
    return select(CalendarBlock).where(
        CalendarBlock.unit_id == unit_id,
        or_(
            and_(
                CalendarBlock.start_date.is_not(None),
                CalendarBlock.end_date.is_not(None),
                CalendarBlock.start_date < window.end,
                CalendarBlock.end_date >= window.start,
            ),
            and_(
                CalendarBlock.start_at.is_not(None),
                CalendarBlock.end_at.is_not(None),
                CalendarBlock.start_at < end_at,
                CalendarBlock.end_at > start_at,
            ),
        ),
    )


def _completed_bookings_query(host_id: uuid.UUID):
    return (
        select(func.count())
        .select_from(Booking)
        .join(Unit, Booking.unit_id == Unit.id)
        .where(
            Unit.host_id == host_id,
            Booking.status.in_(sorted(COMPLETED_BOOKING_STATUSES)),
        )
    )


def _booking_record(row: Booking) -> BookingRecord:
    return BookingRecord(
        id=row.id,
        unit_id=row.unit_id,
        check_in_at=_utc(row.check_in_at),
        check_out_at=_utc(row.check_out_at),
        status=row.status,
        stay_type=row.stay_type,
        channel=row.channel,
    )


def _block_record(row: CalendarBlock) -> BlockRecord:
    return BlockRecord(
        id=row.id,
        unit_id=row.unit_id,
        source=row.source,
        label=row.label,
        start_date=row.start_date,
        end_date=row.end_date,
        start_at=_utc(row.start_at),
        end_at=_utc(row.end_at),
        color=row.color,
        notes=row.notes,
        external_uid=row.external_uid,
        created_by=row.created_by,
    )


def _block_row(draft: BlockDraft) -> CalendarBlock:
    values = {f.name: getattr(draft, f.name) for f in fields(draft)}
    values["start_at"] = _utc(draft.start_at)
    values["end_at"] = _utc(draft.end_at)
    return CalendarBlock(**values)


# ---------------------------------------------------------------------------
# SQLAlchemy implementation
# ---------------------------------------------------------------------------


class SqlUnitTransaction:
    """Reads and writes inside one transaction holding the unit's row lock."""

    def __init__(self, session: AsyncSession, unit_id: uuid.UUID) -> None:
        self._session = session
        self.unit_id = unit_id

    async def fetch_bookings(self, window: Window) -> list[BookingRecord]:
        result = await self._session.execute(_bookings_query(self.unit_id, window))
        return [_booking_record(row) for row in result.scalars().all()]

    async def fetch_blocks(self, window: Window) -> list[BlockRecord]:
        result = await self._session.execute(_blocks_query(self.unit_id, window))
        return [_block_record(row) for row in result.scalars().all()]

    async def insert_booking(self, draft: BookingDraft) -> Booking:
        values = {f.name: getattr(draft, f.name) for f in fields(draft)}
        values["check_in_at"] = _utc(draft.check_in_at)
        values["check_out_at"] = _utc(draft.check_out_at)
        booking = Booking(**values)
        self._session.add(booking)
        await self._session.flush()
        await self._session.refresh(booking)
        return booking

    async def count_completed_bookings(self, host_id: uuid.UUID) -> int:
        result = await self._session.execute(_completed_bookings_query(host_id))
        return result.scalar_one()


class SqlRecordStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def fetch_bookings(self, unit_id: uuid.UUID, window: Window) -> list[BookingRecord]:
        with _translate_errors("fetch bookings"):
            async with self._session_factory() as session:
                result = await session.execute(_bookings_query(unit_id, window))
                return [_booking_record(row) for row in result.scalars().all()]

    async def fetch_blocks(self, unit_id: uuid.UUID, window: Window) -> list[BlockRecord]:
        with _translate_errors("fetch blocks"):
            async with self._session_factory() as session:
                result = await session.execute(_blocks_query(unit_id, window))
                return [_block_record(row) for row in result.scalars().all()]

    async def get_block(self, block_id: uuid.UUID) -> BlockRecord:
        with _translate_errors("load block"):
            async with self._session_factory() as session:
                row = await session.get(CalendarBlock, block_id)
        if row is None:
            raise NotFoundError("Manual block not found", code="block_not_found")
        return _block_record(row)

    async def create_block(self, draft: BlockDraft) -> BlockRecord:
        with _translate_errors("create block"):
            async with self._session_factory() as session, session.begin():
                row = _block_row(draft)
                session.add(row)
                await session.flush()
                await session.refresh(row)
                return _block_record(row)

    async def update_block(self, block_id: uuid.UUID, changes: dict) -> BlockRecord:
        unknown = set(changes) - EDITABLE_BLOCK_FIELDS
        if unknown:
            raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}", code="invalid_update")
        with _translate_errors("update block"):
            async with self._session_factory() as session, session.begin():
                row = await session.get(CalendarBlock, block_id)
                if row is None:
                    raise NotFoundError("Manual block not found", code="block_not_found")
                for field, value in changes.items():
                    setattr(row, field, value)
                await session.flush()
                await session.refresh(row)
                return _block_record(row)

    async def delete_block(self, block_id: uuid.UUID) -> BlockRecord:
        with _translate_errors("delete block"):
            async with self._session_factory() as session, session.begin():
                row = await session.get(CalendarBlock, block_id)
                if row is None:
                    raise NotFoundError("Manual block not found", code="block_not_found")
                record = _block_record(row)
                await session.delete(row)
                return record

    async def replace_channel_blocks(
        self, unit_id: uuid.UUID, source: str, drafts: Sequence[BlockDraft]
    ) -> int:
        """Swap every block imported from ``source`` for ``drafts`` in one transaction."""
        if source == BLOCK_SOURCE_MANUAL:
            raise ValidationError("Manual blocks cannot be replaced by an import", code="invalid_source")
        with _translate_errors("replace channel blocks"):
            async with self._session_factory() as session, session.begin():
                await session.execute(
                    delete(CalendarBlock).where(
                        CalendarBlock.unit_id == unit_id,
                        CalendarBlock.source == source,
                    )
                )
                session.add_all([_block_row(draft) for draft in drafts])
        return len(drafts)

    @asynccontextmanager
    async def locked_unit(
        self, unit_id: uuid.UUID, host_id: uuid.UUID | None = None
    ) -> AsyncIterator[SqlUnitTransaction]:
        """Open a transaction holding ``SELECT ... FOR UPDATE`` on the unit row.

        Concurrent booking attempts for the same unit queue on the lock, so
        the availability check and the insert see the same occupancy. With
        ``host_id`` every unit of that host is locked as well (in id order),
        which serialises reads of host-wide counts such as the first-booking
        waiver. Databases without row locks (SQLite) ignore the clause.
        """
        scope = Unit.id == unit_id
        if host_id is not None:
            scope = or_(scope, Unit.host_id == host_id)
        with _translate_errors("lock unit"):
            async with self._session_factory() as session, session.begin():
                result = await session.execute(
                    select(Unit.id).where(scope).order_by(Unit.id).with_for_update()
                )
                if unit_id not in set(result.scalars().all()):
                    raise NotFoundError("Unit not found", code="unit_not_found")
                yield SqlUnitTransaction(session, unit_id)
