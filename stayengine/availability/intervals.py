"""Interval normalizer — raw occupancy records to half-open intervals.

Bookings arrive as check-in/check-out instants, manual and channel blocks as
inclusive calendar dates (or instants for hourly holds), iCal imports as
DTSTART/DTEND values. Each is turned into one ``OccupancyInterval`` with an
aware ``[start, end)`` pair, or dropped when its bounds are unusable.

Day keys are always computed against the unit's timezone, never the
process's local clock.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo

logger = logging.getLogger(__name__)

ONE_DAY = timedelta(days=1)

# Interval sources
SOURCE_BOOKING = "booking"
SOURCE_MANUAL_BLOCK = "manual-block"
SOURCE_CHANNEL_IMPORT = "channel-import"

# Interval kinds
KIND_BOOKED = "booked"
KIND_BLOCKED = "blocked"

# Bookings in these states hold their nights
OCCUPYING_BOOKING_STATUSES = {"pending", "awaiting_payment", "approved", "confirmed", "paid"}
NIGHTLY_STAY_TYPES = {"nightly", "crashpad"}

# calendar_blocks.source values
BLOCK_SOURCE_MANUAL = "manual"
CHANNEL_SOURCES = {"airbnb", "vrbo", "bookingcom", "expedia", "other"}


@dataclass(frozen=True)
class BookingRecord:
    """A booking row as read from the record store."""

    id: uuid.UUID
    unit_id: uuid.UUID
    check_in_at: datetime | str | None
    check_out_at: datetime | str | None
    status: str | None = "confirmed"
    stay_type: str | None = "nightly"
    channel: str | None = "direct"


@dataclass(frozen=True)
class BlockRecord:
    """A calendar block row (manual hold or channel import)."""

    id: uuid.UUID
    unit_id: uuid.UUID
    source: str | None = BLOCK_SOURCE_MANUAL
    label: str | None = None
    start_date: date | str | None = None
    end_date: date | str | None = None  # inclusive
    start_at: datetime | str | None = None
    end_at: datetime | str | None = None
    color: str | None = None
    notes: str | None = None
    external_uid: str | None = None
    created_by: str | None = None


@dataclass(frozen=True)
class ChannelEvent:
    """A VEVENT parsed from a channel's iCal feed. ``end`` is exclusive."""

    uid: str | None
    start: date | datetime | None
    end: date | datetime | None
    summary: str | None = None
    url: str | None = None


@dataclass(frozen=True)
class OccupancyInterval:
    unit_id: uuid.UUID
    source: str
    kind: str
    start: datetime
    end: datetime  # exclusive
    status: str | None = None
    record_id: str | None = None

    def __post_init__(self) -> None:
        if self.start.tzinfo is None or self.end.tzinfo is None:
            raise ValueError("OccupancyInterval bounds must be timezone-aware")
        if self.end <= self.start:
            raise ValueError(f"OccupancyInterval end {self.end} is not after start {self.start}")

    def day_range(self, tz: tzinfo) -> tuple[date, date]:
        """Return the unit-local ``[first_day, last_day)`` this interval occupies.

        The day holding ``end`` is excluded (a checkout morning frees the
        night), but an interval inside a single day still occupies that day.
        """
        first = self.start.astimezone(tz).date()
        last = self.end.astimezone(tz).date()
        return first, max(last, first + ONE_DAY)


def local_midnight(day: date, tz: tzinfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz)


def iter_days(first: date, last: date) -> Iterator[date]:
    """Yield every day in ``[first, last)``."""
    cursor = first
    while cursor < last:
        yield cursor
        cursor += ONE_DAY


def _coerce_instant(value: datetime | date | str | None) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    if not isinstance(value, datetime):
        return None
    # Naive instants from the store or a feed are UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def _coerce_date(value: date | str | None) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


def _build(unit_id, source, kind, start, end, status=None, record_id=None) -> OccupancyInterval | None:
    if start is None or end is None or end <= start:
        logger.debug("Dropping %s record %s with unusable bounds (%s, %s)", source, record_id, start, end)
        return None
    return OccupancyInterval(
        unit_id=unit_id,
        source=source,
        kind=kind,
        start=start,
        end=end,
        status=status,
        record_id=record_id,
    )


def resolve_block_source(source: str | None, label: str | None) -> str:
    """Map a stored block source (or, failing that, its label) to a channel name."""
    normalized = (source or "").strip().lower()
    if normalized:
        if normalized in CHANNEL_SOURCES or normalized == BLOCK_SOURCE_MANUAL:
            return normalized
        return "other"
    fallback = (label or "").lower()
    if "airbnb" in fallback:
        return "airbnb"
    if "vrbo" in fallback:
        return "vrbo"
    if "booking" in fallback:
        return "bookingcom"
    if "expedia" in fallback:
        return "expedia"
    return BLOCK_SOURCE_MANUAL


def normalize_booking(record: BookingRecord) -> OccupancyInterval | None:
    """Booked interval ``[check_in_at, check_out_at)``, or ``None`` if it holds no nights."""
    if record.status not in OCCUPYING_BOOKING_STATUSES:
        return None
    if (record.stay_type or "nightly") not in NIGHTLY_STAY_TYPES:
        return None
    return _build(
        record.unit_id,
        SOURCE_BOOKING,
        KIND_BOOKED,
        _coerce_instant(record.check_in_at),
        _coerce_instant(record.check_out_at),
        status=record.status,
        record_id=str(record.id),
    )


def normalize_block(record: BlockRecord, tz: tzinfo) -> OccupancyInterval | None:
    """Blocked interval for a calendar block.

    Date blocks are inclusive ``[start_date, end_date]`` and become
    ``[start_date, end_date + 1 day)`` at unit-local midnight; hourly blocks
    keep their instants.
    """
    channel = resolve_block_source(record.source, record.label)
    source = SOURCE_MANUAL_BLOCK if channel == BLOCK_SOURCE_MANUAL else SOURCE_CHANNEL_IMPORT

    if record.start_at is not None or record.end_at is not None:
        start = _coerce_instant(record.start_at)
        end = _coerce_instant(record.end_at)
    else:
        start_day = _coerce_date(record.start_date)
        end_day = _coerce_date(record.end_date)
        start = local_midnight(start_day, tz) if start_day else None
        end = local_midnight(end_day + ONE_DAY, tz) if end_day else None

    return _build(record.unit_id, source, KIND_BLOCKED, start, end, status=channel, record_id=str(record.id))


def normalize_channel_event(event: ChannelEvent, unit_id: uuid.UUID, tz: tzinfo) -> OccupancyInterval | None:
    """Blocked interval for an imported iCal event (DTEND already exclusive)."""
    start: datetime | None
    end: datetime | None
    if isinstance(event.start, datetime) or isinstance(event.end, datetime):
        start = _coerce_instant(event.start)
        end = _coerce_instant(event.end)
    else:
        start = local_midnight(event.start, tz) if event.start else None
        end = local_midnight(event.end, tz) if event.end else None
    return _build(unit_id, SOURCE_CHANNEL_IMPORT, KIND_BLOCKED, start, end, record_id=event.uid)


def normalize_all(
    bookings: Iterable[BookingRecord],
    blocks: Iterable[BlockRecord],
    tz: tzinfo,
) -> list[OccupancyInterval]:
    intervals = [normalize_booking(b) for b in bookings]
    intervals.extend(normalize_block(b, tz) for b in blocks)
    return [i for i in intervals if i is not None]
