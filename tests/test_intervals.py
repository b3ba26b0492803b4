"""Tests for the interval normalizer."""

import uuid
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from stayengine.availability.intervals import (
    KIND_BLOCKED,
    KIND_BOOKED,
    SOURCE_BOOKING,
    SOURCE_CHANNEL_IMPORT,
    SOURCE_MANUAL_BLOCK,
    BlockRecord,
    BookingRecord,
    ChannelEvent,
    OccupancyInterval,
    normalize_all,
    normalize_block,
    normalize_booking,
    normalize_channel_event,
    resolve_block_source,
)

UNIT = uuid.uuid4()
LONDON = ZoneInfo("Europe/London")
UTC = timezone.utc


def _booking(check_in, check_out, **kwargs) -> BookingRecord:
    return BookingRecord(id=uuid.uuid4(), unit_id=UNIT, check_in_at=check_in, check_out_at=check_out, **kwargs)


class TestOccupancyInterval:
    def test_reversed_bounds_rejected(self) -> None:
        start = datetime(2025, 6, 2, tzinfo=UTC)
        with pytest.raises(ValueError):
            OccupancyInterval(UNIT, SOURCE_BOOKING, KIND_BOOKED, start, start - timedelta(hours=1))

    def test_naive_bounds_rejected(self) -> None:
        with pytest.raises(ValueError):
            OccupancyInterval(UNIT, SOURCE_BOOKING, KIND_BOOKED, datetime(2025, 6, 1), datetime(2025, 6, 2))

    def test_checkout_day_excluded(self) -> None:
        interval = OccupancyInterval(
            UNIT,
            SOURCE_BOOKING,
            KIND_BOOKED,
            datetime(2025, 6, 1, 14, tzinfo=UTC),
            datetime(2025, 6, 3, 10, tzinfo=UTC),
        )
        assert interval.day_range(UTC) == (date(2025, 6, 1), date(2025, 6, 3))

    def test_same_day_interval_occupies_its_day(self) -> None:
        interval = OccupancyInterval(
            UNIT,
            SOURCE_MANUAL_BLOCK,
            KIND_BLOCKED,
            datetime(2025, 6, 1, 9, tzinfo=UTC),
            datetime(2025, 6, 1, 12, tzinfo=UTC),
        )
        assert interval.day_range(UTC) == (date(2025, 6, 1), date(2025, 6, 2))

    def test_days_follow_the_unit_timezone(self) -> None:
        # 23:30 UTC on 31 May is already 1 June in London (BST)
        interval = OccupancyInterval(
            UNIT,
            SOURCE_BOOKING,
            KIND_BOOKED,
            datetime(2025, 5, 31, 23, 30, tzinfo=UTC),
            datetime(2025, 6, 2, 9, tzinfo=UTC),
        )
        assert interval.day_range(LONDON) == (date(2025, 6, 1), date(2025, 6, 2))
        assert interval.day_range(UTC) == (date(2025, 5, 31), date(2025, 6, 2))


class TestNormalizeBooking:
    def test_confirmed_booking(self) -> None:
        interval = normalize_booking(
            _booking(datetime(2025, 6, 1, 14, tzinfo=UTC), datetime(2025, 6, 3, 10, tzinfo=UTC))
        )
        assert interval is not None
        assert interval.kind == KIND_BOOKED
        assert interval.source == SOURCE_BOOKING

    def test_iso_strings_are_parsed(self) -> None:
        interval = normalize_booking(_booking("2025-06-01T14:00:00Z", "2025-06-03T10:00:00Z"))
        assert interval is not None
        assert interval.start == datetime(2025, 6, 1, 14, tzinfo=UTC)

    @pytest.mark.parametrize("status", ["cancelled", "declined", "completed", None])
    def test_non_occupying_status_dropped(self, status) -> None:
        record = _booking(datetime(2025, 6, 1, tzinfo=UTC), datetime(2025, 6, 2, tzinfo=UTC), status=status)
        assert normalize_booking(record) is None

    def test_day_use_dropped(self) -> None:
        record = _booking(
            datetime(2025, 6, 1, 9, tzinfo=UTC), datetime(2025, 6, 1, 17, tzinfo=UTC), stay_type="day_use"
        )
        assert normalize_booking(record) is None

    @pytest.mark.parametrize(
        ("check_in", "check_out"),
        [
            (None, datetime(2025, 6, 2, tzinfo=UTC)),
            ("not a date", "2025-06-02T00:00:00Z"),
            (datetime(2025, 6, 3, tzinfo=UTC), datetime(2025, 6, 1, tzinfo=UTC)),
        ],
    )
    def test_unusable_bounds_dropped(self, check_in, check_out) -> None:
        assert normalize_booking(_booking(check_in, check_out)) is None


class TestNormalizeBlock:
    def test_inclusive_dates_become_half_open(self) -> None:
        block = BlockRecord(id=uuid.uuid4(), unit_id=UNIT, start_date=date(2025, 7, 10), end_date=date(2025, 7, 12))
        interval = normalize_block(block, LONDON)
        assert interval is not None
        assert interval.start == datetime(2025, 7, 10, tzinfo=LONDON)
        assert interval.end == datetime(2025, 7, 13, tzinfo=LONDON)
        assert interval.day_range(LONDON) == (date(2025, 7, 10), date(2025, 7, 13))
        assert interval.source == SOURCE_MANUAL_BLOCK

    def test_single_day_block(self) -> None:
        block = BlockRecord(id=uuid.uuid4(), unit_id=UNIT, start_date="2025-07-10", end_date="2025-07-10")
        interval = normalize_block(block, LONDON)
        assert interval is not None
        assert interval.day_range(LONDON) == (date(2025, 7, 10), date(2025, 7, 11))

    def test_instant_block(self) -> None:
        block = BlockRecord(
            id=uuid.uuid4(),
            unit_id=UNIT,
            start_at=datetime(2025, 7, 10, 9, tzinfo=UTC),
            end_at=datetime(2025, 7, 10, 17, tzinfo=UTC),
        )
        interval = normalize_block(block, LONDON)
        assert interval is not None
        assert interval.end - interval.start == timedelta(hours=8)

    def test_reversed_dates_dropped(self) -> None:
        block = BlockRecord(id=uuid.uuid4(), unit_id=UNIT, start_date=date(2025, 7, 12), end_date=date(2025, 7, 10))
        assert normalize_block(block, LONDON) is None

    def test_channel_block_source(self) -> None:
        block = BlockRecord(
            id=uuid.uuid4(), unit_id=UNIT, source="airbnb", start_date=date(2025, 7, 1), end_date=date(2025, 7, 2)
        )
        interval = normalize_block(block, LONDON)
        assert interval is not None
        assert interval.source == SOURCE_CHANNEL_IMPORT
        assert interval.status == "airbnb"

    @pytest.mark.parametrize(
        ("source", "label", "expected"),
        [
            ("manual", None, "manual"),
            ("VRBO", None, "vrbo"),
            ("somewhere", None, "other"),
            (None, "Airbnb (Not available)", "airbnb"),
            (None, "Booking.com hold", "bookingcom"),
            (None, "Owner stay", "manual"),
        ],
    )
    def test_resolve_block_source(self, source, label, expected) -> None:
        assert resolve_block_source(source, label) == expected


class TestNormalizeChannelEvent:
    def test_all_day_event_uses_unit_midnight(self) -> None:
        event = ChannelEvent(uid="abc@airbnb", start=date(2025, 8, 1), end=date(2025, 8, 4))
        interval = normalize_channel_event(event, UNIT, LONDON)
        assert interval is not None
        assert interval.day_range(LONDON) == (date(2025, 8, 1), date(2025, 8, 4))
        assert interval.record_id == "abc@airbnb"

    def test_timed_event(self) -> None:
        event = ChannelEvent(
            uid="x", start=datetime(2025, 8, 1, 15, tzinfo=UTC), end=datetime(2025, 8, 3, 11, tzinfo=UTC)
        )
        interval = normalize_channel_event(event, UNIT, LONDON)
        assert interval is not None
        assert interval.day_range(LONDON) == (date(2025, 8, 1), date(2025, 8, 3))

    def test_missing_end_dropped(self) -> None:
        event = ChannelEvent(uid="x", start=datetime(2025, 8, 1, 15, tzinfo=UTC), end=None)
        assert normalize_channel_event(event, UNIT, LONDON) is None


class TestNormalizeAll:
    def test_mixed_records(self) -> None:
        bookings = [
            _booking(datetime(2025, 6, 1, 14, tzinfo=UTC), datetime(2025, 6, 3, 10, tzinfo=UTC)),
            _booking(datetime(2025, 6, 5, tzinfo=UTC), datetime(2025, 6, 6, tzinfo=UTC), status="cancelled"),
        ]
        blocks = [BlockRecord(id=uuid.uuid4(), unit_id=UNIT, start_date=date(2025, 6, 8), end_date=date(2025, 6, 9))]
        intervals = normalize_all(bookings, blocks, LONDON)
        assert [i.kind for i in intervals] == [KIND_BOOKED, KIND_BLOCKED]
