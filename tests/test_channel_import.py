"""Tests for iCal channel imports."""

import uuid
from datetime import date, datetime, timezone

import httpx
import pytest

from stayengine.availability.aggregator import Window
from stayengine.errors import PermissionDeniedError, UpstreamError, ValidationError
from stayengine.services.channel_import import import_channel_feed, parse_ical_feed

FEED = """BEGIN:VCALENDAR
VERSION:2.0
PRODID:-//Airbnb Inc//Hosting Calendar 1.0//EN
BEGIN:VEVENT
DTSTART;VALUE=DATE:20250710
DTEND;VALUE=DATE:20250713
UID:1418fb94e984-0001@airbnb.com
SUMMARY:Reserved
END:VEVENT
BEGIN:VEVENT
DTSTART;VALUE=DATE:20250720
UID:1418fb94e984-0002@airbnb.com
SUMMARY:Airbnb (Not available)
END:VEVENT
BEGIN:VEVENT
DTSTART:20250801T150000Z
DTEND:20250803T100000Z
UID:1418fb94e984-0003@airbnb.com
END:VEVENT
BEGIN:VEVENT
DTSTART:20250805T150000Z
UID:no-end@airbnb.com
END:VEVENT
END:VCALENDAR
"""

FEED_URL = "https://www.airbnb.com/calendar/ical/52260561.ics"


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _serve(body: str, status_code: int = 200):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, text=body)

    return handler


class TestParseFeed:
    def test_parses_events(self) -> None:
        events = parse_ical_feed(FEED)
        assert len(events) == 4
        first = events[0]
        assert first.uid == "1418fb94e984-0001@airbnb.com"
        assert first.start == date(2025, 7, 10)
        assert first.end == date(2025, 7, 13)
        assert first.summary == "Reserved"

    def test_all_day_without_dtend_lasts_one_day(self) -> None:
        events = parse_ical_feed(FEED)
        assert events[1].end == date(2025, 7, 21)

    def test_timed_event(self) -> None:
        events = parse_ical_feed(FEED)
        assert events[2].start == datetime(2025, 8, 1, 15, tzinfo=timezone.utc)

    def test_timed_event_without_end_has_no_end(self) -> None:
        assert parse_ical_feed(FEED)[3].end is None


class TestImportChannelFeed:
    async def test_import_writes_blocks(self, store, directory, test_unit) -> None:
        async with _client(_serve(FEED)) as client:
            count = await import_channel_feed(store, directory, client, test_unit.id, FEED_URL, "airbnb")
        assert count == 3

        records = await store.fetch_blocks(test_unit.id, Window(date(2025, 7, 1), date(2025, 9, 1)))
        by_uid = {r.external_uid: r for r in records}
        reserved = by_uid["1418fb94e984-0001@airbnb.com"]
        assert (reserved.start_date, reserved.end_date) == (date(2025, 7, 10), date(2025, 7, 12))
        assert reserved.source == "airbnb"
        single = by_uid["1418fb94e984-0002@airbnb.com"]
        assert (single.start_date, single.end_date) == (date(2025, 7, 20), date(2025, 7, 20))
        timed = by_uid["1418fb94e984-0003@airbnb.com"]
        assert timed.start_date is None
        assert timed.start_at == datetime(2025, 8, 1, 15, tzinfo=timezone.utc)

    async def test_reimport_replaces_previous_events(self, store, directory, test_unit) -> None:
        async with _client(_serve(FEED)) as client:
            await import_channel_feed(store, directory, client, test_unit.id, FEED_URL, "airbnb")
        empty = "BEGIN:VCALENDAR\nVERSION:2.0\nPRODID:-//x//EN\nEND:VCALENDAR\n"
        async with _client(_serve(empty)) as client:
            count = await import_channel_feed(store, directory, client, test_unit.id, FEED_URL, "airbnb")
        assert count == 0
        assert await store.fetch_blocks(test_unit.id, Window(date(2025, 7, 1), date(2025, 9, 1))) == []

    async def test_feed_http_error(self, store, directory, test_unit) -> None:
        async with _client(_serve("gone", status_code=404)) as client:
            with pytest.raises(UpstreamError):
                await import_channel_feed(store, directory, client, test_unit.id, FEED_URL, "airbnb")

    async def test_unknown_source(self, store, directory, test_unit) -> None:
        async with _client(_serve(FEED)) as client:
            with pytest.raises(ValidationError) as exc:
                await import_channel_feed(store, directory, client, test_unit.id, FEED_URL, "manual")
        assert exc.value.code == "invalid_source"

    async def test_permission_required(self, store, directory) -> None:
        async with _client(_serve(FEED)) as client:
            with pytest.raises(PermissionDeniedError):
                await import_channel_feed(
                    store, directory, client, uuid.uuid4(), FEED_URL, "airbnb", can_manage_blocks=False
                )
