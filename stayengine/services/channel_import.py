"""Channel import — pull an external iCal feed into calendar blocks.

Each import replaces every block previously imported for the same unit and
channel, so re-running it with an unchanged feed is a no-op and events the
channel has dropped disappear.
"""

import logging
import uuid
from datetime import date, datetime, time, timedelta, tzinfo

import httpx
from icalendar import Calendar

from stayengine.availability.intervals import (
    CHANNEL_SOURCES,
    ChannelEvent,
    OccupancyInterval,
    normalize_channel_event,
)
from stayengine.errors import UpstreamError, ValidationError
from stayengine.services.block_service import require_block_permission
from stayengine.services.record_store import BlockDraft, RecordStore
from stayengine.services.unit_directory import UnitDirectory

logger = logging.getLogger(__name__)

CHANNEL_LABELS = {
    "airbnb": "Airbnb",
    "vrbo": "Vrbo",
    "bookingcom": "Booking.com",
    "expedia": "Expedia",
    "other": "External calendar",
}


def _text(component, key: str) -> str | None:
    value = component.get(key)
    if value is None:
        return None
    return str(value).strip() or None


def parse_ical_feed(payload: str | bytes) -> list[ChannelEvent]:
    """Parse VEVENTs into ``ChannelEvent`` values with an exclusive end.

    An event without DTEND lasts its DURATION, or one day for an all-day
    DTSTART. Events without a usable DTSTART are skipped.
    """
    try:
        calendar = Calendar.from_ical(payload)
    except ValueError as e:
        raise ValidationError(f"Could not parse iCal feed: {e}", code="invalid_feed") from e

    events: list[ChannelEvent] = []
    for component in calendar.walk("VEVENT"):
        dtstart = component.get("dtstart")
        if dtstart is None:
            continue
        start = dtstart.dt
        if not isinstance(start, date):
            continue

        dtend = component.get("dtend")
        duration = component.get("duration")
        if dtend is not None:
            end = dtend.dt
        elif duration is not None:
            end = start + duration.dt
        elif isinstance(start, datetime):
            end = None
        else:
            end = start + timedelta(days=1)

        events.append(
            ChannelEvent(
                uid=_text(component, "uid"),
                start=start,
                end=end,
                summary=_text(component, "summary"),
                url=_text(component, "url"),
            )
        )
    return events


async def fetch_feed(client: httpx.AsyncClient, url: str) -> str:
    try:
        response = await client.get(url, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPError as e:
        logger.exception("Fetching iCal feed %s failed", url)
        raise UpstreamError("Unable to fetch iCal feed") from e
    return response.text


def _is_midnight(value: datetime) -> bool:
    return value.time() == time.min


def draft_from_interval(
    interval: OccupancyInterval,
    event: ChannelEvent,
    source: str,
    tz: tzinfo,
) -> BlockDraft:
    """Store whole unit-local days as inclusive dates, anything else as instants."""
    label = event.summary or CHANNEL_LABELS.get(source, source)
    local_start = interval.start.astimezone(tz)
    local_end = interval.end.astimezone(tz)
    if _is_midnight(local_start) and _is_midnight(local_end):
        return BlockDraft(
            unit_id=interval.unit_id,
            source=source,
            label=label,
            start_date=local_start.date(),
            end_date=local_end.date() - timedelta(days=1),
            external_uid=event.uid,
            notes=event.url,
        )
    return BlockDraft(
        unit_id=interval.unit_id,
        source=source,
        label=label,
        start_at=interval.start,
        end_at=interval.end,
        external_uid=event.uid,
        notes=event.url,
    )


async def import_channel_feed(
    store: RecordStore,
    directory: UnitDirectory,
    client: httpx.AsyncClient,
    unit_id: uuid.UUID,
    url: str,
    source: str,
    *,
    can_manage_blocks: bool = True,
) -> int:
    """Fetch ``url`` and replace the unit's ``source`` blocks with its events.

    Returns the number of blocks written.
    """
    require_block_permission(can_manage_blocks)
    source = (source or "").strip().lower()
    if source not in CHANNEL_SOURCES:
        raise ValidationError(f"Unknown channel {source!r}", code="invalid_source")

    unit = await directory.get_unit(unit_id)
    events = parse_ical_feed(await fetch_feed(client, url))

    drafts: list[BlockDraft] = []
    for event in events:
        interval = normalize_channel_event(event, unit.id, unit.timezone)
        if interval is None:
            continue
        drafts.append(draft_from_interval(interval, event, source, unit.timezone))

    count = await store.replace_channel_blocks(unit.id, source, drafts)
    logger.info(
        "Imported %d %s events for unit %s (%d skipped)",
        count,
        source,
        unit.id,
        len(events) - count,
    )
    return count
