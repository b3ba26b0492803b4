"""Availability service — fetch, normalize and aggregate one unit's occupancy."""

import asyncio
import logging
import uuid
from datetime import date, timedelta

from stayengine.availability.aggregator import OccupancyVerdict, Window, aggregate
from stayengine.availability.intervals import normalize_all
from stayengine.errors import UpstreamError, ValidationError
from stayengine.services.record_store import RecordStore
from stayengine.services.unit_directory import UnitDirectory, UnitInfo

logger = logging.getLogger(__name__)


def validate_query_window(date_from: date, date_to: date, max_days: int) -> None:
    """Reject reversed, empty or oversized occupancy queries."""
    if date_to <= date_from:
        raise ValidationError("`to` must be after `from`", code="invalid_window")
    if date_to - date_from > timedelta(days=max_days):
        raise ValidationError(
            f"Date window too large (maximum {max_days} days)", code="window_too_large"
        )


async def load_occupancy(
    store: RecordStore,
    unit: UnitInfo,
    window: Window,
    *,
    best_effort: bool = False,
) -> OccupancyVerdict:
    """Fetch bookings and blocks concurrently and aggregate them.

    Either fetch failing fails the whole call. With ``best_effort`` (display
    paths only) an upstream failure yields an empty verdict flagged
    ``degraded`` instead; pricing and booking code must never pass it.
    """
    try:
        bookings, blocks = await asyncio.gather(
            store.fetch_bookings(unit.id, window),
            store.fetch_blocks(unit.id, window),
        )
    except UpstreamError:
        if not best_effort:
            raise
        logger.warning(
            "Serving degraded (empty) occupancy for unit %s over %s..%s",
            unit.id,
            window.start,
            window.end,
        )
        return OccupancyVerdict.empty(window, degraded=True)

    intervals = normalize_all(bookings, blocks, unit.timezone)
    return aggregate(intervals, window)


async def get_occupancy(
    store: RecordStore,
    directory: UnitDirectory,
    unit_id: uuid.UUID,
    date_from: date,
    date_to: date,
    *,
    max_days: int = 120,
    best_effort: bool = False,
) -> OccupancyVerdict:
    """Occupancy verdict for ``[date_from, date_to)`` in the unit's timezone."""
    validate_query_window(date_from, date_to, max_days)
    unit = await directory.get_unit(unit_id)
    window = Window(start=date_from, end=date_to, tz=unit.timezone)
    return await load_occupancy(store, unit, window, best_effort=best_effort)
