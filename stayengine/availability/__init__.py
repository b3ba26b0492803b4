"""Occupancy reconciliation: normalizer, aggregator and calendar window."""

from stayengine.availability.aggregator import OccupancyVerdict, Window, aggregate
from stayengine.availability.intervals import (
    BlockRecord,
    BookingRecord,
    ChannelEvent,
    OccupancyInterval,
    normalize_all,
    normalize_block,
    normalize_booking,
    normalize_channel_event,
)
from stayengine.availability.window import FetchTicket, WindowManager, WindowState

__all__ = [
    "BlockRecord",
    "BookingRecord",
    "ChannelEvent",
    "FetchTicket",
    "OccupancyInterval",
    "OccupancyVerdict",
    "Window",
    "WindowManager",
    "WindowState",
    "aggregate",
    "normalize_all",
    "normalize_block",
    "normalize_booking",
    "normalize_channel_event",
]
