"""Shared API dependencies — single import point for all routers.

Collaborators (record store, unit directory, fee schedule, HTTP client,
clock) are built here per request so tests can swap any of them through
``app.dependency_overrides``::

    from stayengine.api.deps import get_record_store, get_unit_directory
"""

from collections.abc import AsyncIterator, Callable
from datetime import datetime, timezone

import httpx
from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from stayengine.availability.window import WindowRegistry
from stayengine.config import settings
from stayengine.database import get_session_factory
from stayengine.pricing import get_fee_schedule
from stayengine.pricing.engine import FeeSchedule
from stayengine.pricing.quotes import QuoteService
from stayengine.services.record_store import RecordStore, SqlRecordStore
from stayengine.services.unit_directory import SqlUnitDirectory, UnitDirectory

Clock = Callable[[], datetime]

_TRUTHY = {"1", "true", "yes"}

_window_registry = WindowRegistry(settings.window_registry_max_sessions)


def get_record_store(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> RecordStore:
    return SqlRecordStore(session_factory)


def get_unit_directory(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> UnitDirectory:
    return SqlUnitDirectory(session_factory)


def get_quote_service(
    directory: UnitDirectory = Depends(get_unit_directory),
    schedule: FeeSchedule = Depends(get_fee_schedule),
) -> QuoteService:
    return QuoteService(directory, schedule, settings.unit_price_mode)


def get_clock() -> Clock:
    """Current UTC instant; overridden in tests to pin "today"."""
    return lambda: datetime.now(timezone.utc)


def get_window_registry() -> WindowRegistry:
    """Process-wide registry of per-session calendar windows."""
    return _window_registry


async def get_http_client() -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(timeout=settings.ical_fetch_timeout_seconds) as client:
        yield client


def can_manage_blocks(
    x_can_manage_blocks: str | None = Header(None, alias="X-Can-Manage-Blocks"),
) -> bool:
    """Permission verdict forwarded by the upstream auth layer.

    This service does not authenticate callers; it trusts the gateway's
    pre-checked header.
    """
    return (x_can_manage_blocks or "").strip().lower() in _TRUTHY


__all__ = [
    "Clock",
    "can_manage_blocks",
    "get_clock",
    "get_fee_schedule",
    "get_http_client",
    "get_quote_service",
    "get_record_store",
    "get_session_factory",
    "get_unit_directory",
    "get_window_registry",
]
