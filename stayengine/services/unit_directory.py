"""Unit directory — nightly rate, currency and timezone per unit."""

import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Protocol
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from stayengine.config import settings
from stayengine.errors import NotFoundError, UpstreamError
from stayengine.models import Unit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UnitInfo:
    id: uuid.UUID
    name: str
    nightly_rate_minor: int | None
    currency: str
    timezone: ZoneInfo
    booking_unit: str = "nightly"
    min_nights: int = 1
    host_id: uuid.UUID | None = None

    @property
    def is_hourly(self) -> bool:
        return self.booking_unit == "hourly"

    def today(self, now: datetime | None = None) -> date:
        """The current calendar day at the unit, not on this server."""
        now = now or datetime.now(timezone.utc)
        return now.astimezone(self.timezone).date()


class UnitDirectory(Protocol):
    async def get_unit(self, unit_id: uuid.UUID) -> UnitInfo: ...


def _resolve_timezone(name: str | None, unit_id: uuid.UUID) -> ZoneInfo:
    try:
        return ZoneInfo(name or settings.default_timezone)
    except (ZoneInfoNotFoundError, ValueError):
        raise UpstreamError(
            f"Unit {unit_id} has an unknown timezone {name!r}", code="invalid_unit_record"
        ) from None


def unit_info_from_row(unit: Unit) -> UnitInfo:
    return UnitInfo(
        id=unit.id,
        name=unit.name,
        nightly_rate_minor=unit.nightly_rate_minor,
        currency=unit.currency or settings.currency,
        timezone=_resolve_timezone(unit.timezone, unit.id),
        booking_unit=unit.booking_unit or "nightly",
        min_nights=max(1, unit.min_nights or 1),
        host_id=unit.host_id,
    )


class SqlUnitDirectory:
    """Reads units from the ``units`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_unit(self, unit_id: uuid.UUID) -> UnitInfo:
        try:
            async with self._session_factory() as session:
                result = await session.execute(select(Unit).where(Unit.id == unit_id))
                unit = result.scalar_one_or_none()
        except (SQLAlchemyError, OSError) as e:
            logger.exception("Unit lookup failed for %s", unit_id)
            raise UpstreamError("Unit directory unavailable") from e

        if unit is None:
            raise NotFoundError("Unit not found", code="unit_not_found")
        return unit_info_from_row(unit)
