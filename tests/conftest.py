"""Shared test configuration and fixtures.

Database tests run against a throwaway SQLite file per test (aiosqlite), so
no PostgreSQL instance is needed. API tests talk to the app through httpx's
``ASGITransport`` with the session factory, clock, fee schedule and
calendar window registry dependencies overridden.
"""

import uuid
from collections.abc import AsyncGenerator
from datetime import datetime, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from stayengine.api.deps import get_clock, get_window_registry
from stayengine.availability.window import WindowRegistry
from stayengine.database import Base, get_session_factory
from stayengine.main import app
from stayengine.models import Unit
from stayengine.pricing import get_fee_schedule
from stayengine.pricing.engine import FeeConfig, FeeSchedule, ServiceFeeTiers
from stayengine.services.record_store import SqlRecordStore
from stayengine.services.unit_directory import SqlUnitDirectory

# Pinned "now" for every API test: 2025-06-01 09:00 UTC (10:00 in London)
FIXED_NOW = datetime(2025, 6, 1, 9, 0, tzinfo=timezone.utc)

# ---------------------------------------------------------------------------
# Fee schedules
# ---------------------------------------------------------------------------


@pytest.fixture
def flat_schedule() -> FeeSchedule:
    """6% service fee, 2.9% + 20 processor fee, no tiers."""
    return FeeSchedule(fee_config=FeeConfig(service_fee_bps=600, processor_var_bps=290, processor_fixed_minor=20))


@pytest.fixture
def tiered_schedule() -> FeeSchedule:
    return FeeSchedule(
        fee_config=FeeConfig(service_fee_bps=600, processor_var_bps=290, processor_fixed_minor=20),
        tiers=ServiceFeeTiers(tiers=((1, 1200), (7, 1000), (28, 800)), cap_minor=25000),
    )


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Fresh SQLite database with every table created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'stayengine.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def store(session_factory) -> SqlRecordStore:
    return SqlRecordStore(session_factory)


@pytest.fixture
def directory(session_factory) -> SqlUnitDirectory:
    return SqlUnitDirectory(session_factory)


@pytest.fixture
def make_unit(session_factory):
    """Factory inserting a unit row; keyword arguments override the defaults."""

    async def _make(**overrides) -> Unit:
        values = {
            "name": "Garden Flat",
            "nightly_rate_minor": 10000,
            "currency": "GBP",
            "timezone": "Europe/London",
            "booking_unit": "nightly",
            "min_nights": 1,
            "host_id": uuid.uuid4(),
        }
        values.update(overrides)
        async with session_factory() as session, session.begin():
            unit = Unit(**values)
            session.add(unit)
        return unit

    return _make


@pytest.fixture
def add_rows(session_factory):
    """Insert model instances in one transaction."""

    async def _add(*rows) -> None:
        async with session_factory() as session, session.begin():
            session.add_all(rows)

    return _add


@pytest_asyncio.fixture
async def test_unit(make_unit) -> Unit:
    return await make_unit()


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def client(session_factory, flat_schedule) -> AsyncGenerator[AsyncClient, None]:
    """httpx AsyncClient wired to the test database and a pinned clock."""
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_clock] = lambda: (lambda: FIXED_NOW)
    app.dependency_overrides[get_fee_schedule] = lambda: flat_schedule
    registry = WindowRegistry()
    app.dependency_overrides[get_window_registry] = lambda: registry

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def manager_headers() -> dict[str, str]:
    return {"X-Can-Manage-Blocks": "true"}
