"""Occupancy and calendar window API routes."""

import logging
import uuid
from datetime import date

from fastapi import APIRouter, Depends, Query, Request

from stayengine.api.deps import (
    Clock,
    get_clock,
    get_record_store,
    get_unit_directory,
    get_window_registry,
)
from stayengine.availability.window import WindowManager, WindowRegistry
from stayengine.config import settings
from stayengine.schemas.availability import CalendarWindowResponse, OccupancyResponse
from stayengine.services.availability_service import get_occupancy, load_occupancy
from stayengine.services.record_store import RecordStore
from stayengine.services.unit_directory import UnitDirectory

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/units", tags=["availability"])

SESSION_KEY = "calendar_window"
SESSION_ID_KEY = "calendar_session"


def _window_limits() -> dict[str, int]:
    return {
        "horizon_days": settings.window_horizon_days,
        "extend_days": settings.window_extend_days,
        "threshold_days": settings.window_threshold_days,
        "display_span_days": settings.window_display_span_days,
        "max_span_days": settings.window_max_span_days,
    }


@router.get(
    "/{unit_id}/occupancy",
    response_model=OccupancyResponse,
    summary="Booked, blocked and disabled days for a unit",
)
async def read_occupancy(
    unit_id: uuid.UUID,
    date_from: date = Query(..., alias="from"),
    date_to: date = Query(..., alias="to"),
    best_effort: bool = Query(False),
    store: RecordStore = Depends(get_record_store),
    directory: UnitDirectory = Depends(get_unit_directory),
    clock: Clock = Depends(get_clock),
) -> OccupancyResponse:
    """Return the occupancy verdict for ``[from, to)`` in the unit's timezone.

    With ``best_effort=true`` a record store outage returns an empty verdict
    flagged ``degraded`` instead of 503. Never use it to decide bookability.
    """
    verdict = await get_occupancy(
        store,
        directory,
        unit_id,
        date_from,
        date_to,
        max_days=settings.availability_max_range_days,
        best_effort=best_effort,
    )
    return OccupancyResponse.from_verdict(unit_id, verdict, clock())


@router.get(
    "/{unit_id}/calendar",
    response_model=CalendarWindowResponse,
    summary="Rolling calendar window for the caller's session",
)
async def read_calendar_window(
    unit_id: uuid.UUID,
    request: Request,
    position: date | None = Query(None),
    store: RecordStore = Depends(get_record_store),
    directory: UnitDirectory = Depends(get_unit_directory),
    registry: WindowRegistry = Depends(get_window_registry),
    clock: Clock = Depends(get_clock),
) -> CalendarWindowResponse:
    """Extend the session's window if ``position`` nears its end, then fetch it.

    The window lives in the process-wide registry under the session id kept
    in the signed session cookie; the cookie also carries a snapshot used to
    rebuild it after eviction or on another worker. Switching units resets
    the window; the request stamp keeps counting across switches.
    """
    session_id = request.session.get(SESSION_ID_KEY)
    if not session_id:
        session_id = uuid.uuid4().hex
        request.session[SESSION_ID_KEY] = session_id

    unit = await directory.get_unit(unit_id)
    today = unit.today(clock())
    limits = _window_limits()

    # No awaits until the ticket is issued: concurrent requests of one
    # session must see each other's extensions and stamps.
    restored: WindowManager | None = None
    saved = request.session.get(SESSION_KEY)
    if saved:
        try:
            restored = WindowManager.from_session(saved, tz=unit.timezone, **limits)
        except (KeyError, TypeError, ValueError):
            logger.warning("Discarding unreadable calendar window in session")

    manager = registry.get(session_id)
    if manager is None:
        manager = restored or WindowManager(unit.id, today, tz=unit.timezone, **limits)
        registry.put(session_id, manager)
    elif restored is not None:
        manager.merge(restored)
    if manager.unit_id != unit.id:
        manager.switch_unit(unit.id, today, unit.timezone)

    position = position or today
    extended = manager.navigate(position)
    ticket = registry.begin_fetch(manager)
    request.session[SESSION_KEY] = manager.to_session()

    verdict = await load_occupancy(store, unit, ticket.window, best_effort=True)
    latest = manager.accept(ticket, verdict)
    request.session[SESSION_KEY] = manager.to_session()

    return CalendarWindowResponse(
        unit_id=unit.id,
        window_start=ticket.window.start,
        window_end=ticket.window.end,
        position=position,
        state=manager.state.value,
        stamp=ticket.stamp,
        latest=latest,
        extended=extended,
        occupancy=OccupancyResponse.from_verdict(unit.id, verdict, clock()),
    )
