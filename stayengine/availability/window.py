"""Rolling calendar window for one caller session.

The window starts at the unit's today and spans ``horizon_days``. When the
caller's displayed position comes within ``threshold_days`` of the end the
window grows by ``extend_days`` and the caller owes a re-fetch. The start
never moves backwards; only a unit switch resets both bounds. The end never
passes ``start + max_span_days``; positions that would need more are
rejected.

Every fetch takes a stamp from a counter that only increases. A response is
kept only if it carries the latest stamp issued for the current unit, so a
slow answer for a smaller (or another unit's) window never overwrites a
fresh one. ``WindowRegistry`` keeps one manager per session id in process
memory so concurrent requests from one session share a manager and never
draw the same stamp.
"""

from __future__ import annotations

import logging
import uuid
from collections import OrderedDict
from dataclasses import dataclass
from datetime import date, timedelta, timezone, tzinfo
from enum import Enum

from stayengine.availability.aggregator import OccupancyVerdict, Window
from stayengine.errors import ValidationError

logger = logging.getLogger(__name__)


class WindowState(str, Enum):
    STABLE = "stable"
    EXTENDING = "extending"


@dataclass(frozen=True)
class FetchTicket:
    unit_id: uuid.UUID
    stamp: int
    window: Window


class WindowManager:
    """Per-session window state machine (Stable / Extending)."""

    def __init__(
        self,
        unit_id: uuid.UUID,
        today: date,
        *,
        tz: tzinfo = timezone.utc,
        horizon_days: int = 90,
        extend_days: int = 60,
        threshold_days: int = 30,
        display_span_days: int = 30,
        max_span_days: int = 730,
        last_stamp: int = 0,
    ) -> None:
        if extend_days <= 0 or horizon_days <= 0:
            raise ValueError("horizon_days and extend_days must be positive")
        if max_span_days < horizon_days:
            raise ValueError("max_span_days must cover the initial horizon")
        self.horizon_days = horizon_days
        self.extend_days = extend_days
        self.threshold_days = threshold_days
        self.display_span_days = display_span_days
        self.max_span_days = max_span_days
        self.unit_id = unit_id
        self.tz = tz
        self.start = today
        self.end = today + timedelta(days=horizon_days)
        self.state = WindowState.STABLE
        self.last_stamp = last_stamp
        self.latest_stamp: int | None = None
        self.verdict: OccupancyVerdict | None = None

    @property
    def window(self) -> Window:
        return Window(start=self.start, end=self.end, tz=self.tz)

    @property
    def limit(self) -> date:
        return self.start + timedelta(days=self.max_span_days)

    def navigate(self, position: date) -> bool:
        """Record that the caller now displays ``position``; extend if needed.

        The displayed range is ``[position, position + display_span_days)``
        and must end by ``limit``. Returns True when the window grew and a
        re-fetch is owed.
        """
        try:
            display_end = max(position, self.start) + timedelta(days=self.display_span_days)
        except OverflowError:
            display_end = date.max
        if display_end > self.limit:
            raise ValidationError(
                f"position must be on or before {self.limit - timedelta(days=self.display_span_days)}",
                code="invalid_position",
            )

        extended = False
        while self.end < self.limit and display_end >= self.end - timedelta(days=self.threshold_days):
            self.end = min(self.end + timedelta(days=self.extend_days), self.limit)
            extended = True
        if extended:
            self.state = WindowState.EXTENDING
            logger.debug("Extended window for unit %s to %s", self.unit_id, self.end)
        return extended

    def switch_unit(self, unit_id: uuid.UUID, today: date, tz: tzinfo | None = None) -> None:
        """Reset both bounds for a different unit. Outstanding stamps go stale."""
        self.unit_id = unit_id
        if tz is not None:
            self.tz = tz
        self.start = today
        self.end = today + timedelta(days=self.horizon_days)
        self.state = WindowState.STABLE
        self.latest_stamp = None
        self.verdict = None

    def merge(self, other: WindowManager) -> None:
        """Fold in a copy of this session's state held elsewhere (e.g. the cookie).

        Stamps only move forward. The end only grows, and only when both
        copies describe the same unit and start.
        """
        self.last_stamp = max(self.last_stamp, other.last_stamp)
        if other.unit_id == self.unit_id and other.start == self.start:
            self.end = min(max(self.end, other.end), self.limit)

    def begin_fetch(self, floor: int = 0) -> FetchTicket:
        """Issue the next stamp, greater than both ``last_stamp`` and ``floor``."""
        self.last_stamp = max(self.last_stamp, floor) + 1
        self.latest_stamp = self.last_stamp
        return FetchTicket(unit_id=self.unit_id, stamp=self.last_stamp, window=self.window)

    def accept(self, ticket: FetchTicket, verdict: OccupancyVerdict) -> bool:
        """Keep ``verdict`` if ``ticket`` is the latest fetch for the current unit."""
        if ticket.unit_id != self.unit_id or ticket.stamp != self.latest_stamp:
            logger.debug(
                "Discarding stale availability response (stamp %s, latest %s)",
                ticket.stamp,
                self.latest_stamp,
            )
            return False
        self.verdict = verdict
        self.state = WindowState.STABLE
        return True

    # -- session persistence ------------------------------------------------

    def to_session(self) -> dict:
        return {
            "unit_id": str(self.unit_id),
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "state": self.state.value,
            "last_stamp": self.last_stamp,
        }

    @classmethod
    def from_session(cls, data: dict, tz: tzinfo = timezone.utc, **limits) -> "WindowManager":
        manager = cls(
            uuid.UUID(data["unit_id"]),
            date.fromisoformat(data["start"]),
            tz=tz,
            last_stamp=int(data.get("last_stamp", 0)),
            **limits,
        )
        manager.end = min(max(date.fromisoformat(data["end"]), manager.end), manager.limit)
        manager.state = WindowState(data.get("state", WindowState.STABLE.value))
        return manager


class WindowRegistry:
    """Window managers by session id, least recently used evicted first.

    Stamps are drawn through the registry so they keep increasing even when
    a session's manager is evicted and later rebuilt from its cookie.
    """

    def __init__(self, max_sessions: int = 10000) -> None:
        self.max_sessions = max_sessions
        self.last_stamp = 0
        self._managers: OrderedDict[str, WindowManager] = OrderedDict()

    def __len__(self) -> int:
        return len(self._managers)

    def get(self, session_id: str) -> WindowManager | None:
        manager = self._managers.get(session_id)
        if manager is not None:
            self._managers.move_to_end(session_id)
        return manager

    def put(self, session_id: str, manager: WindowManager) -> None:
        self._managers[session_id] = manager
        self._managers.move_to_end(session_id)
        while len(self._managers) > self.max_sessions:
            evicted, _ = self._managers.popitem(last=False)
            logger.debug("Evicted calendar window for session %s", evicted)

    def begin_fetch(self, manager: WindowManager) -> FetchTicket:
        ticket = manager.begin_fetch(floor=self.last_stamp)
        self.last_stamp = ticket.stamp
        return ticket
