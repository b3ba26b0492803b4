"""Availability aggregator — one occupancy verdict per unit per window.

Intervals are clipped to the window, turned into unit-local day ranges,
merged per kind with a sorted sweep, and then expanded. A booked day always
wins over a block on the same day, so ``booked_days`` and ``blocked_days``
never intersect.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, timezone, tzinfo

from stayengine.availability.intervals import KIND_BOOKED, KIND_BLOCKED, OccupancyInterval, iter_days
from stayengine.errors import ValidationError

DayRange = tuple[date, date]


@dataclass(frozen=True)
class Window:
    """Half-open ``[start, end)`` range of unit-local days."""

    start: date
    end: date
    tz: tzinfo = field(default=timezone.utc, compare=False)

    def __post_init__(self) -> None:
        if self.end <= self.start:
            raise ValidationError("Window end must be after its start", code="invalid_window")

    @property
    def days(self) -> int:
        return (self.end - self.start).days

    def __contains__(self, day: date) -> bool:
        return self.start <= day < self.end


@dataclass(frozen=True)
class OccupancyVerdict:
    window: Window
    booked_days: frozenset[date] = frozenset()
    blocked_days: frozenset[date] = frozenset()
    # Advisory only: days claimed by two bookings, or by a booking and a block
    conflict_days: frozenset[date] = frozenset()
    degraded: bool = False

    @property
    def disabled_days(self) -> frozenset[date]:
        return self.booked_days | self.blocked_days

    @classmethod
    def empty(cls, window: Window, degraded: bool = False) -> "OccupancyVerdict":
        return cls(window=window, degraded=degraded)

    def is_free(self, start: date, end: date) -> bool:
        """True when no day in ``[start, end)`` is disabled."""
        return not any(day in self.disabled_days for day in iter_days(start, end))


def _clip(day_range: DayRange, window: Window) -> DayRange | None:
    first = max(day_range[0], window.start)
    last = min(day_range[1], window.end)
    if first >= last:
        return None
    return first, last


def merge_ranges(ranges: Iterable[DayRange]) -> list[DayRange]:
    """Merge overlapping or touching day ranges into a sorted disjoint list."""
    merged: list[DayRange] = []
    for first, last in sorted(ranges):
        if merged and first <= merged[-1][1]:
            if last > merged[-1][1]:
                merged[-1] = (merged[-1][0], last)
        else:
            merged.append((first, last))
    return merged


def subtract_ranges(ranges: list[DayRange], removed: list[DayRange]) -> list[DayRange]:
    """``ranges`` minus ``removed``; both must be sorted and disjoint."""
    result: list[DayRange] = []
    j = 0
    for first, last in ranges:
        cursor = first
        while j < len(removed) and removed[j][1] <= cursor:
            j += 1
        k = j
        while k < len(removed) and removed[k][0] < last:
            cut_first, cut_last = removed[k]
            if cut_first > cursor:
                result.append((cursor, cut_first))
            cursor = max(cursor, cut_last)
            if cursor >= last:
                break
            k += 1
        if cursor < last:
            result.append((cursor, last))
    return result


def intersect_ranges(a: list[DayRange], b: list[DayRange]) -> list[DayRange]:
    """Intersection of two sorted disjoint range lists."""
    result: list[DayRange] = []
    i = j = 0
    while i < len(a) and j < len(b):
        first = max(a[i][0], b[j][0])
        last = min(a[i][1], b[j][1])
        if first < last:
            result.append((first, last))
        if a[i][1] < b[j][1]:
            i += 1
        else:
            j += 1
    return result


def overlapping_ranges(ranges: Iterable[DayRange]) -> list[DayRange]:
    """Day ranges covered by at least two of ``ranges``."""
    edges: list[tuple[date, int]] = []
    for first, last in ranges:
        edges.append((first, 1))
        edges.append((last, -1))
    # Closing edges sort before opening ones on the same day (half-open)
    edges.sort(key=lambda edge: (edge[0], edge[1]))

    result: list[DayRange] = []
    active = 0
    opened: date | None = None
    for day, delta in edges:
        active += delta
        if active >= 2 and opened is None:
            opened = day
        elif active < 2 and opened is not None:
            if day > opened:
                result.append((opened, day))
            opened = None
    return merge_ranges(result)


def _expand(ranges: Iterable[DayRange]) -> frozenset[date]:
    return frozenset(day for first, last in ranges for day in iter_days(first, last))


def aggregate(intervals: Iterable[OccupancyInterval], window: Window) -> OccupancyVerdict:
    """Merge one unit's intervals into booked/blocked day sets over ``window``."""
    booked: list[DayRange] = []
    blocked: list[DayRange] = []
    for interval in intervals:
        clipped = _clip(interval.day_range(window.tz), window)
        if clipped is None:
            continue
        if interval.kind == KIND_BOOKED:
            booked.append(clipped)
        elif interval.kind == KIND_BLOCKED:
            blocked.append(clipped)

    booked_merged = merge_ranges(booked)
    blocked_merged = merge_ranges(blocked)
    blocked_only = subtract_ranges(blocked_merged, booked_merged)

    conflicts = merge_ranges(overlapping_ranges(booked) + intersect_ranges(booked_merged, blocked_merged))

    return OccupancyVerdict(
        window=window,
        booked_days=_expand(booked_merged),
        blocked_days=_expand(blocked_only),
        conflict_days=_expand(conflicts),
    )
