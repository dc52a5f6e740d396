"""Append-only in-memory time series store.

The ingestion hub is the only writer. Readers go through :meth:`TimeSeriesStore.snapshot`
which copies a frozen prefix of every series under the store lock, so a
reader never observes a partially written point.
"""

from __future__ import annotations

import bisect
import itertools
import threading
import time
from collections.abc import Iterable
from typing import NamedTuple

from pydantic import BaseModel, ConfigDict, Field

from tailplot._constants import palette_color
from tailplot.state.events import PointEvent

Color = tuple[int, int, int]


class Point(NamedTuple):
    seq: int
    timestamp: float
    value: float


class Window(NamedTuple):
    """Inclusive time range in epoch seconds."""

    start: float
    end: float

    @property
    def span(self) -> float:
        return self.end - self.start


class Series:
    """A named, append-only sequence of points."""

    __slots__ = ("color", "index", "name", "points", "timestamps")

    def __init__(self, name: str, *, index: int, color: Color) -> None:
        self.name = name
        self.index = index
        self.color = color
        self.points: list[Point] = []
        # Parallel list used for bisecting by time.
        self.timestamps: list[float] = []

    def append(self, point: Point) -> None:
        self.points.append(point)
        self.timestamps.append(point.timestamp)

    def __len__(self) -> int:
        return len(self.points)


class SeriesSnapshot(BaseModel):
    """Read-only copy of one series' points."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    index: int
    color: Color
    points: tuple[Point, ...] = Field(default_factory=tuple)
    timestamps: tuple[float, ...] = Field(default_factory=tuple, description="Timestamps of points, for bisecting")
    total: int = Field(0, description="Number of points in the series when the snapshot was taken")

    @property
    def oldest(self) -> float | None:
        return self.points[0].timestamp if self.points else None

    @property
    def latest(self) -> float | None:
        return self.points[-1].timestamp if self.points else None

    @property
    def values(self) -> list[float]:
        return [point.value for point in self.points]

    def within(self, window: Window) -> tuple[Point, ...]:
        """Points whose timestamp lies in *window* (inclusive)."""
        timestamps = self.timestamps
        if len(timestamps) != len(self.points):
            timestamps = tuple(point.timestamp for point in self.points)
        lo = bisect.bisect_left(timestamps, window.start)
        hi = bisect.bisect_right(timestamps, window.end)
        return self.points[lo:hi]


class StoreSnapshot(BaseModel):
    """Consistent view of all series at one store version."""

    model_config = ConfigDict(frozen=True)

    version: int = 0
    series: dict[str, SeriesSnapshot] = Field(default_factory=dict)

    def names(self) -> list[str]:
        return sorted(self.series)

    def bounds(self, names: Iterable[str] | None = None) -> Window | None:
        """Oldest and latest timestamp across *names* (default: all series)."""
        selected = self.series.values() if names is None else (self.series[n] for n in names if n in self.series)
        oldest: float | None = None
        latest: float | None = None
        for snap in selected:
            if not snap.points:
                continue
            first, last = snap.points[0].timestamp, snap.points[-1].timestamp
            oldest = first if oldest is None else min(oldest, first)
            latest = last if latest is None else max(latest, last)
        if oldest is None or latest is None:
            return None
        return Window(oldest, latest)


class TimeSeriesStore:
    """In-memory store of all series for the run's lifetime.

    Series are created lazily on their first point and are never removed.
    Each new series is assigned the next palette colour in creation order.
    """

    def __init__(self) -> None:
        self._series: dict[str, Series] = {}
        self._lock = threading.Lock()
        self._seq = itertools.count()
        self._version = 0

    @property
    def version(self) -> int:
        """Number of points appended so far."""
        return self._version

    def __contains__(self, name: object) -> bool:
        return name in self._series

    def __len__(self) -> int:
        return len(self._series)

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._series)

    def color(self, name: str) -> Color | None:
        series = self._series.get(name)
        return series.color if series is not None else None

    def _get_or_create(self, name: str) -> Series:
        series = self._series.get(name)
        if series is None:
            index = len(self._series)
            series = Series(name, index=index, color=palette_color(index))
            self._series[name] = series
        return series

    def append(
        self,
        name: str,
        value: float,
        *,
        timestamp: float | None = None,
        seq: int | None = None,
    ) -> Point:
        """Append one point to *name*, creating the series on first use.

        *timestamp* defaults to the current wall-clock time.

        Timestamps are clamped to be non-decreasing within a series so that
        time order always agrees with arrival order.
        """
        if timestamp is None:
            timestamp = time.time()
        with self._lock:
            series = self._get_or_create(name)
            if seq is None:
                seq = next(self._seq)
            if series.points:
                last = series.points[-1]
                if seq < last.seq:
                    raise ValueError(f"out-of-order append to {name!r}: seq {seq} after {last.seq}")
                timestamp = max(timestamp, last.timestamp)
            point = Point(seq, timestamp, float(value))
            series.append(point)
            self._version += 1
            return point

    def apply(self, event: PointEvent) -> Point:
        """Apply a hub-ordered point event."""
        return self.append(event.name, event.value, timestamp=event.timestamp, seq=event.seq)

    def snapshot(self, window: Window | None = None) -> StoreSnapshot:
        """Return a frozen copy of every series, optionally limited to *window*.

        Series with no points inside *window* are still listed (with no
        points) so their metadata remains visible to the renderer.
        """
        with self._lock:
            result: dict[str, SeriesSnapshot] = {}
            for name, series in self._series.items():
                lo, hi = 0, len(series)
                if window is not None:
                    lo = bisect.bisect_left(series.timestamps, window.start)
                    hi = bisect.bisect_right(series.timestamps, window.end)
                result[name] = SeriesSnapshot.model_construct(
                    name=name,
                    index=series.index,
                    color=series.color,
                    points=tuple(series.points[lo:hi]),
                    timestamps=tuple(series.timestamps[lo:hi]),
                    total=len(series),
                )
            # Already-validated data; skip per-point validation on the render path.
            return StoreSnapshot.model_construct(version=self._version, series=result)
