from __future__ import annotations

import threading
import time

import pytest

from tailplot._constants import PALETTE
from tailplot.state.events import PointEvent
from tailplot.state.store import TimeSeriesStore, Window


def test_series_created_on_first_point() -> None:
    store = TimeSeriesStore()
    assert "a" not in store

    store.append("a", 1.0, timestamp=10.0)

    assert "a" in store
    assert len(store) == 1
    assert store.snapshot().series["a"].values == [1.0]


def test_palette_assigned_in_creation_order_and_cycles() -> None:
    store = TimeSeriesStore()
    names = [f"s{i:02d}" for i in range(len(PALETTE) + 1)]
    for name in names:
        store.append(name, 0.0, timestamp=1.0)

    assert store.color(names[0]) == PALETTE[0]
    assert store.color(names[1]) == PALETTE[1]
    assert store.color(names[-1]) == PALETTE[0]
    assert store.color("missing") is None


def test_append_keeps_arrival_order_and_clamps_time() -> None:
    store = TimeSeriesStore()
    store.append("a", 1.0, timestamp=10.0)
    store.append("a", 2.0, timestamp=5.0)

    points = store.snapshot().series["a"].points
    assert [p.value for p in points] == [1.0, 2.0]
    assert [p.timestamp for p in points] == [10.0, 10.0]


def test_out_of_order_seq_rejected() -> None:
    store = TimeSeriesStore()
    store.apply(PointEvent(name="a", value=1.0, timestamp=1.0, seq=5))

    with pytest.raises(ValueError):
        store.apply(PointEvent(name="a", value=2.0, timestamp=2.0, seq=4))


def test_snapshot_is_frozen_prefix() -> None:
    store = TimeSeriesStore()
    store.append("a", 1.0, timestamp=1.0)
    before = store.snapshot()

    store.append("a", 2.0, timestamp=2.0)
    store.append("b", 3.0, timestamp=2.0)

    assert before.series["a"].values == [1.0]
    assert "b" not in before.series
    assert before.version == 1
    assert store.snapshot().version == 3


def test_snapshot_window_keeps_empty_series() -> None:
    store = TimeSeriesStore()
    store.append("a", 1.0, timestamp=1.0)
    store.append("a", 2.0, timestamp=5.0)
    store.append("b", 3.0, timestamp=1.0)

    snap = store.snapshot(Window(4.0, 6.0))

    assert snap.series["a"].values == [2.0]
    assert snap.series["a"].total == 2
    assert snap.series["b"].points == ()


def test_bounds_and_within() -> None:
    store = TimeSeriesStore()
    for t, v in ((1.0, 1.0), (2.0, 2.0), (3.0, 3.0)):
        store.append("a", v, timestamp=t)
    store.append("b", 9.0, timestamp=10.0)
    snap = store.snapshot()

    assert snap.bounds() == Window(1.0, 10.0)
    assert snap.bounds(["a"]) == Window(1.0, 3.0)
    assert snap.bounds([]) is None
    assert [p.value for p in snap.series["a"].within(Window(1.5, 3.0))] == [2.0, 3.0]


def test_concurrent_snapshots_see_consistent_series() -> None:
    store = TimeSeriesStore()
    stop = threading.Event()
    seen: list[int] = []

    def reader() -> None:
        while not stop.is_set():
            snap = store.snapshot()
            series = snap.series.get("a")
            if series is not None:
                assert len(series.points) == series.total
                seen.append(series.total)

    thread = threading.Thread(target=reader)
    thread.start()
    try:
        for i in range(2000):
            store.append("a", float(i), timestamp=float(i))
    finally:
        stop.set()
        thread.join()

    assert seen == sorted(seen)


def test_append_defaults_to_wall_clock_time() -> None:
    store = TimeSeriesStore()
    before = time.time()

    point = store.append("a", 1.0)

    assert before <= point.timestamp <= time.time()
    assert store.snapshot().series["a"].values == [1.0]


def test_snapshot_carries_timestamps_for_window_queries() -> None:
    store = TimeSeriesStore()
    for t in range(5):
        store.append("a", float(t), timestamp=float(t))

    series = store.snapshot().series["a"]

    assert series.timestamps == (0.0, 1.0, 2.0, 3.0, 4.0)
    assert [p.value for p in series.within(Window(1.0, 3.0))] == [1.0, 2.0, 3.0]
    assert store.snapshot(Window(3.0, 9.0)).series["a"].timestamps == (3.0, 4.0)
