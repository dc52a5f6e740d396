from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

import pytest

from tailplot.config import SourceConfig, SourceKind
from tailplot.exceptions import SourceReadError
from tailplot.ingestion.hub import IngestionHub
from tailplot.state.events import Reading
from tailplot.state.store import TimeSeriesStore


class _ListAdapter:
    def __init__(self, path: str, readings: list[Reading], *, error: Exception | None = None) -> None:
        self.source = SourceConfig(SourceKind.JSON_STREAM, path)
        self._readings = readings
        self._error = error
        self.closed = False

    async def readings(self) -> AsyncIterator[Reading]:
        for reading in self._readings:
            yield reading
            await asyncio.sleep(0)
        if self._error is not None:
            raise self._error

    def close(self) -> None:
        self.closed = True


@pytest.mark.asyncio
async def test_submit_assigns_increasing_seq() -> None:
    hub = IngestionHub(TimeSeriesStore())

    events = [hub.submit(Reading(name="a", value=float(i), timestamp=100.0 - i)) for i in range(3)]

    assert [e.seq for e in events] == [0, 1, 2]
    assert hub.pending == 3


@pytest.mark.asyncio
async def test_drain_applies_in_submission_order_and_signals() -> None:
    store = TimeSeriesStore()
    hub = IngestionHub(store)
    hub.start()

    for i in range(5):
        hub.submit(Reading(name="a", value=float(i), timestamp=10.0 - i))
    await hub.flush()

    assert hub.data_ready.is_set()
    points = store.snapshot().series["a"].points
    assert [p.value for p in points] == [0.0, 1.0, 2.0, 3.0, 4.0]
    assert [p.seq for p in points] == [0, 1, 2, 3, 4]
    await hub.stop()


@pytest.mark.asyncio
async def test_sources_interleave_without_loss() -> None:
    store = TimeSeriesStore()
    hub = IngestionHub(store)
    a = _ListAdapter("a", [Reading(name="a", value=float(i)) for i in range(50)])
    b = _ListAdapter("b", [Reading(name="b", value=float(i)) for i in range(50)])

    await asyncio.gather(hub.attach(a), hub.attach(b))
    await hub.flush()
    await hub.stop()

    snap = store.snapshot()
    assert snap.series["a"].values == [float(i) for i in range(50)]
    assert snap.series["b"].values == [float(i) for i in range(50)]
    assert a.closed and b.closed
    assert store.version == 100


@pytest.mark.asyncio
async def test_failing_source_does_not_stop_others() -> None:
    store = TimeSeriesStore()
    hub = IngestionHub(store)
    bad = _ListAdapter("bad", [Reading(name="x", value=1.0)], error=SourceReadError("boom", path="bad"))
    broken = _ListAdapter("broken", [], error=RuntimeError("unexpected"))
    good = _ListAdapter("good", [Reading(name="y", value=2.0)])

    await asyncio.gather(hub.attach(bad), hub.attach(broken), hub.attach(good))
    await hub.flush()

    assert store.snapshot().series["x"].values == [1.0]
    assert store.snapshot().series["y"].values == [2.0]
    assert hub.active_sources == 0
    await hub.stop()


@pytest.mark.asyncio
async def test_stop_applies_already_submitted() -> None:
    store = TimeSeriesStore()
    hub = IngestionHub(store)
    hub.submit(Reading(name="a", value=1.0))

    hub.start()
    await hub.stop()

    assert store.snapshot().series["a"].values == [1.0]
