"""Ingestion hub: the single write path into the time series store.

Adapters run as independent tasks and submit readings here. The hub stamps
each reading with an arrival sequence number at submission time and puts it
on an unbounded queue; one drain task applies the queue to the store in
order. Submission order therefore equals append order, independent of the
wall-clock timestamps the adapters attached.

The queue has no bound (``asyncio.Queue(maxsize=0)``): source data rates are
expected to be low compared to how fast the store absorbs them, and a
producer must never be blocked or have data dropped.
"""

from __future__ import annotations

import asyncio
import contextlib
import itertools
import logging

from tailplot.exceptions import SourceReadError
from tailplot.ingestion.adapters import SourceAdapter
from tailplot.state.events import PointEvent, Reading
from tailplot.state.store import TimeSeriesStore

_logger = logging.getLogger(__name__)


class IngestionHub:
    """Fan-in point between source adapters and the store."""

    def __init__(self, store: TimeSeriesStore) -> None:
        self._store = store
        self._queue: asyncio.Queue[PointEvent] = asyncio.Queue()
        self._seq = itertools.count()
        self._drain_task: asyncio.Task[None] | None = None
        self._pumps: dict[asyncio.Task[None], SourceAdapter] = {}
        self.data_ready = asyncio.Event()

    @property
    def store(self) -> TimeSeriesStore:
        return self._store

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def active_sources(self) -> int:
        return sum(1 for task in self._pumps if not task.done())

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    def submit(self, reading: Reading) -> PointEvent:
        """Order *reading* and queue it for the store. Never blocks."""
        event = PointEvent(
            name=reading.name,
            value=reading.value,
            timestamp=reading.timestamp,
            seq=next(self._seq),
        )
        self._queue.put_nowait(event)
        return event

    def _apply(self, event: PointEvent) -> None:
        try:
            self._store.apply(event)
        finally:
            self._queue.task_done()

    async def _drain(self) -> None:
        while True:
            event = await self._queue.get()
            self._apply(event)
            # Apply whatever else is already queued before waking readers.
            while not self._queue.empty():
                self._apply(self._queue.get_nowait())
            self.data_ready.set()

    async def flush(self) -> None:
        """Wait until every submitted event is in the store."""
        await self._queue.join()

    # ------------------------------------------------------------------
    # Adapter tasks
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self._drain_task is None or self._drain_task.done():
            self._drain_task = asyncio.create_task(self._drain(), name="tailplot-hub-drain")

    def attach(self, adapter: SourceAdapter) -> asyncio.Task[None]:
        """Run *adapter* as its own task, submitting everything it yields."""
        self.start()
        name = f"tailplot-source:{adapter.source.kind}:{adapter.source.path}"
        task = asyncio.create_task(self._pump(adapter), name=name)
        self._pumps[task] = adapter
        return task

    async def _pump(self, adapter: SourceAdapter) -> None:
        source = adapter.source
        try:
            async for reading in adapter.readings():
                self.submit(reading)
            _logger.warning("%s: input ended; its series will not update", source.path)
        except SourceReadError as exc:
            _logger.warning("%s: %s", source.path, exc)
        except asyncio.CancelledError:
            raise
        except Exception:
            _logger.warning("%s: source failed", source.path, exc_info=True)
        finally:
            adapter.close()

    async def stop(self) -> None:
        """Cancel every adapter, apply what was already submitted, stop draining."""
        pumps = list(self._pumps)
        for task in pumps:
            task.cancel()
        for task in pumps:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        for adapter in self._pumps.values():
            adapter.close()
        self._pumps.clear()

        drain = self._drain_task
        self._drain_task = None
        if drain is not None:
            while not self._queue.empty():
                self._apply(self._queue.get_nowait())
            drain.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await drain
