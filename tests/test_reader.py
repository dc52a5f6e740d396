from __future__ import annotations

import asyncio
import os
import time
from pathlib import Path

import pytest

from tailplot.config import SourceConfig, SourceKind
from tailplot.ingestion.json_source import JsonStreamAdapter
from tailplot.ingestion.reader import LineReader

fifo_only = pytest.mark.skipif(not hasattr(os, "mkfifo"), reason="needs named pipes")


async def _wait_stopped(reader: LineReader, timeout: float = 2.0) -> None:
    deadline = time.monotonic() + timeout
    while reader.running and time.monotonic() < deadline:
        await asyncio.sleep(0.02)


@pytest.mark.asyncio
async def test_reads_lines_and_trailing_partial_line(tmp_path: Path) -> None:
    path = tmp_path / "in.txt"
    path.write_bytes("a\nb\r\nc".encode())
    reader = LineReader(str(path))

    lines = [line.text async for line in reader.lines()]

    assert lines == ["a\n", "b\r\n", "c"]


@fifo_only
@pytest.mark.asyncio
async def test_cancelled_stream_releases_silent_fifo(tmp_path: Path) -> None:
    path = tmp_path / "feed"
    os.mkfifo(path)
    # Connected but silent writer.
    writer = os.open(path, os.O_RDWR | os.O_NONBLOCK)
    try:
        os.write(writer, b'{"a": 1}\n')
        adapter = JsonStreamAdapter(SourceConfig(SourceKind.JSON_STREAM, str(path)))
        received: list[float] = []

        async def consume() -> None:
            async for reading in adapter.readings():
                received.append(reading.value)

        task = asyncio.create_task(consume())
        for _ in range(100):
            if received:
                break
            await asyncio.sleep(0.02)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        await _wait_stopped(adapter._reader)
        assert received == [1.0]
        assert not adapter._reader.running
    finally:
        os.close(writer)


@fifo_only
@pytest.mark.asyncio
async def test_close_while_waiting_for_fifo_writer(tmp_path: Path) -> None:
    path = tmp_path / "feed"
    os.mkfifo(path)
    reader = LineReader(str(path))
    reader.start()
    await asyncio.sleep(0.1)
    assert reader.running

    reader.close()
    await _wait_stopped(reader)

    assert not reader.running
