"""Threaded line reader for streamed sources.

Pipes, FIFOs and character devices cannot be read without blocking through
the event loop, so each stream source gets a daemon thread that performs the
blocking reads and hands every line back to the loop with
``call_soon_threadsafe``. The thread waits on the descriptor with a short
timeout so :meth:`LineReader.close` stops it even when the source is silent.
"""

from __future__ import annotations

import asyncio
import codecs
import logging
import os
import select
import stat
import threading
import time
from collections.abc import AsyncIterator
from typing import NamedTuple

from tailplot.exceptions import SourceReadError

_logger = logging.getLogger(__name__)

_EOF = object()

# Seconds between checks of the stop flag while the source is silent.
_POLL_INTERVAL = 0.1
_CHUNK_SIZE = 65536


class Line(NamedTuple):
    text: str
    read_at: float


class LineReader:
    """Yield lines of *path* as they arrive, until end-of-input or :meth:`close`.

    The file is opened on the reader thread (opening a FIFO blocks until a
    writer appears) and is closed by that thread when it exits. The queue
    between the thread and the loop is unbounded.
    """

    def __init__(self, path: str, *, encoding: str = "utf-8") -> None:
        self._path = path
        self._encoding = encoding
        self._queue: asyncio.Queue[Line | BaseException | object] = asyncio.Queue()
        self._stop = threading.Event()
        self._opening = threading.Event()
        self._thread: threading.Thread | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def path(self) -> str:
        return self._path

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self._thread is not None:
            return
        self._loop = asyncio.get_running_loop()
        self._thread = threading.Thread(
            target=self._run,
            name=f"tailplot-reader:{self._path}",
            daemon=True,
        )
        self._thread.start()

    def close(self) -> None:
        """Stop the reader thread; it releases the file within one poll interval."""
        if self._stop.is_set():
            return
        self._stop.set()
        if self._opening.is_set():
            self._wake_open()

    def _wake_open(self) -> None:
        # Opening a FIFO for reading blocks until a writer appears; become
        # that writer for a moment so the reader thread can see the stop flag.
        try:
            if not stat.S_ISFIFO(os.stat(self._path).st_mode):
                return
            fd = os.open(self._path, os.O_WRONLY | os.O_NONBLOCK)
        except OSError:
            return
        os.close(fd)

    def _deliver(self, item: Line | BaseException | object) -> bool:
        loop = self._loop
        if loop is None or loop.is_closed():
            return False
        try:
            loop.call_soon_threadsafe(self._queue.put_nowait, item)
        except RuntimeError:
            # Loop closed between the check and the call.
            return False
        return True

    def _open(self) -> int | None:
        self._opening.set()
        try:
            if self._stop.is_set():
                return None
            fd = os.open(self._path, os.O_RDONLY)
        finally:
            self._opening.clear()
        if self._stop.is_set():
            os.close(fd)
            return None
        return fd

    def _read_lines(self, fd: int) -> None:
        decoder = codecs.getincrementaldecoder(self._encoding)(errors="replace")
        pending = ""
        while not self._stop.is_set():
            ready, _, _ = select.select([fd], [], [], _POLL_INTERVAL)
            if not ready:
                continue
            data = os.read(fd, _CHUNK_SIZE)
            read_at = time.time()
            if not data:
                pending += decoder.decode(b"", final=True)
                if pending:
                    self._deliver(Line(pending, read_at))
                return
            *lines, pending = (pending + decoder.decode(data)).split("\n")
            for text in lines:
                if not self._deliver(Line(text + "\n", read_at)):
                    return

    def _run(self) -> None:
        try:
            fd = self._open()
            if fd is not None:
                try:
                    self._read_lines(fd)
                finally:
                    os.close(fd)
        except OSError as exc:
            self._deliver(SourceReadError(f"cannot read {self._path}: {exc}", path=self._path))
            return
        self._deliver(_EOF)

    async def lines(self) -> AsyncIterator[Line]:
        """Iterate over lines until end-of-input.

        Raises
        ------
        SourceReadError
            When the underlying file cannot be opened or read.
        """
        self.start()
        try:
            while True:
                item = await self._queue.get()
                if item is _EOF:
                    _logger.debug("End of input on %s", self._path)
                    return
                if isinstance(item, BaseException):
                    raise item
                assert isinstance(item, Line)  # noqa: S101
                yield item
        finally:
            self.close()
