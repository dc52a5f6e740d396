"""Warning backlog shown in the interactive session.

Adapters and watchers report degradations through the standard ``logging``
module. :class:`WarningLog` is a handler that keeps the most recent
``WARNING``-and-above records so the screen can display them without the
session ever writing to the terminal directly.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from typing import NamedTuple


class WarningEntry(NamedTuple):
    created: float
    message: str


class WarningLog(logging.Handler):
    """Bounded, thread-safe backlog of warning records."""

    def __init__(self, *, backlog_size: int = 1000, level: int = logging.WARNING) -> None:
        super().__init__(level=level)
        self._entries: deque[WarningEntry] = deque(maxlen=backlog_size)
        self._entries_lock = threading.Lock()
        self.setFormatter(logging.Formatter("%(name)s: %(message)s"))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.format(record)
        except Exception:
            self.handleError(record)
            return
        with self._entries_lock:
            self._entries.append(WarningEntry(record.created, message))

    def entries(self) -> list[WarningEntry]:
        with self._entries_lock:
            return list(self._entries)

    def latest(self) -> WarningEntry | None:
        with self._entries_lock:
            return self._entries[-1] if self._entries else None

    def is_recent(self, duration: float, *, now: float | None = None) -> bool:
        """Whether the newest warning is younger than *duration* seconds."""
        latest = self.latest()
        if latest is None:
            return False
        current = time.time() if now is None else now
        return current - latest.created < duration

    def __len__(self) -> int:
        with self._entries_lock:
            return len(self._entries)
