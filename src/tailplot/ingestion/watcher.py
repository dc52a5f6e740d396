"""Reload scheduling for poll sources.

A :class:`Watcher` yields one trigger per reload. It prefers OS file-change
notifications delivered by a shared watchdog observer (:class:`FileNotifier`)
and falls back to a fixed interval when the path cannot be watched.

Notifications are registered on the parent directory rather than the file
itself, so a file that is deleted and later recreated keeps triggering
reloads without re-registration.
"""

from __future__ import annotations

import asyncio
import enum
import fnmatch
import glob
import logging
import os
import threading
from collections.abc import AsyncIterator, Callable
from typing import Any

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

_logger = logging.getLogger(__name__)

# Opened/closed-without-write events fire on our own reloads and must not
# trigger another one.
_RELOAD_EVENT_TYPES = frozenset({"created", "modified", "moved", "deleted", "closed"})


class Trigger(enum.StrEnum):
    INITIAL = "initial"
    NOTIFY = "notify"
    INTERVAL = "interval"


class _PatternHandler(FileSystemEventHandler):
    """Dispatch watchdog events for paths matching registered patterns."""

    def __init__(self) -> None:
        super().__init__()
        self._lock = threading.Lock()
        self._subscribers: dict[int, tuple[str, Callable[[], None]]] = {}
        self._next_id = 0

    def add(self, pattern: str, callback: Callable[[], None]) -> int:
        with self._lock:
            sub_id = self._next_id
            self._next_id += 1
            self._subscribers[sub_id] = (pattern, callback)
            return sub_id

    def remove(self, sub_id: int) -> bool:
        """Remove a subscriber; return True when none remain."""
        with self._lock:
            self._subscribers.pop(sub_id, None)
            return not self._subscribers

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type not in _RELOAD_EVENT_TYPES:
            return
        paths = [os.fsdecode(event.src_path)]
        dest = getattr(event, "dest_path", "")
        if dest:
            paths.append(os.fsdecode(dest))
        with self._lock:
            subscribers = list(self._subscribers.values())
        for pattern, callback in subscribers:
            if any(fnmatch.fnmatchcase(os.path.abspath(path), pattern) for path in paths):
                callback()


class FileNotifier:
    """One watchdog observer shared by every poll source.

    Each watched directory is scheduled once, however many patterns live in
    it. Callbacks run on the observer thread.
    """

    def __init__(self, observer: Any | None = None) -> None:
        self._observer = observer if observer is not None else Observer()
        self._lock = threading.Lock()
        self._dirs: dict[str, tuple[Any, _PatternHandler]] = {}
        self._started = False

    def start(self) -> None:
        if not self._started:
            self._observer.start()
            self._started = True

    def stop(self) -> None:
        if self._started:
            self._observer.stop()
            self._observer.join(timeout=2.0)
            self._started = False

    def watch(self, pattern: str, callback: Callable[[], None]) -> Callable[[], None]:
        """Register *callback* for changes to files matching *pattern*.

        Returns an unsubscribe function.

        Raises
        ------
        OSError
            When the containing directory cannot be watched.
        ValueError
            When the directory part of *pattern* is itself a glob.
        """
        pattern = os.path.abspath(pattern)
        directory = os.path.dirname(pattern)
        if glob.has_magic(directory):
            raise ValueError(f"cannot watch a wildcard directory: {directory}")
        if not os.path.isdir(directory):
            raise FileNotFoundError(directory)

        with self._lock:
            entry = self._dirs.get(directory)
            if entry is None:
                handler = _PatternHandler()
                watch = self._observer.schedule(handler, directory, recursive=False)
                entry = (watch, handler)
                self._dirs[directory] = entry
            watch, handler = entry
            sub_id = handler.add(pattern, callback)

        def unsubscribe() -> None:
            with self._lock:
                current = self._dirs.get(directory)
                if current is None:
                    return
                if current[1].remove(sub_id):
                    self._dirs.pop(directory, None)
                    try:
                        self._observer.unschedule(current[0])
                    except (KeyError, OSError):
                        _logger.debug("Unschedule failed for %s", directory, exc_info=True)

        return unsubscribe


class Watcher:
    """Produce reload triggers for one poll source.

    The first trigger is immediate. After that, triggers come from debounced
    change notifications when *notifier* can watch *pattern*, otherwise from
    a fixed *period*.
    """

    def __init__(
        self,
        pattern: str,
        *,
        period: float,
        debounce: float = 0.05,
        notifier: FileNotifier | None = None,
    ) -> None:
        self._pattern = pattern
        self._period = period
        self._debounce = debounce
        self._notifier = notifier
        self._changed = asyncio.Event()
        self._unsubscribe: Callable[[], None] | None = None
        self._closed = False

    @property
    def uses_notifications(self) -> bool:
        return self._unsubscribe is not None

    def _subscribe(self) -> None:
        if self._notifier is None:
            return
        loop = asyncio.get_running_loop()

        def on_change() -> None:
            try:
                loop.call_soon_threadsafe(self._changed.set)
            except RuntimeError:
                # Event loop already closed during shutdown.
                pass

        try:
            self._unsubscribe = self._notifier.watch(self._pattern, on_change)
        except (OSError, ValueError) as exc:
            _logger.warning(
                "File notifications unavailable for %s (%s); polling every %.2fs",
                self._pattern,
                exc,
                self._period,
            )

    def close(self) -> None:
        self._closed = True
        unsubscribe, self._unsubscribe = self._unsubscribe, None
        if unsubscribe is not None:
            unsubscribe()

    async def _wait_notification(self) -> None:
        await self._changed.wait()
        if self._debounce > 0:
            # Let the burst settle, then fold it into one reload.
            await asyncio.sleep(self._debounce)
        self._changed.clear()

    async def triggers(self) -> AsyncIterator[Trigger]:
        self._subscribe()
        try:
            yield Trigger.INITIAL
            while not self._closed:
                if self.uses_notifications:
                    await self._wait_notification()
                    yield Trigger.NOTIFY
                else:
                    await asyncio.sleep(self._period)
                    yield Trigger.INTERVAL
        finally:
            self.close()
