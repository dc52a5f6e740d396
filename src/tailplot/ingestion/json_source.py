"""JSON source adapters.

* ``json-stream``: one JSON object per line (JSON Lines), read as it arrives.
* ``json-poll``: a whole file holding one JSON object, re-read on every
  watcher trigger.

Every top-level field holding a number becomes one reading named after the
field. Objects, arrays, strings, booleans and nulls are ignored.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import AsyncIterator
from typing import Any

from tailplot.config import SourceConfig
from tailplot.ingestion.normalize import numeric_fields, shorten_for_log
from tailplot.ingestion.reader import LineReader
from tailplot.ingestion.watcher import Watcher
from tailplot.state.events import Reading

_logger = logging.getLogger(__name__)


def parse_json_object(text: str) -> dict[str, Any] | None:
    """Parse *text* as a JSON object; ``None`` when it is anything else."""
    try:
        decoded = json.loads(text)
    except ValueError:
        return None
    return decoded if isinstance(decoded, dict) else None


def readings_from_object(obj: dict[str, Any], timestamp: float) -> list[Reading]:
    return [Reading(name=name, value=value, timestamp=timestamp) for name, value in numeric_fields(obj)]


class JsonStreamAdapter:
    """Read a JSON Lines stream until end-of-input."""

    def __init__(self, source: SourceConfig) -> None:
        self.source = source
        self._reader = LineReader(source.path)

    def close(self) -> None:
        self._reader.close()

    async def readings(self) -> AsyncIterator[Reading]:
        async for line in self._reader.lines():
            if not line.text.strip():
                continue
            obj = parse_json_object(line.text)
            if obj is None:
                _logger.debug("Skipping malformed JSON line from %s: %s", self.source.path, shorten_for_log(line.text))
                continue
            for reading in readings_from_object(obj, line.read_at):
                yield reading


def _read_text(path: str) -> str:
    with open(path, encoding="utf-8", errors="replace") as handle:
        return handle.read()


class JsonPollAdapter:
    """Re-read a JSON file on every watcher trigger.

    A reload appends one reading per numeric field, all stamped with the
    reload time. Malformed content skips that reload only.
    """

    def __init__(self, source: SourceConfig, watcher: Watcher) -> None:
        self.source = source
        self._watcher = watcher
        self._missing = False

    def close(self) -> None:
        self._watcher.close()

    async def reload(self) -> list[Reading]:
        """Read the file once and return its readings."""
        reload_at = time.time()
        try:
            text = await asyncio.to_thread(_read_text, self.source.path)
        except FileNotFoundError:
            if not self._missing:
                _logger.warning("%s disappeared; waiting for it to come back", self.source.path)
                self._missing = True
            return []
        except OSError as exc:
            _logger.warning("Cannot read %s: %s", self.source.path, exc)
            return []

        if self._missing:
            _logger.info("%s is back", self.source.path)
            self._missing = False

        obj = parse_json_object(text)
        if obj is None:
            _logger.debug("Skipping malformed JSON in %s for this reload", self.source.path)
            return []
        return readings_from_object(obj, reload_at)

    async def readings(self) -> AsyncIterator[Reading]:
        async for trigger in self._watcher.triggers():
            _logger.debug("Reloading %s (%s)", self.source.path, trigger)
            for reading in await self.reload():
                yield reading
