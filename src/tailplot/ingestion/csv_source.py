"""CSV source adapters.

* ``csv-stream``: a header line (or an explicit header) followed by rows,
  read as they arrive.
* ``csv-poll``: one or more files (the path may be a glob) re-read on every
  watcher trigger.

Cells are matched to header names by position. A cell that is not a finite
number is dropped on its own; the rest of the row still counts.
"""

from __future__ import annotations

import asyncio
import csv
import glob
import logging
import os
import time
from collections.abc import AsyncIterator, Sequence

from tailplot.config import SourceConfig
from tailplot.ingestion.normalize import safe_float, shorten_for_log
from tailplot.ingestion.reader import LineReader
from tailplot.ingestion.watcher import Watcher
from tailplot.state.events import Reading

_logger = logging.getLogger(__name__)


def split_row(line: str, delimiter: str = ",") -> list[str] | None:
    """Split one CSV line into cells; ``None`` when it cannot be parsed."""
    try:
        return next(csv.reader([line.rstrip("\r\n")], delimiter=delimiter), [])
    except csv.Error:
        return None


def parse_header(line: str, delimiter: str = ",") -> tuple[str, ...] | None:
    cells = split_row(line, delimiter)
    if not cells:
        return None
    return tuple(cell.strip() for cell in cells)


def row_values(header: Sequence[str], cells: Sequence[str]) -> list[tuple[str, float]]:
    """Pair numeric cells with their column names.

    Cells beyond the header, unnamed columns and non-numeric cells are
    skipped.
    """
    values: list[tuple[str, float]] = []
    for name, cell in zip(header, cells, strict=False):
        if not name:
            continue
        value = safe_float(cell)
        if value is not None:
            values.append((name, value))
    return values


def parse_csv_text(
    text: str,
    *,
    delimiter: str = ",",
    header: tuple[str, ...] | None = None,
) -> tuple[tuple[str, ...] | None, dict[str, float]]:
    """Parse a whole CSV document for one poll reload.

    Returns the header in effect and, for every column, the value from the
    last row holding a numeric cell in that column. The explicit *header*
    wins; otherwise the first non-blank line is the header.
    """
    lines = [line for line in text.splitlines() if line.strip()]
    if header is None:
        if not lines:
            return None, {}
        header = parse_header(lines[0], delimiter)
        lines = lines[1:]
        if header is None:
            return None, {}

    latest: dict[str, float] = {}
    for line in lines:
        cells = split_row(line, delimiter)
        if cells is None:
            _logger.debug("Skipping malformed CSV row: %s", shorten_for_log(line))
            continue
        for name, value in row_values(header, cells):
            # Later rows overwrite; order of first appearance is kept.
            latest[name] = value
    return header, latest


def expand_paths(pattern: str) -> list[str]:
    """Files a poll target currently refers to, in a stable order."""
    if glob.has_magic(pattern):
        return sorted(path for path in glob.glob(pattern) if os.path.isfile(path))
    return [pattern] if os.path.isfile(pattern) else []


class CsvStreamAdapter:
    """Read a CSV stream until end-of-input."""

    def __init__(self, source: SourceConfig) -> None:
        self.source = source
        self.header: tuple[str, ...] | None = source.header
        self._reader = LineReader(source.path)

    def close(self) -> None:
        self._reader.close()

    async def readings(self) -> AsyncIterator[Reading]:
        delimiter = self.source.delimiter
        async for line in self._reader.lines():
            if not line.text.strip():
                continue
            if self.header is None:
                self.header = parse_header(line.text, delimiter)
                _logger.debug("Header for %s: %s", self.source.path, self.header)
                continue
            cells = split_row(line.text, delimiter)
            if cells is None:
                _logger.debug("Skipping malformed CSV row from %s: %s", self.source.path, shorten_for_log(line.text))
                continue
            for name, value in row_values(self.header, cells):
                yield Reading(name=name, value=value, timestamp=line.read_at)


def _read_text(path: str) -> str:
    with open(path, encoding="utf-8", errors="replace", newline="") as handle:
        return handle.read()


class CsvPollAdapter:
    """Re-read one or more CSV files on every watcher trigger.

    Each reload appends at most one reading per column: the last numeric
    value of that column in the first file (in sorted order) that has one.
    Later files never override an earlier file's column. The header is
    resolved again on every reload, so a changed header only affects
    readings from that reload onwards.
    """

    def __init__(self, source: SourceConfig, watcher: Watcher) -> None:
        self.source = source
        self.headers: dict[str, tuple[str, ...] | None] = {}
        self._watcher = watcher
        self._missing = False

    def close(self) -> None:
        self._watcher.close()

    def _note_presence(self, paths: list[str]) -> None:
        if not paths and not self._missing:
            _logger.warning("%s matches no files; waiting for them to appear", self.source.path)
            self._missing = True
        elif paths and self._missing:
            _logger.info("%s matches files again", self.source.path)
            self._missing = False

    async def reload(self) -> list[Reading]:
        """Read every matching file once and return the merged readings."""
        reload_at = time.time()
        paths = await asyncio.to_thread(expand_paths, self.source.path)
        self._note_presence(paths)

        merged: dict[str, float] = {}
        for path in paths:
            try:
                text = await asyncio.to_thread(_read_text, path)
            except FileNotFoundError:
                # Removed between expansion and read.
                continue
            except OSError as exc:
                _logger.warning("Cannot read %s: %s", path, exc)
                continue

            header, latest = parse_csv_text(text, delimiter=self.source.delimiter, header=self.source.header)
            if self.headers.get(path) != header:
                _logger.debug("Header for %s: %s", path, header)
            self.headers[path] = header
            for name, value in latest.items():
                if name in merged:
                    _logger.debug("Ignoring %s from %s; an earlier file already provided it", name, path)
                    continue
                merged[name] = value

        return [Reading(name=name, value=value, timestamp=reload_at) for name, value in merged.items()]

    async def readings(self) -> AsyncIterator[Reading]:
        async for trigger in self._watcher.triggers():
            _logger.debug("Reloading %s (%s)", self.source.path, trigger)
            for reading in await self.reload():
                yield reading
