"""Source adapter interface and factory.

Every source kind is one adapter class exposing the same capability: an
async iterator of :class:`~tailplot.state.events.Reading` objects, plus
``close()`` to release its file handle or watcher.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Protocol

from tailplot.config import SourceConfig, SourceKind, TailplotConfig
from tailplot.ingestion.csv_source import CsvPollAdapter, CsvStreamAdapter
from tailplot.ingestion.json_source import JsonPollAdapter, JsonStreamAdapter
from tailplot.ingestion.watcher import FileNotifier, Watcher
from tailplot.state.events import Reading


class SourceAdapter(Protocol):
    source: SourceConfig

    def readings(self) -> AsyncIterator[Reading]: ...

    def close(self) -> None: ...


def open_adapter(
    source: SourceConfig,
    *,
    config: TailplotConfig | None = None,
    notifier: FileNotifier | None = None,
) -> SourceAdapter:
    """Build the adapter for *source*.

    Poll sources get their own :class:`Watcher`; *notifier* is only used
    when notifications are enabled in *config*.
    """
    config = config or TailplotConfig()

    if source.kind is SourceKind.JSON_STREAM:
        return JsonStreamAdapter(source)
    if source.kind is SourceKind.CSV_STREAM:
        return CsvStreamAdapter(source)

    watcher = Watcher(
        source.path,
        period=source.effective_poll_period(config.poll_period),
        debounce=config.debounce,
        notifier=notifier if config.use_notifications else None,
    )
    if source.kind is SourceKind.JSON_POLL:
        return JsonPollAdapter(source, watcher)
    return CsvPollAdapter(source, watcher)
