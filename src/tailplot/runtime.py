"""Session runtime: wires sources, hub, store and the interactive UI.

The caller (normally :mod:`tailplot.cli`) supplies the list of configured
sources; everything else is owned here for the duration of one run.
"""

from __future__ import annotations

import contextlib
import logging
import os
from collections.abc import Iterator, Sequence
from typing import Any

from rich.console import Console

from tailplot.config import SourceConfig, SourceKind, TailplotConfig
from tailplot.exceptions import SourceMissingError, TailplotConfigError
from tailplot.ingestion.adapters import SourceAdapter, open_adapter
from tailplot.ingestion.csv_source import expand_paths
from tailplot.ingestion.hub import IngestionHub
from tailplot.ingestion.watcher import FileNotifier
from tailplot.state.store import TimeSeriesStore
from tailplot.state.view import ViewState
from tailplot.state.warnings import WarningLog
from tailplot.ui.controller import Controller
from tailplot.ui.keyboard import KeyboardInput
from tailplot.ui.screen import Screen

_logger = logging.getLogger(__name__)

_PACKAGE_LOGGER = "tailplot"


def check_sources(sources: Sequence[SourceConfig]) -> None:
    """Fail fast when any configured source is missing.

    Raises
    ------
    TailplotConfigError
        When no sources are configured.
    SourceMissingError
        For the first source that does not exist.
    """
    if not sources:
        raise TailplotConfigError("no sources configured")
    for source in sources:
        if source.kind is SourceKind.CSV_POLL:
            exists = bool(expand_paths(source.path))
        else:
            exists = os.path.exists(source.path)
        if not exists:
            raise SourceMissingError(
                f"{source.kind} source not found: {source.path}",
                path=source.path,
                kind=str(source.kind),
            )


@contextlib.contextmanager
def capture_logs(config: TailplotConfig) -> Iterator[WarningLog]:
    """Route package logs into a :class:`WarningLog` for the session.

    Propagation to the root logger is switched off meanwhile so nothing is
    written over the full-screen display. With ``config.log_file`` set, a
    DEBUG file log is attached as well.
    """
    logger = logging.getLogger(_PACKAGE_LOGGER)
    warnings = WarningLog(backlog_size=config.warning_backlog_size)
    handlers: list[logging.Handler] = [warnings]
    if config.log_file:
        file_handler = logging.FileHandler(config.log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        handlers.append(file_handler)

    old_level, old_propagate = logger.level, logger.propagate
    for handler in handlers:
        logger.addHandler(handler)
    logger.propagate = False
    if config.log_file:
        logger.setLevel(logging.DEBUG)
    elif logger.getEffectiveLevel() > logging.WARNING:
        logger.setLevel(logging.WARNING)
    try:
        yield warnings
    finally:
        for handler in handlers:
            logger.removeHandler(handler)
            handler.close()
        logger.setLevel(old_level)
        logger.propagate = old_propagate


class Session:
    """Ingestion side of one run: store, hub, notifier and adapters.

    Usage::

        async with Session(sources, config) as session:
            ...  # session.store fills up as the sources produce data
    """

    def __init__(self, sources: Sequence[SourceConfig], config: TailplotConfig | None = None) -> None:
        self._sources = list(sources)
        self._config = config or TailplotConfig()
        self.store = TimeSeriesStore()
        self.hub = IngestionHub(self.store)
        self._notifier: FileNotifier | None = None
        self.adapters: list[SourceAdapter] = []

    async def __aenter__(self) -> Session:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()

    def _start_notifier(self) -> FileNotifier | None:
        if not self._config.use_notifications or not any(s.kind.is_poll for s in self._sources):
            return None
        notifier = FileNotifier()
        try:
            notifier.start()
        except (OSError, RuntimeError) as exc:
            _logger.warning("File notifications unavailable (%s); poll sources use fixed intervals", exc)
            return None
        return notifier

    async def start(self) -> None:
        check_sources(self._sources)
        self._notifier = self._start_notifier()
        self.hub.start()
        for source in self._sources:
            adapter = open_adapter(source, config=self._config, notifier=self._notifier)
            self.adapters.append(adapter)
            self.hub.attach(adapter)
            _logger.debug("Started %s source %s", source.kind, source.path)

    async def stop(self) -> None:
        await self.hub.stop()
        notifier, self._notifier = self._notifier, None
        if notifier is not None:
            notifier.stop()
        _logger.debug("Session stopped with %d series", len(self.store))


async def run(
    sources: Sequence[SourceConfig],
    config: TailplotConfig | None = None,
    *,
    console: Console | None = None,
) -> TimeSeriesStore:
    """Run an interactive session until the user quits.

    Sources are validated before anything starts; a missing source raises
    :class:`~tailplot.exceptions.SourceMissingError` and no session is shown.
    Returns the store so callers can inspect what was collected.
    """
    config = config or TailplotConfig()
    check_sources(sources)

    with capture_logs(config) as warnings:
        async with Session(sources, config) as session:
            controller = Controller(session.store, ViewState(), config=config, data_ready=session.hub.data_ready)
            async with KeyboardInput() as keyboard:
                with Screen(
                    console,
                    warnings=warnings,
                    warning_display_duration=config.warning_display_duration,
                ) as screen:
                    await controller.run(keyboard.keys, screen.draw)
        return session.store
