"""Interactive controller: key handling and the redraw loop.

The controller owns the :class:`ViewState`. Keys drive a two-state machine
(``Normal`` and ``Help``) plus an independent quit flag that is checked after
every transition. The redraw loop wakes on whichever comes first of a key,
a data-ready signal from the ingestion hub, or the periodic tick, and never
draws more often than the configured frame rate.
"""

from __future__ import annotations

import asyncio
import contextlib
import enum
import logging
import math
import time
from collections.abc import Callable

from tailplot._constants import SCROLL_LARGE_FRACTION, SCROLL_SMALL_FRACTION, ZOOM_STEP, next_palette_color
from tailplot.config import TailplotConfig
from tailplot.render.engine import clamp_scroll, clamp_zoom, compute_window, visible_names
from tailplot.state.store import StoreSnapshot, TimeSeriesStore
from tailplot.state.view import Modal, ViewState

_logger = logging.getLogger(__name__)


class Action(enum.StrEnum):
    QUIT = "quit"
    TOGGLE_HELP = "toggle-help"
    CLOSE_HELP = "close-help"
    SCROLL_LEFT = "scroll-left"
    SCROLL_RIGHT = "scroll-right"
    PAGE_LEFT = "page-left"
    PAGE_RIGHT = "page-right"
    ZOOM_IN = "zoom-in"
    ZOOM_OUT = "zoom-out"
    RESET = "reset"
    FOCUS_NEXT = "focus-next"
    FOCUS_PREV = "focus-prev"
    TOGGLE_VISIBILITY = "toggle-visibility"
    CYCLE_COLOR = "cycle-color"
    TOGGLE_PAUSE = "toggle-pause"
    TOGGLE_WARNINGS = "toggle-warnings"


KEY_BINDINGS: dict[str, Action] = {
    "q": Action.QUIT,
    "?": Action.TOGGLE_HELP,
    "escape": Action.CLOSE_HELP,
    "h": Action.SCROLL_LEFT,
    "left": Action.SCROLL_LEFT,
    "l": Action.SCROLL_RIGHT,
    "right": Action.SCROLL_RIGHT,
    "H": Action.PAGE_LEFT,
    "L": Action.PAGE_RIGHT,
    "=": Action.ZOOM_IN,
    "+": Action.ZOOM_IN,
    "-": Action.ZOOM_OUT,
    "r": Action.RESET,
    "j": Action.FOCUS_NEXT,
    "down": Action.FOCUS_NEXT,
    "k": Action.FOCUS_PREV,
    "up": Action.FOCUS_PREV,
    "v": Action.TOGGLE_VISIBILITY,
    "c": Action.CYCLE_COLOR,
    " ": Action.TOGGLE_PAUSE,
    "w": Action.TOGGLE_WARNINGS,
}

HELP_ENTRIES: tuple[tuple[str, str], ...] = (
    ("?", "Show/hide this help"),
    ("q", "Quit"),
    ("h / ←", "Scroll left by 10%"),
    ("l / →", "Scroll right by 10%"),
    ("H / L", "Scroll left/right by 50%"),
    ("= / +", "Zoom in"),
    ("-", "Zoom out"),
    ("r", "Reset viewport to the full data range"),
    ("j / k", "Focus next/previous series"),
    ("v", "Show/hide the focused series"),
    ("c", "Cycle the focused series' colour"),
    ("SPACE", "Pause/resume the chart"),
    ("w", "Show/hide warnings"),
)

# Keys that keep working while the help overlay is open.
_HELP_ACTIONS = frozenset({Action.QUIT, Action.TOGGLE_HELP, Action.CLOSE_HELP})

DrawCallback = Callable[[ViewState, StoreSnapshot], None]


class Controller:
    """Apply key presses to a :class:`ViewState` and schedule redraws."""

    def __init__(
        self,
        store: TimeSeriesStore,
        view: ViewState | None = None,
        *,
        config: TailplotConfig | None = None,
        data_ready: asyncio.Event | None = None,
    ) -> None:
        self._store = store
        self.view = view or ViewState()
        self._config = config or TailplotConfig()
        self._data_ready = data_ready or asyncio.Event()
        self.frames_drawn = 0

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def snapshot(self) -> StoreSnapshot:
        """The data the next frame shows: frozen while paused, live otherwise."""
        return self.view.frozen if self.view.frozen is not None else self._store.snapshot()

    def handle_key(self, key: str) -> bool:
        """Apply one key press. Returns False when the key is unbound."""
        action = KEY_BINDINGS.get(key)
        if action is None:
            return False
        if self.view.modal is Modal.HELP and action not in _HELP_ACTIONS:
            return False
        self.apply(action)
        return True

    def apply(self, action: Action) -> None:
        view = self.view
        if action is Action.QUIT:
            view.quit_requested = True
        elif action is Action.TOGGLE_HELP:
            view.modal = Modal.NORMAL if view.modal is Modal.HELP else Modal.HELP
        elif action is Action.CLOSE_HELP:
            view.modal = Modal.NORMAL
        elif action in (Action.SCROLL_LEFT, Action.PAGE_LEFT):
            fraction = SCROLL_SMALL_FRACTION if action is Action.SCROLL_LEFT else SCROLL_LARGE_FRACTION
            self._scroll(fraction)
        elif action in (Action.SCROLL_RIGHT, Action.PAGE_RIGHT):
            fraction = SCROLL_SMALL_FRACTION if action is Action.SCROLL_RIGHT else SCROLL_LARGE_FRACTION
            self._scroll(-fraction)
        elif action is Action.ZOOM_IN:
            self._zoom(ZOOM_STEP)
        elif action is Action.ZOOM_OUT:
            self._zoom(1 / ZOOM_STEP)
        elif action is Action.RESET:
            view.scroll_offset = 0.0
            view.zoom = clamp_zoom(1.0)
        elif action is Action.FOCUS_NEXT:
            self._move_focus(1)
        elif action is Action.FOCUS_PREV:
            self._move_focus(-1)
        elif action is Action.TOGGLE_VISIBILITY:
            self._toggle_visibility()
        elif action is Action.CYCLE_COLOR:
            self._cycle_color()
        elif action is Action.TOGGLE_PAUSE:
            view.frozen = None if view.frozen is not None else self._store.snapshot()
        elif action is Action.TOGGLE_WARNINGS:
            view.show_warnings = not view.show_warnings

    def _reclamp(self, snapshot: StoreSnapshot) -> None:
        bounds = snapshot.bounds(visible_names(self.view, snapshot))
        self.view.scroll_offset = clamp_scroll(self.view.scroll_offset, self.view.zoom, bounds)

    def _scroll(self, fraction: float) -> None:
        snapshot = self.snapshot()
        window = compute_window(self.view, snapshot)
        if window is None:
            self.view.scroll_offset = 0.0
            return
        self.view.scroll_offset += fraction * window.span
        self._reclamp(snapshot)

    def _zoom(self, factor: float) -> None:
        self.view.zoom = clamp_zoom(self.view.zoom * factor)
        self._reclamp(self.snapshot())

    def _move_focus(self, step: int) -> None:
        names = self.snapshot().names()
        if not names:
            self.view.focus = None
            return
        if self.view.focus not in names:
            self.view.focus = names[0] if step > 0 else names[-1]
            return
        index = names.index(self.view.focus)
        self.view.focus = names[(index + step) % len(names)]

    def _focused(self) -> str | None:
        names = self.snapshot().names()
        if self.view.focus not in names:
            self.view.focus = names[0] if names else None
        return self.view.focus

    def _toggle_visibility(self) -> None:
        name = self._focused()
        if name is None:
            return
        if name in self.view.hidden:
            self.view.hidden.discard(name)
        else:
            self.view.hidden.add(name)
        self._reclamp(self.snapshot())

    def _cycle_color(self) -> None:
        name = self._focused()
        if name is None:
            return
        default = self.snapshot().series[name].color
        current = self.view.color_for(name, default)
        self.view.color_overrides[name] = next_palette_color(current)

    # ------------------------------------------------------------------
    # Redraw loop
    # ------------------------------------------------------------------

    def _draw(self, draw: DrawCallback) -> None:
        snapshot = self.snapshot()
        self._reclamp(snapshot)
        draw(self.view, snapshot)
        self.frames_drawn += 1

    async def run(self, keys: asyncio.Queue[str], draw: DrawCallback) -> None:
        """Redraw until quit is requested, then draw one final frame."""
        min_interval = self._config.min_frame_interval
        last_draw = -math.inf
        pending = True

        while not self.view.quit_requested:
            timeout = self._config.tick_interval
            if pending:
                remaining = min_interval - (time.monotonic() - last_draw)
                if remaining <= 0:
                    self._draw(draw)
                    last_draw = time.monotonic()
                    pending = False
                else:
                    timeout = remaining

            key_task = asyncio.ensure_future(keys.get())
            data_task = asyncio.ensure_future(self._data_ready.wait())
            try:
                await asyncio.wait(
                    {key_task, data_task},
                    timeout=timeout,
                    return_when=asyncio.FIRST_COMPLETED,
                )
            finally:
                for task in (key_task, data_task):
                    if not task.done():
                        task.cancel()
                        with contextlib.suppress(asyncio.CancelledError):
                            await task

            if key_task.done() and not key_task.cancelled():
                self.handle_key(key_task.result())
                while not keys.empty() and not self.view.quit_requested:
                    self.handle_key(keys.get_nowait())
            if data_task.done() and not data_task.cancelled():
                self._data_ready.clear()
            # Keys, new data and the tick all call for a redraw.
            pending = True

        _logger.debug("Quit requested after %d frames", self.frames_drawn)
        self._draw(draw)
