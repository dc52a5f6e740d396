from __future__ import annotations

import asyncio

import pytest

from tailplot._constants import PALETTE, ZOOM_MAX, ZOOM_MIN
from tailplot.config import TailplotConfig
from tailplot.render.engine import compute_window
from tailplot.state.store import StoreSnapshot, TimeSeriesStore, Window
from tailplot.state.view import Modal, ViewState
from tailplot.ui.controller import Controller


def _controller(points: int = 101, **series_names: None) -> Controller:
    store = TimeSeriesStore()
    for name in series_names or {"a": None}:
        for t in range(points):
            store.append(name, float(t), timestamp=float(t))
    return Controller(store, ViewState(), config=TailplotConfig(max_fps=1000, tick_interval=0.01))


def test_help_toggles_and_quit_from_both_states() -> None:
    controller = _controller()
    controller.handle_key("?")
    assert controller.view.modal is Modal.HELP
    controller.handle_key("escape")
    assert controller.view.modal is Modal.NORMAL

    controller.handle_key("?")
    controller.handle_key("q")
    assert controller.view.quit_requested


def test_quit_from_normal() -> None:
    controller = _controller()
    assert controller.handle_key("q")
    assert controller.view.quit_requested


def test_help_blocks_other_keys() -> None:
    controller = _controller()
    controller.handle_key("?")

    assert controller.handle_key("=") is False
    assert controller.view.zoom == ZOOM_MIN


def test_unbound_key_ignored() -> None:
    controller = _controller()
    assert controller.handle_key("x") is False


def test_scroll_clamped_past_both_ends() -> None:
    controller = _controller()
    controller.handle_key("=")
    controller.handle_key("=")

    for _ in range(200):
        controller.handle_key("h")
    snapshot = controller.snapshot()
    window = compute_window(controller.view, snapshot)
    assert window is not None and window.start == 0.0

    for _ in range(200):
        controller.handle_key("l")
    assert controller.view.scroll_offset == 0.0
    assert compute_window(controller.view, snapshot) == Window(100.0 - 100.0 / 1.5625, 100.0)


def test_scroll_on_empty_store_is_noop() -> None:
    controller = Controller(TimeSeriesStore())
    controller.handle_key("h")
    controller.handle_key("L")
    assert controller.view.scroll_offset == 0.0


def test_scroll_at_zoom_one_stays_at_zero() -> None:
    controller = _controller()
    controller.handle_key("H")
    assert controller.view.scroll_offset == 0.0


def test_zoom_bounds_and_reset() -> None:
    controller = _controller()
    for _ in range(100):
        controller.handle_key("+")
    assert controller.view.zoom == ZOOM_MAX
    controller.handle_key("h")
    assert controller.view.scroll_offset > 0

    controller.handle_key("r")
    assert controller.view.zoom == ZOOM_MIN
    assert controller.view.scroll_offset == 0.0

    for _ in range(5):
        controller.handle_key("-")
    assert controller.view.zoom == ZOOM_MIN


def test_focus_visibility_and_colour() -> None:
    controller = _controller(a=None, b=None)

    controller.handle_key("j")
    assert controller.view.focus == "a"
    controller.handle_key("j")
    assert controller.view.focus == "b"
    controller.handle_key("j")
    assert controller.view.focus == "a"
    controller.handle_key("k")
    assert controller.view.focus == "b"

    controller.handle_key("v")
    assert controller.view.hidden == {"b"}
    controller.handle_key("v")
    assert controller.view.hidden == set()

    controller.handle_key("c")
    assert controller.view.color_overrides["b"] == PALETTE[2]
    controller.handle_key("c")
    assert controller.view.color_overrides["b"] == PALETTE[3]


def test_visibility_without_focus_uses_first_series() -> None:
    controller = _controller(a=None, b=None)
    controller.handle_key("v")
    assert controller.view.hidden == {"a"}


def test_colour_cycle_wraps() -> None:
    controller = _controller()
    for _ in range(len(PALETTE)):
        controller.handle_key("c")
    assert controller.view.color_overrides["a"] == PALETTE[0]


def test_pause_freezes_snapshot() -> None:
    controller = _controller(points=3)
    controller.handle_key(" ")
    assert controller.view.paused

    controller._store.append("a", 99.0, timestamp=10.0)
    assert controller.snapshot().series["a"].values == [0.0, 1.0, 2.0]

    controller.handle_key(" ")
    assert controller.snapshot().series["a"].values[-1] == 99.0


def test_warnings_toggle() -> None:
    controller = _controller()
    controller.handle_key("w")
    assert controller.view.show_warnings
    controller.handle_key("w")
    assert not controller.view.show_warnings


@pytest.mark.asyncio
async def test_run_draws_until_quit() -> None:
    controller = _controller(points=3)
    keys: asyncio.Queue[str] = asyncio.Queue()
    frames: list[tuple[Modal, int]] = []

    def draw(view: ViewState, snapshot: StoreSnapshot) -> None:
        frames.append((view.modal, snapshot.version))
        if len(frames) == 1:
            keys.put_nowait("?")
        elif view.modal is Modal.HELP:
            keys.put_nowait("q")

    await asyncio.wait_for(controller.run(keys, draw), timeout=5)

    assert controller.view.quit_requested
    assert frames[0] == (Modal.NORMAL, 3)
    assert any(modal is Modal.HELP for modal, _ in frames)
    assert controller.frames_drawn == len(frames)


@pytest.mark.asyncio
async def test_run_redraws_on_data() -> None:
    store = TimeSeriesStore()
    data_ready = asyncio.Event()
    controller = Controller(store, config=TailplotConfig(tick_interval=10.0, max_fps=1000), data_ready=data_ready)
    keys: asyncio.Queue[str] = asyncio.Queue()
    versions: list[int] = []

    def draw(view: ViewState, snapshot: StoreSnapshot) -> None:
        versions.append(snapshot.version)
        if snapshot.version == 0:
            store.append("a", 1.0, timestamp=1.0)
            data_ready.set()
        else:
            keys.put_nowait("q")

    await asyncio.wait_for(controller.run(keys, draw), timeout=5)

    assert versions[0] == 0
    assert 1 in versions
