"""Render engine.

:func:`render_frame` is a pure function of a :class:`ViewState`, a
:class:`StoreSnapshot` and the target size. It has no side effects.

Downsampling rule: the points of a series inside the window are bucketed
into plot columns by time. Every bucket keeps its minimum, maximum and last
value. A column is drawn as a vertical run covering min..max, stretched to
reach the previous column's last value so the line stays connected. Spikes
are never lost however many points share a column.
"""

from __future__ import annotations

import math
import sys
import time
from collections.abc import Sequence
from typing import NamedTuple

from tailplot._constants import X_LABEL_HEIGHT, Y_LABEL_WIDTH, ZOOM_MAX, ZOOM_MIN
from tailplot.render.frame import Cell, Frame, LegendEntry
from tailplot.state.store import Color, Point, StoreSnapshot, Window
from tailplot.state.view import ViewState

_AXIS_COLOR: Color = (200, 200, 200)


class Bucket(NamedTuple):
    column: int
    low: float
    high: float
    last: float


# ----------------------------------------------------------------------
# Window
# ----------------------------------------------------------------------


def visible_names(view: ViewState, snapshot: StoreSnapshot) -> list[str]:
    return [name for name in snapshot.names() if view.is_visible(name)]


def clamp_zoom(zoom: float) -> float:
    return min(max(zoom, ZOOM_MIN), ZOOM_MAX)


def clamp_scroll(offset: float, zoom: float, bounds: Window | None) -> float:
    """Clamp a scroll offset so the window's right edge stays in the data.

    The offset is measured back from the latest point. The largest allowed
    offset puts the window's left edge on the oldest point.
    """
    if bounds is None:
        return 0.0
    full = bounds.span
    span = full / clamp_zoom(zoom)
    return min(max(offset, 0.0), max(full - span, 0.0))


def compute_window(view: ViewState, snapshot: StoreSnapshot) -> Window | None:
    """Visible time window for *view*, or ``None`` when nothing is visible."""
    bounds = snapshot.bounds(visible_names(view, snapshot))
    if bounds is None:
        return None
    span = bounds.span / clamp_zoom(view.zoom)
    end = bounds.end - clamp_scroll(view.scroll_offset, view.zoom, bounds)
    return Window(max(end - span, bounds.start), end)


# ----------------------------------------------------------------------
# Downsampling
# ----------------------------------------------------------------------


def column_of(timestamp: float, window: Window, columns: int) -> int:
    if columns <= 1 or window.span <= 0:
        return max(columns - 1, 0)
    ratio = (timestamp - window.start) / window.span
    return min(max(math.floor(ratio * (columns - 1)), 0), columns - 1)


def downsample(points: Sequence[Point], window: Window, columns: int) -> list[Bucket]:
    """Aggregate *points* into at most *columns* (min, max, last) buckets."""
    buckets: list[Bucket] = []
    for point in points:
        column = column_of(point.timestamp, window, columns)
        if buckets and buckets[-1].column == column:
            prev = buckets[-1]
            buckets[-1] = Bucket(column, min(prev.low, point.value), max(prev.high, point.value), point.value)
        else:
            buckets.append(Bucket(column, point.value, point.value, point.value))
    return buckets


def value_range(series_points: Sequence[Sequence[Point]]) -> tuple[float, float] | None:
    low = math.inf
    high = -math.inf
    for points in series_points:
        for point in points:
            low = min(low, point.value)
            high = max(high, point.value)
    if low > high:
        return None
    if low == high:
        pad = abs(low) * 0.1 or 1.0
        return max(low - pad, -sys.float_info.max), min(high + pad, sys.float_info.max)
    return low, high


# ----------------------------------------------------------------------
# Labels
# ----------------------------------------------------------------------


def format_value(value: float, width: int = Y_LABEL_WIDTH - 1) -> str:
    for precision in (6, 5, 4, 3, 2, 1):
        text = f"{value:.{precision}g}"
        if len(text) <= width:
            return text
    return f"{value:.0e}"[:width]


def format_time(timestamp: float) -> str:
    return time.strftime("%H:%M:%S", time.localtime(timestamp))


# ----------------------------------------------------------------------
# Frame
# ----------------------------------------------------------------------


class _Plot(NamedTuple):
    left: int
    top: int
    width: int
    height: int

    def row_of(self, value: float, y_range: tuple[float, float]) -> int:
        low, high = y_range
        # Halved so spans wider than the float range do not overflow.
        span = high / 2 - low / 2
        ratio = (value / 2 - low / 2) / span if span > 0 else 0.0
        return self.top + (self.height - 1) - round(ratio * (self.height - 1))


def _status_line(view: ViewState, window: Window | None) -> str:
    parts = ["tailplot"]
    if window is not None:
        parts.append(f"{format_time(window.start)} - {format_time(window.end)}")
    parts.append(f"zoom x{view.zoom:.2f}")
    if view.paused:
        parts.append("[PAUSED]")
    parts.append("? help  q quit")
    return "  ".join(parts)


def _draw_axes(frame: Frame, plot: _Plot, window: Window | None, y_range: tuple[float, float] | None) -> None:
    axis_x = plot.left - 1
    for y in range(plot.top, plot.top + plot.height):
        frame.put(axis_x, y, Cell("│", _AXIS_COLOR))
    bottom = plot.top + plot.height
    frame.put(axis_x, bottom, Cell("└", _AXIS_COLOR))
    for x in range(plot.left, plot.left + plot.width):
        frame.put(x, bottom, Cell("─", _AXIS_COLOR))

    if y_range is not None:
        low, high = y_range
        labels = {plot.top: high, plot.top + plot.height - 1: low}
        if plot.height >= 5:
            labels[plot.top + (plot.height - 1) // 2] = low / 2 + high / 2
        for y, value in labels.items():
            text = format_value(value)
            frame.write(max(axis_x - len(text), 0), y, text, color=_AXIS_COLOR)

    if window is not None:
        label_y = bottom + 1
        start, end = format_time(window.start), format_time(window.end)
        frame.write(plot.left, label_y, start, color=_AXIS_COLOR)
        if plot.width >= len(start) + len(end) + 1:
            frame.write(plot.left + plot.width - len(end), label_y, end, color=_AXIS_COLOR)
        mid = format_time((window.start + window.end) / 2)
        mid_x = plot.left + (plot.width - len(mid)) // 2
        if plot.width >= 3 * len(mid) + 4:
            frame.write(mid_x, label_y, mid, color=_AXIS_COLOR)


def _draw_series(
    frame: Frame,
    plot: _Plot,
    buckets: list[Bucket],
    y_range: tuple[float, float],
    color: Color,
    *,
    bold: bool,
) -> None:
    prev_row: int | None = None
    prev_column: int | None = None
    for bucket in buckets:
        x = plot.left + bucket.column
        top = plot.row_of(bucket.high, y_range)
        bottom = plot.row_of(bucket.low, y_range)
        connected = prev_row is not None and prev_column == bucket.column - 1
        if connected:
            assert prev_row is not None  # noqa: S101
            top = min(top, prev_row)
            bottom = max(bottom, prev_row)
        if top == bottom:
            char = "─" if connected else "•"
            frame.put(x, top, Cell(char, color, bold=bold))
        else:
            for y in range(top, bottom + 1):
                frame.put(x, y, Cell("│", color, bold=bold))
        prev_row = plot.row_of(bucket.last, y_range)
        prev_column = bucket.column


def _draw_legend(frame: Frame, plot: _Plot, legend: list[LegendEntry]) -> None:
    if not legend:
        return
    lines: list[tuple[LegendEntry, str]] = []
    for entry in legend:
        value = format_value(entry.last_value) if entry.last_value is not None else "-"
        marker = "■" if entry.visible else "□"
        suffix = "" if entry.visible else " (hidden)"
        lines.append((entry, f"{marker} {entry.name} {value}{suffix}"))

    width = max(len(text) for _, text in lines)
    if width + 2 > plot.width or len(lines) > plot.height:
        return
    x = plot.left + plot.width - width - 1
    for offset, (entry, text) in enumerate(lines):
        y = plot.top + offset
        padded = text.ljust(width)
        frame.put(x - 1, y, Cell(" "))
        frame.write(x, y, padded[:1], color=entry.color, dim=not entry.visible)
        frame.write(
            x + 1,
            y,
            padded[1:],
            color=entry.color if entry.visible else None,
            dim=not entry.visible,
            underline=entry.focused,
        )


def render_frame(view: ViewState, snapshot: StoreSnapshot, width: int, height: int) -> Frame:
    """Draw *snapshot* as seen through *view* into a *width* x *height* frame.

    No data, hidden-only data or a terminal too small for a plot all yield a
    degenerate frame rather than an error.
    """
    frame = Frame.blank(width, height)
    if width <= 0 or height <= 0:
        return frame

    window = compute_window(view, snapshot)
    frame.window = window
    frame.write(0, 0, _status_line(view, window)[:width], bold=True)

    plot = _Plot(
        left=Y_LABEL_WIDTH + 1,
        top=1,
        width=width - Y_LABEL_WIDTH - 1,
        height=height - 1 - 1 - X_LABEL_HEIGHT,
    )
    if plot.width < 2 or plot.height < 2:
        return frame

    names = visible_names(view, snapshot)
    in_window: dict[str, tuple[Point, ...]] = {}
    if window is not None:
        in_window = {name: snapshot.series[name].within(window) for name in names}

    y_range = value_range(list(in_window.values()))
    frame.y_range = y_range
    _draw_axes(frame, plot, window, y_range)

    if window is None or y_range is None:
        frame.write(plot.left + 1, plot.top, "waiting for data…"[: plot.width - 1], dim=True)
    else:
        # Focused series drawn last so it stays on top.
        order = sorted(names, key=lambda name: name == view.focus)
        for name in order:
            points = in_window[name]
            if not points:
                continue
            color = view.color_for(name, snapshot.series[name].color)
            buckets = downsample(points, window, plot.width)
            _draw_series(frame, plot, buckets, y_range, color, bold=name == view.focus)
            frame.plotted.append(name)

    for name in snapshot.names():
        series = snapshot.series[name]
        points = in_window.get(name) or series.points
        frame.legend.append(
            LegendEntry(
                name=name,
                color=view.color_for(name, series.color),
                visible=view.is_visible(name),
                focused=name == view.focus,
                last_value=points[-1].value if points else None,
            )
        )
    _draw_legend(frame, plot, frame.legend)
    return frame
