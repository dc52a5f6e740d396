"""Terminal output with rich.

Converts a rendered :class:`~tailplot.render.frame.Frame` into rich text and
adds the help overlay and the warnings panel around it.
"""

from __future__ import annotations

import time
from typing import Any

from rich.console import Console, Group, RenderableType
from rich.live import Live
from rich.panel import Panel
from rich.style import Style
from rich.table import Table
from rich.text import Text

from tailplot.render.engine import render_frame
from tailplot.render.frame import Cell, Frame
from tailplot.state.store import StoreSnapshot
from tailplot.state.view import Modal, ViewState
from tailplot.state.warnings import WarningLog
from tailplot.ui.controller import HELP_ENTRIES

WARNING_LINES = 6


def cell_style(cell: Cell) -> Style:
    color = f"rgb({cell.color[0]},{cell.color[1]},{cell.color[2]})" if cell.color is not None else None
    return Style(color=color, bold=cell.bold, dim=cell.dim, underline=cell.underline)


def frame_to_text(frame: Frame) -> Text:
    """Build one rich :class:`Text` for the whole frame, one run per style."""
    text = Text(no_wrap=True, overflow="crop")
    for index, row in enumerate(frame.rows):
        if index:
            text.append("\n")
        start = 0
        for end in range(1, len(row) + 1):
            if end == len(row) or row[end][1:] != row[start][1:]:
                text.append("".join(cell.char for cell in row[start:end]), style=cell_style(row[start]))
                start = end
    return text


def help_panel() -> Panel:
    table = Table.grid(padding=(0, 2))
    table.add_column(style="cyan", no_wrap=True)
    table.add_column()
    for key, description in HELP_ENTRIES:
        table.add_row(key, description)
    return Panel(table, title="Help", subtitle="? or ESC to close", border_style="bold")


def warnings_panel(warnings: WarningLog, *, lines: int = WARNING_LINES, recent: bool = False) -> Panel:
    entries = warnings.entries()[-lines:]
    body = Text()
    if not entries:
        body.append("No warnings", style="dim")
    for index, entry in enumerate(entries):
        if index:
            body.append("\n")
        stamp = time.strftime("%H:%M:%S", time.localtime(entry.created))
        body.append(stamp, style="cyan")
        body.append(f" {entry.message.splitlines()[0] if entry.message else ''}")
    title = f"Warnings [{len(warnings)}]"
    return Panel(body, title=title, border_style="yellow bold" if recent else "yellow", height=lines + 2)


class Screen:
    """Full-screen rich display driven by the controller's draw callback."""

    def __init__(
        self,
        console: Console | None = None,
        *,
        warnings: WarningLog | None = None,
        warning_display_duration: float = 5.0,
    ) -> None:
        self.console = console or Console()
        self._warnings = warnings
        self._warning_display_duration = warning_display_duration
        self._live: Live | None = None

    def __enter__(self) -> Screen:
        self._live = Live(console=self.console, screen=True, auto_refresh=False, transient=True)
        self._live.__enter__()
        return self

    def __exit__(self, *exc: Any) -> None:
        live, self._live = self._live, None
        if live is not None:
            live.__exit__(*exc)

    def _show_warnings(self, view: ViewState) -> bool:
        if self._warnings is None:
            return False
        return view.show_warnings or self._warnings.is_recent(self._warning_display_duration)

    def compose(self, view: ViewState, snapshot: StoreSnapshot, width: int, height: int) -> RenderableType:
        if view.modal is Modal.HELP:
            return help_panel()

        if not self._show_warnings(view):
            return frame_to_text(render_frame(view, snapshot, width, height))

        assert self._warnings is not None  # noqa: S101
        recent = self._warnings.is_recent(self._warning_display_duration)
        chart_height = max(height - (WARNING_LINES + 2), 0)
        return Group(
            frame_to_text(render_frame(view, snapshot, width, chart_height)),
            warnings_panel(self._warnings, recent=recent),
        )

    def draw(self, view: ViewState, snapshot: StoreSnapshot) -> None:
        width, height = self.console.size
        renderable = self.compose(view, snapshot, width, height)
        if self._live is not None:
            self._live.update(renderable, refresh=True)
        else:
            self.console.print(renderable)
