"""User-controlled view over the stored series."""

from __future__ import annotations

import dataclasses
import enum

from tailplot._constants import ZOOM_MAX, ZOOM_MIN
from tailplot.state.store import Color, StoreSnapshot


class Modal(enum.StrEnum):
    NORMAL = "normal"
    HELP = "help"


@dataclasses.dataclass
class ViewState:
    """Scroll, zoom, visibility and colour choices for one session.

    Only the interactive controller mutates this. Hidden names and colour
    overrides are keyed by series name, so they survive reloads and apply
    to a series even before its first point arrives.
    """

    scroll_offset: float = 0.0
    zoom: float = ZOOM_MIN
    hidden: set[str] = dataclasses.field(default_factory=set)
    color_overrides: dict[str, Color] = dataclasses.field(default_factory=dict)
    modal: Modal = Modal.NORMAL
    quit_requested: bool = False
    focus: str | None = None
    frozen: StoreSnapshot | None = None
    show_warnings: bool = False

    def __post_init__(self) -> None:
        self.zoom = min(max(self.zoom, ZOOM_MIN), ZOOM_MAX)
        self.scroll_offset = max(self.scroll_offset, 0.0)

    @property
    def paused(self) -> bool:
        return self.frozen is not None

    def is_visible(self, name: str) -> bool:
        return name not in self.hidden

    def color_for(self, name: str, default: Color) -> Color:
        return self.color_overrides.get(name, default)
