"""Rendered output grid."""

from __future__ import annotations

import dataclasses
from typing import NamedTuple

from tailplot.state.store import Color, Window


class Cell(NamedTuple):
    char: str = " "
    color: Color | None = None
    bold: bool = False
    dim: bool = False
    underline: bool = False


BLANK = Cell()


class LegendEntry(NamedTuple):
    name: str
    color: Color
    visible: bool
    focused: bool
    last_value: float | None


@dataclasses.dataclass
class Frame:
    """A character grid plus the facts it was drawn from.

    ``rows[y][x]`` is the cell at column *x* of line *y*.
    """

    width: int
    height: int
    rows: list[list[Cell]]
    window: Window | None = None
    y_range: tuple[float, float] | None = None
    legend: list[LegendEntry] = dataclasses.field(default_factory=list)
    plotted: list[str] = dataclasses.field(default_factory=list)

    @classmethod
    def blank(cls, width: int, height: int) -> Frame:
        width, height = max(width, 0), max(height, 0)
        return cls(width=width, height=height, rows=[[BLANK] * width for _ in range(height)])

    def put(self, x: int, y: int, cell: Cell) -> None:
        if 0 <= y < self.height and 0 <= x < self.width:
            self.rows[y][x] = cell

    def write(self, x: int, y: int, text: str, **style: object) -> None:
        """Write *text* starting at (*x*, *y*), clipped to the frame."""
        for offset, char in enumerate(text):
            self.put(x + offset, y, Cell(char, **style))  # type: ignore[arg-type]

    def text(self) -> list[str]:
        """The frame as plain strings, one per line."""
        return ["".join(cell.char for cell in row) for row in self.rows]

    def cells_with_color(self, color: Color) -> int:
        return sum(1 for row in self.rows for cell in row if cell.color == color and cell.char.strip())
