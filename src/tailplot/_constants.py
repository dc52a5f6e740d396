"""Internal constants shared across the package."""

# ------------------------------------------------------------------
# Series colours  (Set1 from matplotlib)
# ------------------------------------------------------------------

PALETTE: tuple[tuple[int, int, int], ...] = (
    (228, 26, 28),
    (55, 126, 184),
    (77, 175, 74),
    (152, 78, 163),
    (255, 127, 0),
    (255, 255, 51),
    (166, 86, 40),
    (247, 129, 191),
    (153, 153, 153),
)


def palette_color(index: int) -> tuple[int, int, int]:
    """Return the palette entry for *index*, cycling past the end."""
    return PALETTE[index % len(PALETTE)]


def next_palette_color(color: tuple[int, int, int]) -> tuple[int, int, int]:
    """Return the palette entry after *color*.

    Colours that are not in the palette restart the cycle at the first entry.
    """
    try:
        index = PALETTE.index(color)
    except ValueError:
        return PALETTE[0]
    return palette_color(index + 1)


# ------------------------------------------------------------------
# Viewport
# ------------------------------------------------------------------

ZOOM_MIN = 1.0
ZOOM_MAX = 1000.0
ZOOM_STEP = 1.25
SCROLL_SMALL_FRACTION = 0.1
SCROLL_LARGE_FRACTION = 0.5

# Y axis label gutter and x axis label row, in cells.
Y_LABEL_WIDTH = 10
X_LABEL_HEIGHT = 1

DEFAULT_POLL_PERIOD = 1.0
DEFAULT_DEBOUNCE = 0.05
DEFAULT_MAX_FPS = 20.0
DEFAULT_TICK_INTERVAL = 0.2
DEFAULT_WARNING_BACKLOG_SIZE = 1000
DEFAULT_WARNING_DISPLAY_DURATION = 5.0
