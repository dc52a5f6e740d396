"""tailplot - live terminal plots of numeric JSON and CSV streams."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("tailplot")
except PackageNotFoundError:
    __version__ = "0+local"
from tailplot.config import SourceConfig, SourceKind, TailplotConfig
from tailplot.exceptions import (
    SourceMissingError,
    SourceReadError,
    TailplotConfigError,
    TailplotError,
)
from tailplot.ingestion.hub import IngestionHub
from tailplot.render.engine import render_frame
from tailplot.runtime import Session, run
from tailplot.state.events import PointEvent, Reading
from tailplot.state.store import StoreSnapshot, TimeSeriesStore
from tailplot.state.view import Modal, ViewState

__all__ = [
    "__version__",
    "IngestionHub",
    "Modal",
    "PointEvent",
    "Reading",
    "Session",
    "SourceConfig",
    "SourceKind",
    "SourceMissingError",
    "SourceReadError",
    "StoreSnapshot",
    "TailplotConfig",
    "TailplotConfigError",
    "TailplotError",
    "TimeSeriesStore",
    "ViewState",
    "render_frame",
    "run",
]
