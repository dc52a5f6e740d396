"""Source and runtime configuration for tailplot."""

from __future__ import annotations

import dataclasses
import enum
import os
from typing import Any

from tailplot._constants import (
    DEFAULT_DEBOUNCE,
    DEFAULT_MAX_FPS,
    DEFAULT_POLL_PERIOD,
    DEFAULT_TICK_INTERVAL,
    DEFAULT_WARNING_BACKLOG_SIZE,
    DEFAULT_WARNING_DISPLAY_DURATION,
)
from tailplot.exceptions import TailplotConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


class SourceKind(enum.StrEnum):
    """Input format and delivery mode of a source."""

    JSON_STREAM = "json-stream"
    JSON_POLL = "json-poll"
    CSV_STREAM = "csv-stream"
    CSV_POLL = "csv-poll"

    @property
    def is_poll(self) -> bool:
        return self in (SourceKind.JSON_POLL, SourceKind.CSV_POLL)

    @property
    def is_csv(self) -> bool:
        return self in (SourceKind.CSV_STREAM, SourceKind.CSV_POLL)


@dataclasses.dataclass(frozen=True)
class SourceConfig:
    """One configured data source.

    Parameters
    ----------
    kind : SourceKind
        Format and delivery mode.
    path : str
        File, FIFO or device to read. For ``csv-poll`` this may be a glob
        pattern expanding to several files.
    header : tuple of str or None
        Explicit CSV column names. When omitted the header is taken from the
        first line read (first line of every reload in poll mode).
    delimiter : str
        Single-character CSV delimiter.
    poll_period : float or None
        Reload interval in seconds for poll sources when file-change
        notifications are unavailable. ``None`` uses the runtime default.
    """

    kind: SourceKind
    path: str
    header: tuple[str, ...] | None = None
    delimiter: str = ","
    poll_period: float | None = None

    def __post_init__(self) -> None:
        try:
            kind = SourceKind(self.kind)
        except ValueError as exc:
            raise TailplotConfigError(f"unknown source kind: {self.kind!r}") from exc
        object.__setattr__(self, "kind", kind)

        if not str(self.path).strip():
            raise TailplotConfigError("source path must be non-empty")
        object.__setattr__(self, "path", str(self.path))

        if len(self.delimiter) != 1:
            raise TailplotConfigError(f"delimiter must be a single character, got {self.delimiter!r}")
        if self.poll_period is not None and self.poll_period <= 0:
            raise TailplotConfigError(f"poll period must be positive, got {self.poll_period}")

        if self.header is not None:
            if not kind.is_csv:
                raise TailplotConfigError(f"a header is only supported for CSV sources, not {kind}")
            header = tuple(name.strip() for name in self.header)
            if not header or any(not name for name in header):
                raise TailplotConfigError("header names must be non-empty")
            object.__setattr__(self, "header", header)

    def effective_poll_period(self, default: float) -> float:
        return self.poll_period if self.poll_period is not None else default


@dataclasses.dataclass(frozen=True)
class TailplotConfig:
    """Runtime tuning for a tailplot session.

    Parameters
    ----------
    poll_period : float
        Default reload interval, in seconds, for poll sources that fall back
        to interval polling.
    debounce : float
        Seconds to coalesce a burst of change notifications into one reload.
    max_fps : float
        Upper bound on redraws per second.
    tick_interval : float
        Seconds between periodic redraws while nothing else happens.
    warning_backlog_size : int
        Number of warnings retained for the warnings panel.
    warning_display_duration : float
        Seconds the warnings panel stays visible after a new warning.
    use_notifications : bool
        Use OS file-change notifications for poll sources. When disabled
        (or unavailable) poll sources reload on a fixed interval.
    log_file : str or None
        Write DEBUG logs to this file.
    """

    poll_period: float = DEFAULT_POLL_PERIOD
    debounce: float = DEFAULT_DEBOUNCE
    max_fps: float = DEFAULT_MAX_FPS
    tick_interval: float = DEFAULT_TICK_INTERVAL
    warning_backlog_size: int = DEFAULT_WARNING_BACKLOG_SIZE
    warning_display_duration: float = DEFAULT_WARNING_DISPLAY_DURATION
    use_notifications: bool = True
    log_file: str | None = None

    def __post_init__(self) -> None:
        for name in ("poll_period", "max_fps", "tick_interval"):
            if getattr(self, name) <= 0:
                raise TailplotConfigError(f"{name} must be positive, got {getattr(self, name)}")
        if self.debounce < 0:
            raise TailplotConfigError(f"debounce must not be negative, got {self.debounce}")
        if self.warning_backlog_size < 1:
            raise TailplotConfigError(f"warning_backlog_size must be at least 1, got {self.warning_backlog_size}")

    @property
    def min_frame_interval(self) -> float:
        return 1.0 / self.max_fps

    @classmethod
    def from_env(cls, **overrides: Any) -> TailplotConfig:
        """Create configuration from ``TAILPLOT_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ

        _ENV_FLOAT_MAP = {
            "TAILPLOT_POLL_PERIOD": "poll_period",
            "TAILPLOT_DEBOUNCE": "debounce",
            "TAILPLOT_MAX_FPS": "max_fps",
            "TAILPLOT_TICK_INTERVAL": "tick_interval",
            "TAILPLOT_WARNING_DISPLAY_DURATION": "warning_display_duration",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is None or field_name in overrides:
                continue
            try:
                config_kwargs[field_name] = float(val)
            except ValueError as exc:
                raise TailplotConfigError(f"{env_key} must be a number, got {val!r}") from exc

        backlog_env = env.get("TAILPLOT_WARNING_BACKLOG_SIZE")
        if backlog_env is not None and "warning_backlog_size" not in overrides:
            try:
                config_kwargs["warning_backlog_size"] = int(backlog_env)
            except ValueError as exc:
                raise TailplotConfigError(
                    f"TAILPLOT_WARNING_BACKLOG_SIZE must be an integer, got {backlog_env!r}"
                ) from exc

        if "use_notifications" not in overrides:
            config_kwargs["use_notifications"] = _env_bool(env.get("TAILPLOT_USE_NOTIFICATIONS"), True)

        log_env = env.get("TAILPLOT_LOG_FILE")
        if log_env and "log_file" not in overrides:
            config_kwargs["log_file"] = log_env

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
