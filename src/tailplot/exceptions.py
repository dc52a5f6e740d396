"""Custom exception hierarchy for tailplot."""

from __future__ import annotations


class TailplotError(Exception):
    """Base exception for all tailplot errors."""


class TailplotConfigError(TailplotError):
    """Invalid source or runtime configuration."""


class SourceMissingError(TailplotError):
    """A configured source does not exist at start-up.

    Raised before any adapter is started, so a session never runs with a
    partially configured source set.
    """

    def __init__(self, message: str, *, path: str = "", kind: str = "") -> None:
        self.path = path
        self.kind = kind
        super().__init__(message)


class SourceReadError(TailplotError):
    """I/O failure while reading a source.

    Contained in the adapter task that raised it: that adapter stops and
    every other source keeps running.
    """

    def __init__(self, message: str, *, path: str = "") -> None:
        self.path = path
        super().__init__(message)
