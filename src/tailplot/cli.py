"""Command line front end.

Usage
-----
::

    some-producer | tailplot --json /dev/stdin
    tailplot --csv-poll 'metrics/*.csv' --poll-period 0.5
    tailplot --csv sensor.fifo#temp,humidity --csv-delimiter ';'

A CSV path may carry an explicit header after ``#`` (``PATH#col1,col2``);
without one the first line read is used as the header.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Sequence
from typing import Any

from tailplot.config import SourceConfig, SourceKind, TailplotConfig
from tailplot.exceptions import TailplotError
from tailplot.runtime import run

HEADER_SEPARATOR = "#"


def split_header(value: str) -> tuple[str, tuple[str, ...] | None]:
    """Split ``PATH#h1,h2`` into the path and the header names."""
    path, sep, header = value.rpartition(HEADER_SEPARATOR)
    if not sep or not path:
        return value, None
    return path, tuple(header.split(","))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tailplot",
        description="Plot numeric time series from JSON and CSV sources live in the terminal.",
    )
    inputs = parser.add_argument_group("inputs")
    inputs.add_argument("--json", action="append", default=[], metavar="PATH", help="JSON Lines stream")
    inputs.add_argument("--json-poll", action="append", default=[], metavar="PATH", help="JSON file reloaded on change")
    inputs.add_argument(
        "--csv",
        action="append",
        default=[],
        metavar="PATH[#H1,H2]",
        help="CSV stream, optionally with explicit header names",
    )
    inputs.add_argument(
        "--csv-poll",
        action="append",
        default=[],
        metavar="GLOB[#H1,H2]",
        help="CSV file(s) reloaded on change; the path may be a glob pattern",
    )
    inputs.add_argument("--csv-delimiter", default=",", help="CSV delimiter (default: ',')")
    inputs.add_argument("--poll-period", type=float, help="Seconds between reloads when notifications are unavailable")
    inputs.add_argument(
        "--no-notify",
        dest="use_notifications",
        action="store_false",
        default=None,
        help="Reload poll sources on the interval instead of on file changes",
    )

    ui = parser.add_argument_group("display")
    ui.add_argument("--max-fps", type=float, help="Upper bound on redraws per second")
    ui.add_argument("--warning-backlog-size", type=int, help="Number of warnings to keep")
    ui.add_argument("--warning-display-duration", type=float, help="Seconds to show the warnings panel after a warning")

    parser.add_argument("--log", metavar="FILE", dest="log_file", help="Write debug logs to FILE")
    return parser


def sources_from_args(args: argparse.Namespace) -> list[SourceConfig]:
    sources: list[SourceConfig] = []
    for path in args.json:
        sources.append(SourceConfig(SourceKind.JSON_STREAM, path))
    for path in args.json_poll:
        sources.append(SourceConfig(SourceKind.JSON_POLL, path))
    for kind, values in ((SourceKind.CSV_STREAM, args.csv), (SourceKind.CSV_POLL, args.csv_poll)):
        for value in values:
            path, header = split_header(value)
            sources.append(SourceConfig(kind, path, header=header, delimiter=args.csv_delimiter))
    return sources


def config_from_args(args: argparse.Namespace) -> TailplotConfig:
    overrides: dict[str, Any] = {}
    for name in (
        "poll_period",
        "use_notifications",
        "max_fps",
        "warning_backlog_size",
        "warning_display_duration",
        "log_file",
    ):
        value = getattr(args, name)
        if value is not None:
            overrides[name] = value
    return TailplotConfig.from_env(**overrides)


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        sources = sources_from_args(args)
        config = config_from_args(args)
        asyncio.run(run(sources, config))
    except TailplotError as exc:
        print(f"tailplot: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130
    return 0
