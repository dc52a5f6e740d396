from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import pytest

from tailplot.config import SourceConfig, SourceKind, TailplotConfig
from tailplot.exceptions import SourceMissingError, TailplotConfigError
from tailplot.runtime import Session, capture_logs, check_sources, run


def test_check_sources_requires_existing_paths(tmp_path: Path) -> None:
    present = tmp_path / "a.jsonl"
    present.write_text("")
    (tmp_path / "x.csv").write_text("a\n1\n")

    check_sources(
        [
            SourceConfig(SourceKind.JSON_STREAM, str(present)),
            SourceConfig(SourceKind.CSV_POLL, str(tmp_path / "*.csv")),
        ]
    )

    with pytest.raises(SourceMissingError) as excinfo:
        check_sources(
            [
                SourceConfig(SourceKind.JSON_STREAM, str(present)),
                SourceConfig(SourceKind.CSV_POLL, str(tmp_path / "*.tsv")),
            ]
        )
    assert excinfo.value.path == str(tmp_path / "*.tsv")
    assert excinfo.value.kind == "csv-poll"


def test_check_sources_requires_at_least_one() -> None:
    with pytest.raises(TailplotConfigError):
        check_sources([])


@pytest.mark.asyncio
async def test_run_refuses_missing_source_before_starting(tmp_path: Path) -> None:
    with pytest.raises(SourceMissingError):
        await run([SourceConfig(SourceKind.JSON_POLL, str(tmp_path / "missing.json"))])


def test_capture_logs_routes_package_warnings(tmp_path: Path) -> None:
    log_file = tmp_path / "tailplot.log"
    logger = logging.getLogger("tailplot")
    propagate = logger.propagate

    with capture_logs(TailplotConfig(log_file=str(log_file), warning_backlog_size=5)) as warnings:
        logging.getLogger("tailplot.ingestion.hub").warning("stream ended")
        logging.getLogger("tailplot.ingestion.hub").debug("detail")
        assert logger.propagate is False

    assert [e.message for e in warnings.entries()] == ["tailplot.ingestion.hub: stream ended"]
    text = log_file.read_text()
    assert "stream ended" in text
    assert "detail" in text
    assert logger.propagate is propagate
    assert warnings not in logger.handlers


@pytest.mark.asyncio
async def test_session_ingests_all_sources(tmp_path: Path) -> None:
    stream = tmp_path / "in.jsonl"
    stream.write_text('{"a": 1}\n{"a": 2}\n')
    poll = tmp_path / "data.csv"
    poll.write_text("x,y\n1,2\n3,4\n")
    config = TailplotConfig(use_notifications=False, poll_period=60.0)

    async with Session(
        [SourceConfig(SourceKind.JSON_STREAM, str(stream)), SourceConfig(SourceKind.CSV_POLL, str(poll))],
        config,
    ) as session:
        for _ in range(100):
            snap = session.store.snapshot()
            if {"a", "x", "y"} <= set(snap.series) and len(snap.series["a"].points) == 2:
                break
            await asyncio.sleep(0.02)

    snap = session.store.snapshot()
    assert snap.series["a"].values == [1.0, 2.0]
    assert snap.series["x"].values == [3.0]
    assert snap.series["y"].values == [4.0]
    assert len(session.adapters) == 2
