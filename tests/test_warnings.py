from __future__ import annotations

import logging

from tailplot.state.warnings import WarningLog


def test_collects_warnings_only() -> None:
    log = WarningLog(backlog_size=10)
    logger = logging.getLogger("tailplot.test_warnings")
    logger.addHandler(log)
    try:
        logger.info("ignored")
        logger.warning("file %s vanished", "a.csv")
    finally:
        logger.removeHandler(log)

    entries = log.entries()
    assert [e.message for e in entries] == ["tailplot.test_warnings: file a.csv vanished"]
    assert log.latest() == entries[0]


def test_is_recent() -> None:
    log = WarningLog()
    assert not log.is_recent(5.0)

    log.handle(logging.LogRecord("tailplot", logging.WARNING, __file__, 1, "x", None, None))
    created = log.entries()[0].created

    assert log.is_recent(5.0, now=created + 1.0)
    assert not log.is_recent(5.0, now=created + 6.0)


def test_backlog_bounded() -> None:
    log = WarningLog(backlog_size=3)
    for i in range(10):
        log.handle(logging.LogRecord("tailplot", logging.ERROR, __file__, 1, str(i), None, None))

    assert [e.message for e in log.entries()] == ["tailplot: 7", "tailplot: 8", "tailplot: 9"]
