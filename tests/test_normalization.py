from __future__ import annotations

import math

import pytest
from pydantic import ValidationError

from tailplot.ingestion.normalize import numeric_fields, safe_float, shorten_for_log
from tailplot.state.events import Reading


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("1.5", 1.5),
        (" 2 ", 2.0),
        (3, 3.0),
        ("-1e3", -1000.0),
    ],
)
def test_safe_float_accepts_numbers(raw: object, expected: float) -> None:
    assert safe_float(raw) == expected


@pytest.mark.parametrize("raw", [None, True, False, "", "  ", "abc", "nan", "inf", float("nan"), [1]])
def test_safe_float_rejects_non_numbers(raw: object) -> None:
    assert safe_float(raw) is None


def test_numeric_fields_keeps_only_top_level_numbers() -> None:
    obj = {"a": 1, "b": 2.5, "c": "3", "d": True, "e": None, "f": {"g": 1}, "h": [1], "i": math.inf}

    assert numeric_fields(obj) == [("a", 1.0), ("b", 2.5)]


def test_numeric_fields_of_non_object() -> None:
    assert numeric_fields([1, 2]) == []
    assert numeric_fields(3) == []


def test_shorten_for_log() -> None:
    assert shorten_for_log("abc\n") == "abc"
    assert shorten_for_log("x" * 10, max_length=4) == "xxxx…<truncated>"


def test_reading_validation() -> None:
    reading = Reading(name=" cpu ", value=1)
    assert reading.name == "cpu"
    assert reading.value == 1.0
    assert reading.timestamp > 0

    with pytest.raises(ValidationError):
        Reading(name="  ", value=1.0)
    with pytest.raises(ValidationError):
        Reading(name="cpu", value=math.nan)


def test_oversized_integers_dropped() -> None:
    assert numeric_fields({"a": 10**400, "b": 2}) == [("b", 2.0)]
    assert safe_float(10**400) is None
