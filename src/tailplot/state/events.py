"""Normalized ingestion events.

Source adapters turn their inputs into :class:`Reading` objects. The
ingestion hub stamps each one with an arrival sequence number, producing a
:class:`PointEvent`. Only the state/store layer is allowed to fold them
into series.
"""

from __future__ import annotations

import math
import time

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Reading(BaseModel):
    """A numeric value read from a source, not yet ordered."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Series name")
    value: float
    timestamp: float = Field(default_factory=time.time, description="Wall-clock read time (epoch seconds)")

    @field_validator("name")
    @classmethod
    def _normalize_name(cls, value: str) -> str:
        name = value.strip()
        if not name:
            raise ValueError("series name must be non-empty")
        return name

    @field_validator("value")
    @classmethod
    def _ensure_finite(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("value must be finite")
        return value


class PointEvent(Reading):
    """A reading with its hub-assigned arrival order."""

    seq: int = Field(..., ge=0, description="Arrival order across all sources")
