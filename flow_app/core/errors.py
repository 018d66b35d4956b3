"""Data-quality records and typed "cannot compute" result variants.

Per-item anomalies are absorbed where they happen and recorded as
``DataQualityIssue`` entries. Aggregate-level structural problems are
returned to the caller as result variants rather than raised, so rendering
code can tell "no data yet" apart from "zero is the true value".
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum


class DataQualityKind(str, Enum):
    MISSING_FIELD = "missing_field"
    INVALID_RANGE = "invalid_range"


@dataclass(frozen=True, slots=True)
class DataQualityIssue:
    item_id: str | int | None
    kind: DataQualityKind
    field: str
    detail: str = ""


class InsufficientReason(str, Enum):
    TOO_FEW_SAMPLES = "too_few_samples"
    NON_POSITIVE_POOL = "non_positive_pool"


@dataclass(frozen=True, slots=True)
class DataInsufficientError:
    """Returned when the throughput history cannot support a simulation."""

    reason: InsufficientReason
    sample_count: int
    required: int
    ok: bool = False

    @property
    def message(self) -> str:
        if self.reason is InsufficientReason.NON_POSITIVE_POOL:
            return "Historical throughput has no positive weeks; a forecast cannot reach any target."
        return (
            "Insufficient historical data for a reliable simulation "
            f"({self.sample_count} week(s) of throughput, at least {self.required} required)."
        )


@dataclass(frozen=True, slots=True)
class InvalidDateRangeError:
    """Returned when a cumulative flow range ends before it starts."""

    start: date
    end: date
    ok: bool = False

    @property
    def message(self) -> str:
        return f"Invalid date range: end {self.end.isoformat()} is before start {self.start.isoformat()}."


class SimulationCancelled(Exception):
    """Raised inside a forecast when a newer invocation has superseded it."""
