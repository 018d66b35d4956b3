"""Nearest-rank percentiles over pre-sorted samples.

Two readings are provided. ``percentile`` is the usual ascending nearest rank
(``ceil(n * p) - 1``), used for SLA-style duration reporting and for the
"when" forecast. ``exceedance_percentile`` reads ``floor(n * (1 - p))`` from
the same ascending array: the value that is met or exceeded with probability
``p``, used by the "how many" forecast.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, field

from flow_app.core.config import CONFIDENCE_LEVELS


def _check_probability(p: float) -> None:
    if not (0.0 < p <= 1.0):
        raise ValueError(f"Percentile must be in (0, 1], got {p!r}")


def _clamp(index: int, n: int) -> int:
    return min(max(index, 0), n - 1)


def nearest_rank_index(n: int, p: float) -> int:
    _check_probability(p)
    if n <= 0:
        raise ValueError("Cannot index an empty sample")
    return _clamp(math.ceil(n * p) - 1, n)


def exceedance_index(n: int, p: float) -> int:
    _check_probability(p)
    if n <= 0:
        raise ValueError("Cannot index an empty sample")
    return _clamp(math.floor(n * (1.0 - p)), n)


def percentile(sorted_ascending: Sequence[float], p: float) -> float:
    """Nearest-rank percentile of an ascending sample.

    The input is not sorted here; callers must pass values already in
    ascending order.

    Parameters
    ----------
    sorted_ascending : Sequence[float]
        Sample sorted ascending.
    p : float
        Probability in ``(0, 1]``.

    Returns
    -------
    float
        An element of the sample, or ``0.0`` when the sample is empty. Use
        ``percentile_summary`` when the caller needs to know the difference.
    """
    _check_probability(p)
    n = len(sorted_ascending)
    if n == 0:
        return 0.0
    return sorted_ascending[nearest_rank_index(n, p)]


def exceedance_percentile(sorted_ascending: Sequence[float], p: float) -> float:
    """Value met or exceeded with probability ``p`` (descending reading)."""
    _check_probability(p)
    n = len(sorted_ascending)
    if n == 0:
        return 0.0
    return sorted_ascending[exceedance_index(n, p)]


def level_label(p: float) -> str:
    """``0.85`` -> ``"p85"``."""
    return f"p{round(p * 100):d}"


@dataclass(frozen=True, slots=True)
class PercentileSummary:
    values: dict[str, float] = field(default_factory=dict)
    sample_size: int = 0
    insufficient_data: bool = True

    def get(self, label: str, default: float | None = None) -> float | None:
        return self.values.get(label, default)


def percentile_summary(
    values: Sequence[float],
    levels: Sequence[float] = CONFIDENCE_LEVELS,
    *,
    assume_sorted: bool = False,
) -> PercentileSummary:
    """Percentiles for several levels plus an explicit empty-sample flag.

    An empty sample yields ``0.0`` for every level with
    ``insufficient_data=True``.
    """
    ordered = list(values) if assume_sorted else sorted(values)
    n = len(ordered)
    result = {level_label(p): float(percentile(ordered, p)) for p in levels}
    return PercentileSummary(values=result, sample_size=n, insufficient_data=n == 0)
