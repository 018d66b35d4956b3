"""Per-item flow metrics: cycle time, lead time, and time in status.

A metric whose preconditions are not met is ``None`` (``NaN`` in frames),
never ``0``. Averages built from these values must skip the missing ones in
both the numerator and the denominator; ``mean_defined`` and
``summarize_durations`` do that.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime

import pandas as pd

from flow_app.analytics.metrics.percentile import PercentileSummary, percentile_summary
from flow_app.core.config import CONFIDENCE_LEVELS, TYPE_PHASE_PROFILES, WORKFLOW_PHASES
from flow_app.core.errors import DataQualityIssue, DataQualityKind
from flow_app.core.models import DerivedMetrics, WorkItem
from flow_app.core.status import StateTaxonomy, WorkItemState, completed_mask
from flow_app.core.taxonomy_config import default_taxonomy

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400.0


def _days_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / SECONDS_PER_DAY


def phase_weights(item_type: str | None) -> list[float]:
    profile = TYPE_PHASE_PROFILES.get(item_type or "", TYPE_PHASE_PROFILES["default"])
    total = float(sum(profile))
    return [w / total for w in profile]


def apportion_time_in_status(
    lead_time: float | None,
    item_type: str | None = None,
    phases: Sequence[str] = WORKFLOW_PHASES,
) -> dict[str, float]:
    """Split a lead time across workflow phases using the type's profile.

    Only two timestamps are known per item, so this is an estimate: each
    phase receives its normalised share and the last phase takes the
    remainder, which keeps the total equal to ``lead_time``.
    """
    if lead_time is None or pd.isna(lead_time) or lead_time < 0:
        return {}
    weights = phase_weights(item_type)
    out: dict[str, float] = {}
    allocated = 0.0
    for phase, weight in zip(phases[:-1], weights[:-1]):
        share = lead_time * weight
        out[phase] = share
        allocated += share
    out[phases[-1]] = max(lead_time - allocated, 0.0)
    return out


def derive_metrics(item: WorkItem, taxonomy: StateTaxonomy | None = None) -> DerivedMetrics:
    """Compute DerivedMetrics for one item. Never raises for bad data."""
    if (taxonomy or default_taxonomy()).classify(item.state) is not WorkItemState.COMPLETED:
        return DerivedMetrics(cycle_time=None, lead_time=None)

    if item.closed is None:
        logger.debug("Item %s is completed but has no closed date", item.id)
        issue = DataQualityIssue(item.id, DataQualityKind.MISSING_FIELD, "closed")
        return DerivedMetrics(cycle_time=None, lead_time=None, issues=(issue,))

    lead_time = _days_between(item.created, item.closed)
    if lead_time < 0:
        logger.warning("Item %s closed before it was created; lead and cycle time skipped", item.id)
        issue = DataQualityIssue(item.id, DataQualityKind.INVALID_RANGE, "closed", "closed < created")
        return DerivedMetrics(cycle_time=None, lead_time=None, issues=(issue,))

    issues: list[DataQualityIssue] = []
    start = item.activated or item.created
    cycle_time: float | None = _days_between(start, item.closed)
    if cycle_time < 0:
        logger.warning("Item %s activated after closure; cycle time skipped", item.id)
        issues.append(DataQualityIssue(item.id, DataQualityKind.INVALID_RANGE, "activated", "closed < activated"))
        cycle_time = None

    return DerivedMetrics(
        cycle_time=cycle_time,
        lead_time=lead_time,
        time_in_status_days=apportion_time_in_status(lead_time, item.type.value),
        issues=tuple(issues),
    )


def add_flow_metrics(df: pd.DataFrame, taxonomy: StateTaxonomy | None = None) -> pd.DataFrame:
    """Add ``cycle_time``, ``lead_time`` and ``time_in_status`` columns.

    Frame counterpart of ``derive_metrics``. Without ``taxonomy`` the
    ``lifecycle`` column written at ingestion is used as is (see
    ``work_items_to_dataframe``); with one, ``lifecycle`` is reclassified
    from ``state`` first.
    """
    if df.empty:
        out = df.copy()
        for col in ("cycle_time", "lead_time", "time_in_status"):
            out[col] = pd.Series(dtype=object if col == "time_in_status" else float)
        return out
    out = df.copy()
    if taxonomy is not None:
        out["lifecycle"] = taxonomy.classify_series(out["state"])
    created = pd.to_datetime(out["created"], utc=True, errors="coerce")
    closed = pd.to_datetime(out["closed"], utc=True, errors="coerce")
    activated = pd.to_datetime(out["activated"], utc=True, errors="coerce")

    done = completed_mask(out) & closed.notna() & created.notna()
    lead = (closed - created).dt.total_seconds() / SECONDS_PER_DAY
    invalid = done & (lead < 0)
    if invalid.any():
        logger.warning(
            "%s completed item(s) closed before creation; excluded from lead/cycle time",
            int(invalid.sum()),
        )
    valid = done & ~invalid

    cycle = (closed - activated.fillna(created)).dt.total_seconds() / SECONDS_PER_DAY
    out["lead_time"] = lead.where(valid)
    out["cycle_time"] = cycle.where(valid & (cycle >= 0))

    types = out["type"] if "type" in out.columns else pd.Series(None, index=out.index)
    out["time_in_status"] = [
        apportion_time_in_status(lt, tp) if ok else {}
        for lt, tp, ok in zip(out["lead_time"], types, valid)
    ]
    return out


def mean_defined(values: Iterable[float | None]) -> float | None:
    """Mean over defined values only; None when nothing is defined."""
    defined = [float(v) for v in values if v is not None and not (isinstance(v, float) and math.isnan(v))]
    if not defined:
        return None
    return sum(defined) / len(defined)


@dataclass(frozen=True, slots=True)
class DurationSummary:
    count: int
    mean: float | None
    percentiles: PercentileSummary

    @property
    def insufficient_data(self) -> bool:
        return self.count == 0


def summarize_durations(
    values: Iterable[float | None],
    levels: Sequence[float] = CONFIDENCE_LEVELS,
) -> DurationSummary:
    defined = sorted(float(v) for v in values if v is not None and not pd.isna(v))
    return DurationSummary(
        count=len(defined),
        mean=mean_defined(defined),
        percentiles=percentile_summary(defined, levels, assume_sorted=True),
    )
