"""Backlog-level summaries built on the derived flow metrics."""

from __future__ import annotations

from dataclasses import dataclass

import pandas as pd

from flow_app.analytics.metrics.derived import DurationSummary, mean_defined, summarize_durations
from flow_app.core.config import ACTIVE_WORK_PHASES, FLOW_EFFICIENCY_MIN_ITEMS, WORKFLOW_PHASES
from flow_app.core.status import completed_mask, in_progress_mask

QUALITY_TYPES = ("Bug", "Issue")


@dataclass(frozen=True, slots=True)
class PerformanceSummary:
    total: int
    completed: int
    in_progress: int
    avg_cycle_time: float | None
    cycle_time: DurationSummary
    lead_time: DurationSummary


@dataclass(frozen=True, slots=True)
class QualitySummary:
    open_bugs: int
    open_issues: int
    avg_resolution_time: float | None
    resolved: int


def _column(df: pd.DataFrame, name: str) -> pd.Series:
    if name in df.columns:
        return df[name]
    return pd.Series(float("nan"), index=df.index, dtype=float)


def performance_summary(df: pd.DataFrame) -> PerformanceSummary:
    """Counts by lifecycle plus cycle/lead time summaries.

    Items without a cycle time do not count towards the average.
    """
    done = completed_mask(df)
    cycle = _column(df, "cycle_time")[done]
    lead = _column(df, "lead_time")[done]
    cycle_summary = summarize_durations(cycle)
    return PerformanceSummary(
        total=int(len(df)),
        completed=int(done.sum()),
        in_progress=int(in_progress_mask(df).sum()),
        avg_cycle_time=cycle_summary.mean,
        cycle_time=cycle_summary,
        lead_time=summarize_durations(lead),
    )


def quality_summary(df: pd.DataFrame) -> QualitySummary:
    if df.empty or "type" not in df.columns:
        return QualitySummary(0, 0, None, 0)
    done = completed_mask(df)
    types = df["type"].astype(str)
    resolved = df[done & types.isin(QUALITY_TYPES)]
    cycle = _column(resolved, "cycle_time").dropna()
    return QualitySummary(
        open_bugs=int(((types == "Bug") & ~done).sum()),
        open_issues=int(((types == "Issue") & ~done).sum()),
        avg_resolution_time=mean_defined(cycle),
        resolved=int(len(cycle)),
    )


def _completed_with_status(df: pd.DataFrame) -> pd.DataFrame:
    if df.empty or "time_in_status" not in df.columns:
        return pd.DataFrame()
    done = completed_mask(df)
    has_split = df["time_in_status"].apply(lambda v: isinstance(v, dict) and bool(v))
    return df[done & has_split]


def time_in_status_by_team(df: pd.DataFrame) -> pd.DataFrame:
    """Average days per workflow phase for each team's completed items."""
    columns = ["team", "phase", "avg_days", "items"]
    work = _completed_with_status(df)
    if work.empty:
        return pd.DataFrame(columns=columns)
    records = []
    for team, group in work.groupby("team", dropna=False):
        split = pd.DataFrame(list(group["time_in_status"]))
        for phase in WORKFLOW_PHASES:
            if phase not in split.columns:
                continue
            records.append(
                {
                    "team": team,
                    "phase": phase,
                    "avg_days": float(split[phase].fillna(0).mean()),
                    "items": int(len(group)),
                }
            )
    out = pd.DataFrame(records, columns=columns)
    return out.sort_values(["team", "phase"], key=_phase_sort_key).reset_index(drop=True)


def _phase_sort_key(col: pd.Series) -> pd.Series:
    if col.name == "phase":
        order = {p: i for i, p in enumerate(WORKFLOW_PHASES)}
        return col.map(order)
    return col


@dataclass(frozen=True, slots=True, eq=False)
class FlowEfficiency:
    by_team: pd.DataFrame  # team, active_days, wait_days, efficiency, items
    global_efficiency: float | None
    items: int


def flow_efficiency_by_team(df: pd.DataFrame, min_items: int = FLOW_EFFICIENCY_MIN_ITEMS) -> FlowEfficiency:
    """Share of lead time spent in active phases.

    Teams with fewer than ``min_items`` completed items are left out of the
    per-team table but still count towards the global figure.
    """
    columns = ["team", "active_days", "wait_days", "efficiency", "items"]
    work = _completed_with_status(df)
    if not work.empty:
        work = work[_column(work, "lead_time") > 0]
    if work.empty:
        return FlowEfficiency(pd.DataFrame(columns=columns), None, 0)

    active = work["time_in_status"].apply(lambda d: sum(v for k, v in d.items() if k in ACTIVE_WORK_PHASES))
    frame = pd.DataFrame(
        {
            "team": work["team"],
            "active": active,
            "wait": work["lead_time"] - active,
            "lead": work["lead_time"],
        }
    )
    grouped = frame.groupby("team", dropna=False).agg(
        active_days=("active", "mean"),
        wait_days=("wait", "mean"),
        lead=("lead", "mean"),
        items=("lead", "count"),
    )
    grouped = grouped[grouped["items"] >= min_items].copy()
    grouped["efficiency"] = (grouped["active_days"] / grouped["lead"] * 100).round(0)
    by_team = (
        grouped.reset_index()[columns]
        .sort_values("efficiency", ascending=False)
        .reset_index(drop=True)
    )
    total_lead = float(frame["lead"].sum())
    global_eff = round(float(frame["active"].sum()) / total_lead * 100, 0) if total_lead > 0 else None
    return FlowEfficiency(by_team=by_team, global_efficiency=global_eff, items=int(len(frame)))
