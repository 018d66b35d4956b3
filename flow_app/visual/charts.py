"""Chart builders (Altair) for flow metrics, cumulative flow, and forecasts."""

from __future__ import annotations

import altair as alt
import pandas as pd

from flow_app.analytics.aggregations.cumulative_flow import COMPLETED_BAND, CumulativeFlow
from flow_app.analytics.metrics.percentile import percentile
from flow_app.core.config import AGING_CRITICAL_DAYS, AGING_WARNING_DAYS, CFD_STATE_COLUMNS, WORKFLOW_PHASES
from flow_app.core.models import ConfidenceLevels

LEVEL_COLORS = {"p50": "#2ca02c", "p85": "#ff7f0e", "p95": "#d62728"}
AGING_COLORS = {"critical": "#d62728", "warning": "#ff7f0e", "normal": "#2ca02c"}


def throughput_chart(trend: pd.DataFrame, by: str | None = None):
    """Weekly completions line (one line per ``by`` group when given)."""
    if trend.empty:
        return None
    color = alt.Color(f"{by}:N", title=by.title()) if by else alt.value("#1f77b4")
    base = alt.Chart(trend).encode(
        x=alt.X("week_start:T", title="Week"),
        y=alt.Y("count:Q", title="Items Completed"),
        color=color,
    )
    points = base.mark_circle(opacity=0.75, size=60).encode(
        tooltip=[
            alt.Tooltip("week:N", title="Week"),
            alt.Tooltip("count:Q", title="Completed"),
        ]
        + ([alt.Tooltip(f"{by}:N", title=by.title())] if by else []),
    )
    return (base.mark_line() + points).properties(height=300)


def throughput_histogram_chart(histogram: pd.DataFrame):
    if histogram.empty or int(histogram["weeks"].sum()) == 0:
        return None
    return (
        alt.Chart(histogram)
        .mark_bar(color="#1f77b4")
        .encode(
            x=alt.X("range:N", title="Items per Week", sort=list(histogram["range"])),
            y=alt.Y("weeks:Q", title="Weeks"),
            tooltip=[alt.Tooltip("range:N", title="Range"), alt.Tooltip("weeks:Q", title="Weeks")],
        )
        .properties(height=250)
    )


def cumulative_flow_chart(cfd: CumulativeFlow):
    """Created and completed cumulative lines with the WIP gap shaded."""
    frame = cfd.frame
    if frame.empty:
        return None
    gap = (
        alt.Chart(frame)
        .mark_area(color="#aec7e8", opacity=0.4)
        .encode(
            x=alt.X("date:T", title="Date"),
            y=alt.Y("completed:Q", title="Items"),
            y2="created",
        )
    )
    lines = (
        alt.Chart(frame)
        .transform_fold(["created", "completed"], as_=["series", "count"])
        .mark_line()
        .encode(
            x="date:T",
            y="count:Q",
            color=alt.Color(
                "series:N",
                title="Series",
                scale=alt.Scale(domain=["created", "completed"], range=["#1f77b4", "#2ca02c"]),
            ),
        )
    )
    points = (
        alt.Chart(frame)
        .mark_circle(opacity=0, size=80)
        .encode(
            x="date:T",
            y="created:Q",
            tooltip=[
                alt.Tooltip("date:T", title="Date"),
                alt.Tooltip("created:Q", title="Created"),
                alt.Tooltip("completed:Q", title="Completed"),
                alt.Tooltip("wip:Q", title="WIP"),
            ],
        )
    )
    return (gap + lines + points).properties(height=350)


def cumulative_flow_bands_chart(bands: pd.DataFrame):
    """Stacked area per workflow band, completed at the bottom."""
    if bands.empty:
        return None
    order = [COMPLETED_BAND] + list(reversed(list(CFD_STATE_COLUMNS)))
    data = bands.assign(order=bands["band"].map({b: i for i, b in enumerate(order)}))
    return (
        alt.Chart(data)
        .mark_area()
        .encode(
            x=alt.X("date:T", title="Date"),
            y=alt.Y("count:Q", title="Items", stack="zero"),
            color=alt.Color("band:N", title="State", sort=order),
            order=alt.Order("order:Q"),
            tooltip=[
                alt.Tooltip("date:T", title="Date"),
                alt.Tooltip("band:N", title="State"),
                alt.Tooltip("count:Q", title="Items"),
            ],
        )
        .properties(height=350)
    )


def forecast_distribution_chart(
    frequencies: pd.DataFrame,
    levels: ConfidenceLevels,
    *,
    x_title: str,
):
    """Outcome histogram with a rule per confidence level."""
    if frequencies.empty:
        return None
    bars = (
        alt.Chart(frequencies)
        .mark_bar(color="#9ecae1")
        .encode(
            x=alt.X("value:Q", title=x_title, bin=False),
            y=alt.Y("frequency:Q", title="Trials"),
            tooltip=[alt.Tooltip("value:Q", title=x_title), alt.Tooltip("frequency:Q", title="Trials")],
        )
    )
    marks = pd.DataFrame([{"level": k, "value": v} for k, v in levels.as_dict().items()])
    rules = (
        alt.Chart(marks)
        .mark_rule(strokeDash=[4, 3], size=2)
        .encode(
            x="value:Q",
            color=alt.Color(
                "level:N",
                title="Confidence",
                scale=alt.Scale(domain=list(LEVEL_COLORS), range=list(LEVEL_COLORS.values())),
            ),
            tooltip=[alt.Tooltip("level:N", title="Level"), alt.Tooltip("value:Q", title=x_title)],
        )
    )
    return (bars + rules).properties(height=300)


def time_in_status_chart(time_in_status: pd.DataFrame):
    if time_in_status.empty:
        return None
    return (
        alt.Chart(time_in_status)
        .mark_bar()
        .encode(
            y=alt.Y("team:N", title="Team"),
            x=alt.X("avg_days:Q", title="Average Days", stack="zero"),
            color=alt.Color("phase:N", title="Phase", sort=list(WORKFLOW_PHASES)),
            order=alt.Order("phase_order:Q"),
            tooltip=[
                alt.Tooltip("team:N", title="Team"),
                alt.Tooltip("phase:N", title="Phase"),
                alt.Tooltip("avg_days:Q", title="Avg days", format=".1f"),
                alt.Tooltip("items:Q", title="Items"),
            ],
        )
        .transform_calculate(phase_order=_phase_order_expr())
        .properties(height=250)
    )


def _phase_order_expr() -> str:
    cases = " : ".join(f"datum.phase === '{p}' ? {i}" for i, p in enumerate(WORKFLOW_PHASES))
    return f"{cases} : {len(WORKFLOW_PHASES)}"


def cycle_time_scatter(completed: pd.DataFrame):
    """Cycle time per completed item against its closing date, with a p85 rule."""
    if completed.empty or "cycle_time" not in completed.columns:
        return None
    data = completed.dropna(subset=["cycle_time", "closed"])[["id", "title", "type", "closed", "cycle_time"]].copy()
    if data.empty:
        return None
    data["closed"] = pd.to_datetime(data["closed"]).dt.tz_localize(None)
    points = (
        alt.Chart(data)
        .mark_circle(size=60, opacity=0.7)
        .encode(
            x=alt.X("closed:T", title="Closed"),
            y=alt.Y("cycle_time:Q", title="Cycle Time (days)"),
            color=alt.Color("type:N", title="Type"),
            tooltip=[
                alt.Tooltip("id:N", title="Item"),
                alt.Tooltip("title:N", title="Title"),
                alt.Tooltip("cycle_time:Q", title="Cycle time", format=".1f"),
            ],
        )
    )
    p85 = percentile(sorted(data["cycle_time"]), 0.85)
    rule = alt.Chart(pd.DataFrame({"p85": [p85]})).mark_rule(color=LEVEL_COLORS["p85"], strokeDash=[4, 3]).encode(
        y="p85:Q"
    )
    return (points + rule).properties(height=300)



def aging_bands_chart(bands: pd.DataFrame):
    if bands.empty or int(bands["items"].sum()) == 0:
        return None
    labels = {
        "critical": f">{AGING_CRITICAL_DAYS} d",
        "warning": f"{AGING_WARNING_DAYS}-{AGING_CRITICAL_DAYS} d",
        "normal": f"<={AGING_WARNING_DAYS} d",
    }
    data = bands.assign(label=bands["band"].map(labels))
    return (
        alt.Chart(data)
        .mark_bar()
        .encode(
            x=alt.X("label:N", title="Age", sort=list(data["label"])),
            y=alt.Y("items:Q", title="Open Items"),
            color=alt.Color(
                "band:N",
                scale=alt.Scale(domain=list(AGING_COLORS), range=list(AGING_COLORS.values())),
                legend=None,
            ),
            tooltip=[alt.Tooltip("label:N", title="Age"), alt.Tooltip("items:Q", title="Items")],
        )
        .properties(height=250)
    )


def cycle_time_by_tag_chart(by_tag: pd.DataFrame, limit: int = 20):
    if by_tag.empty:
        return None
    data = by_tag.head(limit)
    return (
        alt.Chart(data)
        .mark_bar(color="#1f77b4")
        .encode(
            y=alt.Y("tag:N", title="Tag", sort=list(data["tag"])),
            x=alt.X("avg_cycle_time:Q", title="Average Cycle Time (days)"),
            tooltip=[
                alt.Tooltip("tag:N", title="Tag"),
                alt.Tooltip("avg_cycle_time:Q", title="Avg cycle time", format=".1f"),
                alt.Tooltip("items:Q", title="Items"),
            ],
        )
        .properties(height=max(120, 22 * len(data)))
    )


def lead_vs_cycle_chart(by_team: pd.DataFrame):
    """Grouped bars of average lead and cycle time per team."""
    if by_team.empty:
        return None
    long = by_team.melt(
        id_vars=["team", "items"],
        value_vars=["lead_time", "cycle_time"],
        var_name="metric",
        value_name="days",
    )
    long["metric"] = long["metric"].map({"lead_time": "Lead Time", "cycle_time": "Cycle Time"})
    return (
        alt.Chart(long)
        .mark_bar()
        .encode(
            x=alt.X("team:N", title="Team"),
            xOffset="metric:N",
            y=alt.Y("days:Q", title="Average Days"),
            color=alt.Color("metric:N", title="Metric"),
            tooltip=[
                alt.Tooltip("team:N", title="Team"),
                alt.Tooltip("metric:N", title="Metric"),
                alt.Tooltip("days:Q", title="Avg days", format=".1f"),
                alt.Tooltip("items:Q", title="Items"),
            ],
        )
        .properties(height=300)
    )
