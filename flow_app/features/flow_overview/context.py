"""Pure helpers to build the flow metrics page context (no Streamlit)."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

import pandas as pd

from flow_app.analytics.aggregations.throughput import (
    throughput_frame,
    throughput_histogram,
    throughput_trend,
    weekly_throughput,
)
from flow_app.analytics.metrics.aging import AgingSummary, aging_items, cycle_time_by_tag, lead_vs_cycle_by_team
from flow_app.analytics.metrics.summary import (
    FlowEfficiency,
    PerformanceSummary,
    QualitySummary,
    flow_efficiency_by_team,
    performance_summary,
    quality_summary,
    time_in_status_by_team,
)
from flow_app.core.config import TIMEZONE
from flow_app.core.models import ThroughputSeries
from flow_app.core.status import completed_mask


@dataclass(slots=True)
class FlowOverviewContext:
    performance: PerformanceSummary
    quality: QualitySummary
    throughput: ThroughputSeries
    throughput_weeks: pd.DataFrame
    trend: pd.DataFrame
    histogram: pd.DataFrame
    completed_items: pd.DataFrame
    time_in_status: pd.DataFrame
    efficiency: FlowEfficiency
    aging: AgingSummary
    cycle_time_by_tag: pd.DataFrame
    lead_vs_cycle: pd.DataFrame


def build_flow_context(
    df: pd.DataFrame,
    start: date | None = None,
    end: date | None = None,
    *,
    trend_by: str | None = None,
    tz: str = TIMEZONE,
    now: datetime | None = None,
) -> FlowOverviewContext:
    """Collect every figure the flow metrics page renders.

    ``df`` must already carry the columns added by ``add_flow_metrics``.
    """
    series = weekly_throughput(df, tz)
    completed = df[completed_mask(df)] if not df.empty else df
    return FlowOverviewContext(
        performance=performance_summary(df),
        quality=quality_summary(df),
        throughput=series,
        throughput_weeks=throughput_frame(series),
        trend=throughput_trend(df, start, end, by=trend_by, tz=tz),
        histogram=throughput_histogram(series),
        completed_items=completed,
        time_in_status=time_in_status_by_team(df),
        efficiency=flow_efficiency_by_team(df),
        aging=aging_items(df, now=now, tz=tz),
        cycle_time_by_tag=cycle_time_by_tag(df),
        lead_vs_cycle=lead_vs_cycle_by_team(df),
    )
