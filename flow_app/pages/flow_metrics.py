"""Flow Metrics page: throughput, cycle/lead time, aging, tags, time in status, efficiency."""

from __future__ import annotations

import pandas as pd
import streamlit as st

from flow_app.app import register_page
from flow_app.core.config import AGING_CRITICAL_DAYS, AGING_WARNING_DAYS, SETTINGS
from flow_app.features.flow_overview.context import build_flow_context
from flow_app.visual.charts import (
    aging_bands_chart,
    cycle_time_by_tag_chart,
    cycle_time_scatter,
    lead_vs_cycle_chart,
    throughput_chart,
    throughput_histogram_chart,
    time_in_status_chart,
)
from flow_app.visual.filter_bar import render_filter_bar
from flow_app.visual.tables import render_work_item_table


def _days(value: float | None) -> str:
    return "n/a" if value is None else f"{value:.1f} d"


@register_page("Flow Metrics")
def flow_metrics_page():
    st.title("Flow Metrics")
    df = st.session_state.get("work_items_df")
    if not isinstance(df, pd.DataFrame) or df.empty:
        st.warning("No work items loaded. Please go to the 'Data Source' page.")
        return

    filtered = render_filter_bar(df)
    by_team = st.sidebar.checkbox("Throughput per team", value=False)
    ctx = build_flow_context(filtered, trend_by="team" if by_team else None)
    perf = ctx.performance

    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Work items", perf.total)
    c2.metric("Completed", perf.completed)
    c3.metric("In progress", perf.in_progress)
    c4.metric("Avg cycle time", _days(perf.avg_cycle_time))

    pct = perf.cycle_time.percentiles
    if pct.insufficient_data:
        st.caption("Not enough completed items with a cycle time to compute percentiles.")
    else:
        p1, p2, p3 = st.columns(3)
        p1.metric("Cycle time p50", _days(pct.get("p50")))
        p2.metric("Cycle time p85", _days(pct.get("p85")))
        p3.metric("Cycle time p95", _days(pct.get("p95")))

    quality = ctx.quality
    q1, q2, q3 = st.columns(3)
    q1.metric("Open bugs", quality.open_bugs)
    q2.metric("Open issues", quality.open_issues)
    q3.metric("Avg resolution time", _days(quality.avg_resolution_time))

    tabs = st.tabs(
        ["Throughput", "Cycle Time", "Aging", "Cycle Time by Tag", "Time in Status", "Flow Efficiency", "Work Items"]
    )
    with tabs[0]:
        chart = throughput_chart(ctx.trend, by="team" if by_team else None)
        if chart is None:
            st.info("No completions in the selected period.")
        else:
            st.altair_chart(chart, use_container_width=True)
        hist = throughput_histogram_chart(ctx.histogram)
        if hist is not None:
            st.subheader("Weekly throughput distribution")
            st.altair_chart(hist, use_container_width=True)
        if ctx.throughput.insufficient_for_simulation:
            st.caption("Fewer than two weeks with completions: forecasting is unavailable for this selection.")
    with tabs[1]:
        chart = cycle_time_scatter(ctx.completed_items)
        if chart is None:
            st.info("No completed items with a cycle time.")
        else:
            st.altair_chart(chart, use_container_width=True)
        chart = lead_vs_cycle_chart(ctx.lead_vs_cycle)
        if chart is not None:
            st.subheader("Lead time vs cycle time by team")
            st.altair_chart(chart, use_container_width=True)
    with tabs[2]:
        aging = ctx.aging
        if aging.total == 0:
            st.info("No open work items.")
        else:
            a1, a2, a3, a4 = st.columns(4)
            a1.metric("Open items", aging.total)
            a2.metric(f">{AGING_CRITICAL_DAYS} days", aging.count("critical"))
            a3.metric(f"{AGING_WARNING_DAYS}-{AGING_CRITICAL_DAYS} days", aging.count("warning"))
            a4.metric("Average age", _days(aging.avg_age_days))
            chart = aging_bands_chart(aging.bands)
            if chart is not None:
                st.altair_chart(chart, use_container_width=True)
            st.dataframe(aging.items.head(50), hide_index=True)
    with tabs[3]:
        chart = cycle_time_by_tag_chart(ctx.cycle_time_by_tag)
        if chart is None:
            st.info("No completed items with tags to analyse.")
        else:
            st.altair_chart(chart, use_container_width=True)
    with tabs[4]:
        chart = time_in_status_chart(ctx.time_in_status)
        if chart is None:
            st.info("No completed items to apportion.")
        else:
            st.caption("Estimated from lead time using per-type workflow profiles.")
            st.altair_chart(chart, use_container_width=True)
    with tabs[5]:
        eff = ctx.efficiency
        if eff.global_efficiency is None:
            st.info("No completed items with a positive lead time.")
        else:
            st.metric("Global flow efficiency", f"{eff.global_efficiency:.0f}%")
            st.dataframe(eff.by_team, hide_index=True)
    with tabs[6]:
        render_work_item_table(filtered, limit=SETTINGS.max_table_rows)
