"""Cumulative Flow page: created vs completed with WIP, and per-state bands."""

from __future__ import annotations

from datetime import date, timedelta

import pandas as pd
import streamlit as st

from flow_app.analytics.aggregations.cumulative_flow import cumulative_flow_by_state, resolve_date_range
from flow_app.app import register_page
from flow_app.core.config import CFD_MAX_ROLLING_DAYS, TIMEZONE
from flow_app.core.errors import InvalidDateRangeError
from flow_app.core.service import FlowService
from flow_app.visual.charts import cumulative_flow_bands_chart, cumulative_flow_chart
from flow_app.visual.filter_bar import render_filter_bar

ROLLING_CHOICES = {"Last 30 days": 30, "Last 60 days": 60, "Last 90 days": 90, "Custom range": None}


@register_page("Cumulative Flow")
def cumulative_flow_page():
    st.title("Cumulative Flow")
    st.caption(
        "Reconstructed from creation and closure dates only: reopened items are not represented, "
        "and WIP means created but not yet closed."
    )
    df = st.session_state.get("work_items_df")
    if not isinstance(df, pd.DataFrame) or df.empty:
        st.warning("No work items loaded. Please go to the 'Data Source' page.")
        return
    service: FlowService = st.session_state.get("flow_service") or FlowService()

    filtered = render_filter_bar(df)
    with st.sidebar:
        st.header("Range")
        window = st.selectbox("Window", list(ROLLING_CHOICES), index=2)
        days = ROLLING_CHOICES[window]
        start = end = None
        if days is None:
            today = date.today()
            start = st.date_input("Start", today - timedelta(days=CFD_MAX_ROLLING_DAYS - 1))
            end = st.date_input("End", today)
        weekly = st.radio("Granularity", ["Daily", "Weekly"], horizontal=True) == "Weekly"

    result = service.cumulative_flow(filtered, days=days, start=start, end=end, freq="W" if weekly else "D")
    if isinstance(result, InvalidDateRangeError):
        st.error(result.message)
        return
    if result.has_integrity_warning:
        for warning in result.integrity_warnings:
            st.warning(f"Data integrity: {warning}")

    chart = cumulative_flow_chart(result)
    if chart is not None:
        st.altair_chart(chart, use_container_width=True)
    last = result.frame.iloc[-1]
    c1, c2, c3 = st.columns(3)
    c1.metric("Created", int(last["created"]))
    c2.metric("Completed", int(last["completed"]))
    c3.metric("WIP", int(last["wip"]))

    st.subheader("By workflow state")
    st.caption("Open items are banded by their current state.")
    range_start, range_end = resolve_date_range(days, start, end, tz=TIMEZONE)
    bands = cumulative_flow_by_state(filtered, range_start, range_end, tz=TIMEZONE)
    if isinstance(bands, InvalidDateRangeError):
        st.error(bands.message)
        return
    bands_chart = cumulative_flow_bands_chart(bands)
    if bands_chart is None:
        st.info("No items in range.")
    else:
        st.altair_chart(bands_chart, use_container_width=True)

    with st.expander("Data", expanded=False):
        st.dataframe(result.frame, hide_index=True)
