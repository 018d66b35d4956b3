"""Data source page: load a work-item export (or sample data) into the session."""

from __future__ import annotations

import logging

import pandas as pd
import streamlit as st

from flow_app.app import register_page
from flow_app.core.sample_data import generate_sample_records
from flow_app.core.service import FlowService
from flow_app.visual.progress import ProgressReporter

logger = logging.getLogger(__name__)


def _service() -> FlowService:
    if "flow_service" not in st.session_state:
        st.session_state.flow_service = FlowService()
    return st.session_state.flow_service


def _store(df: pd.DataFrame, service: FlowService) -> None:
    st.session_state.work_items_df = df
    st.session_state.data_issues = list(service.issues)
    # A new data set invalidates any accepted forecast.
    st.session_state.pop("forecast_runner", None)


@register_page("Data Source")
def data_source_page():
    st.title("Data Source")
    st.caption("Load a JSON export of work items, or generate sample data to explore the dashboards.")
    service = _service()

    upload = st.file_uploader("Work item export (JSON)", type=["json"])
    col1, col2 = st.columns(2)
    load_btn = col1.button("Load Export", type="primary", disabled=upload is None)
    with col2:
        sample_count = st.number_input("Sample items", min_value=20, max_value=2000, value=300, step=20)
        sample_btn = st.button("Generate Sample Data")

    if load_btn and upload is not None:
        reporter = ProgressReporter(f"Loading {upload.name}")
        try:
            df = service.load_json(upload.getvalue(), progress=reporter.callback)
        except ValueError as exc:
            logger.error("Failed to load %s: %s", upload.name, exc)
            reporter.error(f"Load failed: {exc}")
        else:
            _store(df, service)
            reporter.complete(f"Loaded {len(df)} work items.")

    if sample_btn:
        reporter = ProgressReporter("Generating sample data")
        df = service.load_records(generate_sample_records(int(sample_count), seed=None), progress=reporter.callback)
        _store(df, service)
        reporter.complete(f"Generated {len(df)} sample work items.")

    with st.expander("State taxonomy", expanded=False):
        st.caption("Edit taxonomy.yaml to change which states count as completed or in progress.")
        c1, c2 = st.columns(2)
        c1.markdown("**Completed**")
        c1.write(list(service.taxonomy.completed_states))
        c2.markdown("**In progress**")
        c2.write(list(service.taxonomy.in_progress_states))

    df = st.session_state.get("work_items_df")
    if not isinstance(df, pd.DataFrame):
        st.info("No data loaded yet.")
        return

    st.subheader("Loaded data")
    m1, m2, m3 = st.columns(3)
    m1.metric("Work items", len(df))
    m2.metric("Completed", int((df["lifecycle"] == "completed").sum()) if not df.empty else 0)
    m3.metric("Data-quality issues", len(st.session_state.get("data_issues", [])))

    issues = st.session_state.get("data_issues") or []
    if issues:
        with st.expander("Data-quality issues", expanded=False):
            st.dataframe(
                pd.DataFrame(
                    [{"item": i.item_id, "kind": i.kind.value, "field": i.field, "detail": i.detail} for i in issues]
                ),
                hide_index=True,
            )
