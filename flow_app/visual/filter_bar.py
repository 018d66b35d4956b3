"""Sidebar filter bar shared by the analysis pages."""

from __future__ import annotations

import pandas as pd
import streamlit as st

from flow_app.analytics.segments.filters import filter_options, filter_work_items
from flow_app.core.config import DEFAULT_PERIOD_DAYS

PERIOD_CHOICES = {
    "Last 30 days": 30,
    "Last 90 days": 90,
    "Last 180 days": 180,
    "Last 365 days": 365,
    "All time": None,
}
_LABELS = {
    "team": "Team",
    "assignee": "Assignee",
    "type": "Type",
    "state": "State",
    "tags": "Tags",
}


def render_filter_bar(df: pd.DataFrame) -> pd.DataFrame:
    """Draw the filters in the sidebar and return the filtered frame.

    Selections live in ``st.session_state`` so they persist across pages.
    """
    options = filter_options(df)
    default_period = next(k for k, v in PERIOD_CHOICES.items() if v == DEFAULT_PERIOD_DAYS)
    with st.sidebar:
        st.header("Filters")
        period = st.selectbox(
            "Period",
            list(PERIOD_CHOICES),
            index=list(PERIOD_CHOICES).index(st.session_state.get("filter_period", default_period)),
        )
        st.session_state.filter_period = period
        chosen: dict[str, list[str]] = {}
        for col, label in _LABELS.items():
            stored = [v for v in st.session_state.get(f"filter_{col}", []) if v in options[col]]
            chosen[col] = st.multiselect(label, options[col], default=stored)
            st.session_state[f"filter_{col}"] = chosen[col]

    return filter_work_items(
        df,
        period_days=PERIOD_CHOICES[period],
        teams=chosen["team"],
        assignees=chosen["assignee"],
        types=chosen["type"],
        states=chosen["state"],
        tags=chosen["tags"],
    )
