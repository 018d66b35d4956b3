"""Reusable table helpers for Streamlit rendering."""

from __future__ import annotations

import pandas as pd
import streamlit as st

from flow_app.core.config import DISPLAY_ORDER_ITEMS


def add_item_link(df: pd.DataFrame, url_col: str = "url", label: str = "Item"):
    """Add a link column pointing at each item's source URL (id as text)."""
    if df.empty or url_col not in df.columns:
        return df, {}
    out = df.copy()
    out[label] = out[url_col].fillna("").astype(str)
    cfg = {
        label: st.column_config.LinkColumn(
            label,
            display_text=r"edit/(\d+)$",
            help="Open the work item",
            width="small",
        )
    }
    return out, cfg


def prepare_item_table(df: pd.DataFrame) -> tuple[pd.DataFrame, list[str], dict[str, object]]:
    if df.empty:
        return df, [], {}
    table, cfg = add_item_link(df)
    if "tags" in table.columns:
        table["tags"] = table["tags"].apply(lambda t: ", ".join(t) if isinstance(t, (list, tuple)) else (t or ""))
    for col in ("cycle_time", "lead_time"):
        if col in table.columns:
            table[col] = table[col].round(1)
    display_cols = [c for c in DISPLAY_ORDER_ITEMS if c in table.columns]
    if "Item" not in table.columns and "id" in table.columns:
        display_cols.insert(0, "id")
    return table, display_cols, cfg


def render_work_item_table(df: pd.DataFrame, limit: int = 1000):
    table, cols, cfg = prepare_item_table(df)
    if table.empty:
        st.info("No work items match the current filters.")
        return
    st.dataframe(table[cols].head(limit), hide_index=True, column_config=cfg)
