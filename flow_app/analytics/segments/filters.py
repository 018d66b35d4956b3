"""DataFrame filters mirroring the dashboard filter bar."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta

import pandas as pd
import pytz

from flow_app.core.config import TIMEZONE

FILTER_COLUMNS = ("team", "assignee", "type", "state")


def _selected(values: Iterable[str] | None) -> list[str]:
    return [v for v in (values or []) if v]


def filter_work_items(
    df: pd.DataFrame,
    *,
    period_days: int | None = None,
    teams: Iterable[str] | None = None,
    assignees: Iterable[str] | None = None,
    types: Iterable[str] | None = None,
    states: Iterable[str] | None = None,
    tags: Iterable[str] | None = None,
    now: datetime | None = None,
) -> pd.DataFrame:
    """Apply the filter bar to a work-item frame.

    An empty selection means "no restriction". The period keeps items created
    within the last ``period_days`` days; tags match when an item carries any
    of the selected tags.
    """
    if df.empty:
        return df
    mask = pd.Series(True, index=df.index)

    if period_days:
        tz = pytz.timezone(TIMEZONE)
        current = now.astimezone(tz) if now is not None and now.tzinfo else (now or datetime.now(tz))
        cutoff = pd.Timestamp(current - timedelta(days=int(period_days)))
        if cutoff.tzinfo is None:
            cutoff = cutoff.tz_localize(tz)
        created = pd.to_datetime(df["created"], utc=True, errors="coerce")
        mask &= created >= cutoff

    for column, chosen in (("team", teams), ("assignee", assignees), ("type", types), ("state", states)):
        picked = _selected(chosen)
        if picked and column in df.columns:
            mask &= df[column].astype(str).isin(picked)

    picked_tags = set(_selected(tags))
    if picked_tags and "tags" in df.columns:
        mask &= df["tags"].apply(lambda t: bool(picked_tags.intersection(t or ())))

    return df[mask].copy()


def filter_options(df: pd.DataFrame) -> dict[str, list[str]]:
    """Sorted distinct values for each filter control."""
    if df.empty:
        return {col: [] for col in (*FILTER_COLUMNS, "tags")}
    options = {
        col: sorted({str(v) for v in df[col].dropna()}, key=str.lower) if col in df.columns else []
        for col in FILTER_COLUMNS
    }
    tags: set[str] = set()
    if "tags" in df.columns:
        for value in df["tags"]:
            tags.update(value or ())
    options["tags"] = sorted(tags, key=str.lower)
    return options
