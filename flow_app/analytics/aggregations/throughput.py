"""Weekly throughput aggregation.

``weekly_throughput`` is the forecaster's input: one sample per ISO week
(Monday start) that holds at least one completion. Weeks without completions
are deliberately absent so resampling never draws weeks that did not happen.
``throughput_trend`` is the zero-filled variant for charts only.
"""

from __future__ import annotations

from datetime import date

import pandas as pd
import pytz

from flow_app.core.config import MIN_THROUGHPUT_SAMPLES, THROUGHPUT_HISTOGRAM_BINS, TIMEZONE
from flow_app.core.models import ThroughputSample, ThroughputSeries
from flow_app.core.status import completed_mask


def week_key(day: date) -> str:
    """ISO week label, e.g. ``2024-W05``."""
    iso = day.isocalendar()
    return f"{iso[0]}-W{iso[1]:02d}"


def _completion_dates(df: pd.DataFrame, tz: str) -> pd.Series:
    if df.empty or "closed" not in df.columns:
        return pd.Series(dtype="datetime64[ns]")
    closed = pd.to_datetime(df["closed"], utc=True, errors="coerce").dt.tz_convert(pytz.timezone(tz))
    mask = completed_mask(df) & closed.notna()
    return closed[mask]


def _week_start(ts: pd.Series) -> pd.Series:
    # W-SUN periods run Monday through Sunday.
    return ts.dt.tz_localize(None).dt.to_period("W-SUN").dt.start_time.dt.normalize()


def weekly_throughput(df: pd.DataFrame, tz: str = TIMEZONE) -> ThroughputSeries:
    """Count completed items per ISO week, oldest week first.

    Parameters
    ----------
    df : pd.DataFrame
        Work-item frame with ``lifecycle`` and ``closed`` columns.
    tz : str
        Timezone whose calendar defines the week boundaries.

    Returns
    -------
    ThroughputSeries
        Samples for observed weeks only, flagged insufficient for simulation
        when fewer than two weeks exist.
    """
    closed = _completion_dates(df, tz)
    if closed.empty:
        return ThroughputSeries(samples=(), insufficient_for_simulation=True)
    counts = _week_start(closed).value_counts().sort_index()
    samples = tuple(
        ThroughputSample(week_key=week_key(start.date()), week_start=start.date(), count=int(count))
        for start, count in counts.items()
    )
    return ThroughputSeries(
        samples=samples,
        insufficient_for_simulation=len(samples) < MIN_THROUGHPUT_SAMPLES,
    )


def throughput_frame(series: ThroughputSeries) -> pd.DataFrame:
    return pd.DataFrame(
        [{"week": s.week_key, "week_start": pd.Timestamp(s.week_start), "count": s.count} for s in series.samples],
        columns=["week", "week_start", "count"],
    )


def throughput_trend(
    df: pd.DataFrame,
    start: date | None = None,
    end: date | None = None,
    *,
    by: str | None = None,
    tz: str = TIMEZONE,
) -> pd.DataFrame:
    """Zero-filled weekly completions for charts (optionally per ``by`` group).

    Not a forecasting input: the filled zero weeks would bias resampling.
    """
    columns = ["week_start", "week", "count"] + ([by] if by else [])
    closed = _completion_dates(df, tz)
    if closed.empty:
        return pd.DataFrame(columns=columns)
    weeks = _week_start(closed)
    first = pd.Timestamp(start) if start is not None else weeks.min()
    last = pd.Timestamp(end) if end is not None else weeks.max()
    first = first - pd.Timedelta(days=first.weekday())
    calendar = pd.date_range(first.normalize(), last.normalize(), freq="W-MON")
    if by:
        groups = df.loc[closed.index, by].fillna("").astype(str)
        counts = pd.DataFrame({"week_start": weeks, by: groups}).value_counts()
        index = pd.MultiIndex.from_product([calendar, sorted(groups.unique())], names=["week_start", by])
        out = counts.reindex(index, fill_value=0).rename("count").reset_index()
    else:
        counts = weeks.value_counts()
        out = counts.reindex(calendar, fill_value=0).rename("count").rename_axis("week_start").reset_index()
    out["week"] = out["week_start"].apply(lambda ts: week_key(ts.date()))
    return out[columns]


def throughput_histogram(series: ThroughputSeries) -> pd.DataFrame:
    """How many observed weeks fall into each throughput bucket."""
    rows = []
    for label, low, high in THROUGHPUT_HISTOGRAM_BINS:
        weeks = sum(1 for s in series.samples if s.count >= low and (high is None or s.count <= high))
        rows.append({"range": label, "weeks": weeks})
    return pd.DataFrame(rows, columns=["range", "weeks"])
