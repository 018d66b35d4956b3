"""Work-in-progress aging and per-tag / per-team duration breakdowns."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

import numpy as np
import pandas as pd
import pytz

from flow_app.core.config import AGING_BANDS, AGING_CRITICAL_DAYS, AGING_WARNING_DAYS, TIMEZONE
from flow_app.core.status import completed_mask

SECONDS_PER_DAY = 86400.0

_AGING_COLUMNS = ["id", "title", "type", "state", "team", "priority", "created", "age_days", "band"]


@dataclass(frozen=True, slots=True, eq=False)
class AgingSummary:
    items: pd.DataFrame  # open items, oldest first
    bands: pd.DataFrame  # band, items (always the three bands, in AGING_BANDS order)
    avg_age_days: float | None

    @property
    def total(self) -> int:
        return int(len(self.items))

    def count(self, band: str) -> int:
        match = self.bands.loc[self.bands["band"] == band, "items"]
        return int(match.iloc[0]) if len(match) else 0


def aging_band(age_days: int) -> str:
    if age_days > AGING_CRITICAL_DAYS:
        return "critical"
    if age_days > AGING_WARNING_DAYS:
        return "warning"
    return "normal"


def aging_items(df: pd.DataFrame, now: datetime | None = None, tz: str = TIMEZONE) -> AgingSummary:
    """Age in whole days of every item not in a completed state.

    Age runs from creation to ``now`` and is truncated to full days, so an
    item created 15 days and 23 hours ago is 15 days old and still normal.
    """
    zone = pytz.timezone(tz)
    current = now.astimezone(zone) if now is not None and now.tzinfo else (now or datetime.now(zone))
    if current.tzinfo is None:
        current = zone.localize(current)

    empty_bands = pd.DataFrame({"band": list(AGING_BANDS), "items": [0] * len(AGING_BANDS)})
    if df.empty:
        return AgingSummary(pd.DataFrame(columns=_AGING_COLUMNS), empty_bands, None)

    open_items = df[~completed_mask(df)].copy()
    created = pd.to_datetime(open_items["created"], utc=True, errors="coerce")
    seconds = (pd.Timestamp(current).tz_convert("UTC") - created).dt.total_seconds()
    open_items = open_items[seconds.notna()]
    if open_items.empty:
        return AgingSummary(pd.DataFrame(columns=_AGING_COLUMNS), empty_bands, None)

    open_items["age_days"] = np.floor(seconds[seconds.notna()] / SECONDS_PER_DAY).astype(int)
    open_items["band"] = open_items["age_days"].map(aging_band)
    items = (
        open_items.reindex(columns=_AGING_COLUMNS)
        .sort_values("age_days", ascending=False, kind="stable")
        .reset_index(drop=True)
    )
    counts = items["band"].value_counts()
    bands = pd.DataFrame({"band": list(AGING_BANDS), "items": [int(counts.get(b, 0)) for b in AGING_BANDS]})
    return AgingSummary(items=items, bands=bands, avg_age_days=float(items["age_days"].mean()))


def cycle_time_by_tag(df: pd.DataFrame) -> pd.DataFrame:
    """Average cycle time per tag over completed items with a defined cycle time.

    An item with several tags counts once towards each of them; untagged
    items are left out.
    """
    columns = ["tag", "avg_cycle_time", "items"]
    if df.empty or "tags" not in df.columns or "cycle_time" not in df.columns:
        return pd.DataFrame(columns=columns)
    done = df[completed_mask(df) & df["cycle_time"].notna()]
    exploded = done[["tags", "cycle_time"]].explode("tags").dropna(subset=["tags"])
    if exploded.empty:
        return pd.DataFrame(columns=columns)
    out = (
        exploded.groupby("tags")
        .agg(avg_cycle_time=("cycle_time", "mean"), items=("cycle_time", "count"))
        .reset_index()
        .rename(columns={"tags": "tag"})
    )
    return out.sort_values(["avg_cycle_time", "tag"], ascending=[False, True]).reset_index(drop=True)[columns]


def lead_vs_cycle_by_team(df: pd.DataFrame) -> pd.DataFrame:
    """Average lead and cycle time per team over items where both are defined."""
    columns = ["team", "lead_time", "cycle_time", "items"]
    if df.empty or "lead_time" not in df.columns or "cycle_time" not in df.columns:
        return pd.DataFrame(columns=columns)
    done = df[completed_mask(df) & df["lead_time"].notna() & df["cycle_time"].notna()]
    if done.empty:
        return pd.DataFrame(columns=columns)
    out = (
        done.groupby("team", dropna=False)
        .agg(lead_time=("lead_time", "mean"), cycle_time=("cycle_time", "mean"), items=("lead_time", "count"))
        .reset_index()
    )
    return out.sort_values("team").reset_index(drop=True)[columns]
