"""Cumulative flow reconstruction from creation and closure dates.

Only two timestamps exist per item, so the reconstruction cannot represent
reopened or reworked items. ``wip`` here means "created but not yet closed"
as of the end of each day, not "currently in an active working state".
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime, timedelta

import numpy as np
import pandas as pd
import pytz

from flow_app.core.config import CFD_MAX_ROLLING_DAYS, CFD_STATE_COLUMNS, DEFAULT_PERIOD_DAYS, TIMEZONE
from flow_app.core.errors import InvalidDateRangeError
from flow_app.core.status import completed_mask

logger = logging.getLogger(__name__)

CFD_NEGATIVE_WIP = "cfd_negative_wip"
COMPLETED_BAND = "Concluído"


@dataclass(frozen=True, slots=True, eq=False)
class CumulativeFlow:
    frame: pd.DataFrame  # date, created, completed, wip
    freq: str
    integrity_warnings: tuple[str, ...] = ()
    ok: bool = True

    @property
    def has_integrity_warning(self) -> bool:
        return bool(self.integrity_warnings)


def _as_date(value) -> date:
    if isinstance(value, pd.Timestamp):
        return value.date()
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return pd.Timestamp(value).date()


def resolve_date_range(
    days: int | None = None,
    start=None,
    end=None,
    *,
    now: datetime | None = None,
    tz: str = TIMEZONE,
) -> tuple[date, date]:
    """Explicit ``start``/``end`` win; otherwise a rolling "last N days" window.

    The rolling window ends today (in ``tz``) and is capped at
    ``CFD_MAX_ROLLING_DAYS``.
    """
    if start is not None and end is not None:
        return _as_date(start), _as_date(end)
    zone = pytz.timezone(tz)
    current = now.astimezone(zone) if now is not None and now.tzinfo else (now or datetime.now(zone))
    last = _as_date(end) if end is not None else current.date()
    span = max(1, min(days or DEFAULT_PERIOD_DAYS, CFD_MAX_ROLLING_DAYS))
    return last - timedelta(days=span - 1), last


def _local_dates(values: pd.Series, tz: str) -> pd.Series:
    ts = pd.to_datetime(values, utc=True, errors="coerce").dt.tz_convert(pytz.timezone(tz))
    return ts.dt.tz_localize(None).dt.normalize()


def _sample_points(start: date, end: date, freq: str) -> pd.DatetimeIndex:
    days = pd.date_range(start, end, freq="D")
    if freq == "D":
        return days
    # One point per Monday-start week: its last day inside the range.
    week = days.to_period("W-SUN")
    return pd.DatetimeIndex(pd.Series(days).groupby(week).max().to_numpy())


def _count_at_or_before(dates: pd.Series, points: pd.DatetimeIndex) -> np.ndarray:
    ordered = np.sort(dates.dropna().to_numpy(dtype="datetime64[ns]"))
    return np.searchsorted(ordered, points.to_numpy(dtype="datetime64[ns]"), side="right")


def cumulative_flow(
    df: pd.DataFrame,
    start,
    end,
    freq: str = "D",
    *,
    tz: str = TIMEZONE,
) -> CumulativeFlow | InvalidDateRangeError:
    """Created, completed and WIP counts at the end of each day (or week).

    Parameters
    ----------
    df : pd.DataFrame
        Work-item frame with ``created``, ``closed`` and ``lifecycle``.
    start, end : date-like
        Inclusive range, compared by calendar date in ``tz``.
    freq : {"D", "W"}
        Daily points, or one point per ISO week (its last day in range).

    Returns
    -------
    CumulativeFlow or InvalidDateRangeError
        Negative WIP is reported through ``integrity_warnings`` and left
        unclamped.
    """
    if freq not in ("D", "W"):
        raise ValueError(f"Unsupported frequency {freq!r}; expected 'D' or 'W'")
    start_d, end_d = _as_date(start), _as_date(end)
    if end_d < start_d:
        return InvalidDateRangeError(start=start_d, end=end_d)

    points = _sample_points(start_d, end_d, freq)
    if df.empty:
        created = completed = np.zeros(len(points), dtype=int)
    else:
        created = _count_at_or_before(_local_dates(df["created"], tz), points)
        closed = _local_dates(df["closed"], tz)
        completed = _count_at_or_before(closed[completed_mask(df)], points)

    frame = pd.DataFrame(
        {
            "date": points,
            "created": created.astype(int),
            "completed": completed.astype(int),
        }
    )
    frame["wip"] = frame["created"] - frame["completed"]

    warnings: list[str] = []
    negative = frame[frame["wip"] < 0]
    if not negative.empty:
        dates = ", ".join(d.strftime("%Y-%m-%d") for d in negative["date"])
        logger.warning("Negative WIP on %s day(s): completed items closed before creation", len(negative))
        warnings.append(f"{CFD_NEGATIVE_WIP}: completed exceeds created on {dates}")
    return CumulativeFlow(frame=frame, freq=freq, integrity_warnings=tuple(warnings))


def cumulative_flow_by_state(
    df: pd.DataFrame,
    start,
    end,
    columns: Mapping[str, Sequence[str]] = CFD_STATE_COLUMNS,
    *,
    tz: str = TIMEZONE,
) -> pd.DataFrame | InvalidDateRangeError:
    """Long-form bands for a stacked CFD: completed plus one band per column.

    Open items are placed in the band of their *current* state, which is the
    best available proxy without transition history.
    """
    start_d, end_d = _as_date(start), _as_date(end)
    if end_d < start_d:
        return InvalidDateRangeError(start=start_d, end=end_d)
    points = _sample_points(start_d, end_d, "D")
    if df.empty:
        return pd.DataFrame(columns=["date", "band", "count"])

    created = _local_dates(df["created"], tz)
    closed = _local_dates(df["closed"], tz)
    done = completed_mask(df)
    frames = [
        pd.DataFrame(
            {"date": points, "band": COMPLETED_BAND, "count": _count_at_or_before(closed[done], points)}
        )
    ]
    states = df["state"].astype(str)
    for band, members in columns.items():
        in_band = ~done & states.isin(list(members))
        frames.append(
            pd.DataFrame({"date": points, "band": band, "count": _count_at_or_before(created[in_band], points)})
        )
    out = pd.concat(frames, ignore_index=True)
    out["count"] = out["count"].astype(int)
    return out
