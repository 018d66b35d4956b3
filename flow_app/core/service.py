"""FlowService: orchestrates mapping, metric derivation, and aggregation."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable, Mapping
from datetime import date, datetime
from typing import IO, Any

import pandas as pd

from flow_app.analytics.aggregations.cumulative_flow import (
    CumulativeFlow,
    cumulative_flow,
    resolve_date_range,
)
from flow_app.analytics.aggregations.throughput import weekly_throughput
from flow_app.analytics.metrics.derived import add_flow_metrics, derive_metrics

from .config import MIN_THROUGHPUT_SAMPLES, TIMEZONE
from .errors import DataQualityIssue, InvalidDateRangeError
from .mappers import map_work_items, work_items_to_dataframe
from .models import ThroughputSeries
from .status import StateTaxonomy
from .taxonomy_config import load_state_taxonomy

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int | None, int | None], None]

# Envelope keys used by exports that wrap the item list in an object.
_LIST_KEYS = ("value", "workItems", "items")


class FlowService:
    def __init__(self, taxonomy: StateTaxonomy | None = None):
        self.taxonomy = taxonomy or load_state_taxonomy()
        self.issues: list[DataQualityIssue] = []

    # ------------------ Loading ------------------
    def load_records(
        self,
        records: Iterable[Mapping[str, Any]],
        *,
        progress: ProgressCallback | None = None,
    ) -> pd.DataFrame:
        """Map raw records into an enriched work-item frame.

        Per-item data problems never abort the load; they are collected on
        ``self.issues`` (replaced on every call) and the affected metrics
        are left undefined.
        """
        records = list(records)
        if progress:
            progress("Mapping work items", 0, len(records))
        items, issues = map_work_items(records)

        if progress:
            progress("Deriving flow metrics", len(records), len(records))
        for item in items:
            issues.extend(derive_metrics(item, self.taxonomy).issues)
        self.issues = issues
        if issues:
            logger.info("Loaded %s item(s) with %s data-quality issue(s)", len(items), len(issues))

        df = add_flow_metrics(work_items_to_dataframe(items, self.taxonomy, TIMEZONE))
        if df.empty:
            return df
        return df.sort_values(by="created", ascending=False, na_position="last").reset_index(drop=True)

    def load_json(
        self,
        source: str | bytes | IO,
        *,
        progress: ProgressCallback | None = None,
    ) -> pd.DataFrame:
        """Load a JSON export: a list of records or an object wrapping one."""
        if hasattr(source, "read"):
            source = source.read()
        if progress:
            progress("Reading JSON export", None, None)
        data = json.loads(source)
        if isinstance(data, Mapping):
            for key in _LIST_KEYS:
                if isinstance(data.get(key), list):
                    data = data[key]
                    break
        if not isinstance(data, list):
            raise ValueError("Expected a JSON list of work items (or an object with a 'value' list)")
        return self.load_records([r for r in data if isinstance(r, Mapping)], progress=progress)

    # ------------------ Aggregations ------------------
    def throughput(self, df: pd.DataFrame) -> ThroughputSeries:
        return weekly_throughput(df, TIMEZONE)

    def cumulative_flow(
        self,
        df: pd.DataFrame,
        *,
        days: int | None = None,
        start: date | None = None,
        end: date | None = None,
        freq: str = "D",
        now: datetime | None = None,
    ) -> CumulativeFlow | InvalidDateRangeError:
        start_d, end_d = resolve_date_range(days, start, end, now=now, tz=TIMEZONE)
        result = cumulative_flow(df, start_d, end_d, freq, tz=TIMEZONE)
        if isinstance(result, InvalidDateRangeError):
            logger.warning("Rejected cumulative flow request: %s", result.message)
        return result

    def forecast_pool(self, df: pd.DataFrame, lookback_weeks: int | None = None) -> ThroughputSeries:
        """Observed weekly throughput to resample, optionally the newest weeks only."""
        series = self.throughput(df)
        if not lookback_weeks or len(series) <= lookback_weeks:
            return series
        recent = series.samples[-lookback_weeks:]
        return ThroughputSeries(
            samples=recent,
            insufficient_for_simulation=len(recent) < MIN_THROUGHPUT_SAMPLES,
        )
