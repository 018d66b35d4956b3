"""Mapping raw work-item records into WorkItem instances and DataFrames."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

import pandas as pd
import pytz

from .config import NO_TEAM_LABEL, TIMEZONE, UNASSIGNED_LABEL, WORK_ITEM_COLUMNS
from .errors import DataQualityIssue, DataQualityKind
from .models import WorkItem, WorkItemType
from .status import StateTaxonomy
from .taxonomy_config import default_taxonomy

logger = logging.getLogger(__name__)

_TAG_SPLIT = re.compile(r"[;,]")

# Source field names, first match wins.
_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "id": ("id", "workItemId"),
    "title": ("title",),
    "type": ("type", "workItemType"),
    "state": ("state", "status"),
    "created": ("createdDate", "created"),
    "closed": ("closedDate", "closed"),
    "activated": ("activatedDate", "firstActivationDate", "activated"),
    "team": ("team",),
    "assignee": ("assignedTo", "assignee"),
    "tags": ("tags",),
    "priority": ("priority",),
    "story_points": ("storyPoints", "story_points"),
    "url": ("url",),
}


def _pick(raw: Mapping[str, Any], name: str) -> Any:
    for key in _FIELD_ALIASES[name]:
        if key in raw and raw[key] is not None:
            return raw[key]
    return None


def parse_dt(val) -> datetime | None:
    if val is None or val == "":
        return None
    ts = pd.to_datetime(val, utc=True, errors="coerce")
    if ts is None or pd.isna(ts):
        return None
    return ts.to_pydatetime()


def normalize_tags(value: Any) -> frozenset[str]:
    """Turn a delimited string or a list of tags into a set of clean names."""
    if value is None:
        return frozenset()
    if isinstance(value, str):
        parts = _TAG_SPLIT.split(value)
    elif isinstance(value, Iterable):
        parts = [str(v) for v in value if v is not None]
    else:
        parts = [str(value)]
    return frozenset(p.strip() for p in parts if p and p.strip())


def _to_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


def _to_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        out = float(value)
    except (TypeError, ValueError):
        return None
    return None if pd.isna(out) else out


def _display_name(value: Any) -> str | None:
    # Azure DevOps identities arrive either as plain strings or identity dicts.
    if isinstance(value, Mapping):
        value = value.get("displayName") or value.get("uniqueName")
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def map_work_item(raw: Mapping[str, Any]) -> WorkItem | None:
    """Build a WorkItem from a raw record.

    Returns None when the record has no parseable creation date, which is the
    one field every metric depends on.
    """
    item_id = _pick(raw, "id")
    created = parse_dt(_pick(raw, "created"))
    if created is None:
        return None
    state = _pick(raw, "state")
    return WorkItem(
        id=item_id,
        title=_pick(raw, "title"),
        type=WorkItemType.parse(_pick(raw, "type")),
        state=str(state).strip() if state is not None else None,
        created=created,
        closed=parse_dt(_pick(raw, "closed")),
        activated=parse_dt(_pick(raw, "activated")),
        team=_display_name(_pick(raw, "team")),
        assignee=_display_name(_pick(raw, "assignee")),
        tags=normalize_tags(_pick(raw, "tags")),
        priority=_to_int(_pick(raw, "priority")),
        story_points=_to_float(_pick(raw, "story_points")),
        url=_pick(raw, "url"),
    )


def map_work_items(records: Iterable[Mapping[str, Any]]) -> tuple[list[WorkItem], list[DataQualityIssue]]:
    items: list[WorkItem] = []
    issues: list[DataQualityIssue] = []
    for raw in records:
        item = map_work_item(raw)
        if item is None:
            item_id = _pick(raw, "id")
            issues.append(
                DataQualityIssue(item_id, DataQualityKind.MISSING_FIELD, "created", "record dropped")
            )
            continue
        items.append(item)
    if issues:
        logger.warning("Dropped %s record(s) without a parseable creation date", len(issues))
    return items, issues


def work_items_to_dataframe(
    items: Iterable[WorkItem],
    taxonomy: StateTaxonomy | None = None,
    tz: str = TIMEZONE,
) -> pd.DataFrame:
    """Frame the items, classifying each state exactly once.

    Timestamps are converted to the dashboard timezone so calendar-day and
    calendar-week bucketing downstream follows local dates.
    """
    rows = []
    for i in items:
        rows.append(
            {
                "id": i.id,
                "title": i.title,
                "type": i.type.value,
                "state": i.state,
                "team": i.team or NO_TEAM_LABEL,
                "assignee": i.assignee or UNASSIGNED_LABEL,
                "tags": sorted(i.tags, key=str.lower),
                "priority": i.priority,
                "story_points": i.story_points,
                "created": i.created,
                "activated": i.activated,
                "closed": i.closed,
                "url": i.url,
            }
        )
    if not rows:
        return pd.DataFrame(columns=list(WORK_ITEM_COLUMNS))
    df = pd.DataFrame(rows)
    zone = pytz.timezone(tz)
    for col in ("created", "activated", "closed"):
        df[col] = pd.to_datetime(df[col], utc=True, errors="coerce").dt.tz_convert(zone)
    df["lifecycle"] = (taxonomy or default_taxonomy()).classify_series(df["state"])
    return df[list(WORK_ITEM_COLUMNS)]
