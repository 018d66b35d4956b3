from datetime import datetime, timedelta

import pandas as pd
import pytest
import pytz

from flow_app.analytics.metrics.aging import aging_band, aging_items, cycle_time_by_tag, lead_vs_cycle_by_team

TZ = pytz.timezone("America/Sao_Paulo")
NOW = TZ.localize(datetime(2024, 6, 1, 12, 0))


def _rec(i, state, age_days, *, team="Plataforma", tags=None, lead=None, wait=None):
    created = NOW - timedelta(days=age_days)
    raw = {
        "id": i,
        "title": f"Item {i}",
        "workItemType": "Task",
        "state": state,
        "team": team,
        "createdDate": created.isoformat(),
    }
    if tags:
        raw["tags"] = tags
    if lead is not None:
        raw["closedDate"] = (created + timedelta(days=lead)).isoformat()
    if wait is not None:
        raw["activatedDate"] = (created + timedelta(days=wait)).isoformat()
    return raw


def test_bands_use_whole_days():
    assert aging_band(0) == "normal"
    assert aging_band(15) == "normal"
    assert aging_band(16) == "warning"
    assert aging_band(30) == "warning"
    assert aging_band(31) == "critical"


def test_aging_counts_open_items_only(build_frame):
    df = build_frame(
        [
            _rec(1, "Active", 3),
            _rec(2, "New", 15.9),  # truncated to 15 days
            _rec(3, "Aguardando QA", 20),
            _rec(4, "Active", 45),
            _rec(5, "Done", 60, lead=10),
        ]
    )
    aging = aging_items(df, now=NOW)
    assert aging.total == 4
    assert list(aging.items["id"]) == [4, 3, 2, 1]
    assert list(aging.items["age_days"]) == [45, 20, 15, 3]
    assert aging.count("critical") == 1
    assert aging.count("warning") == 1
    assert aging.count("normal") == 2
    assert aging.avg_age_days == pytest.approx((45 + 20 + 15 + 3) / 4)


def test_aging_accepts_naive_now(build_frame):
    df = build_frame([_rec(1, "Active", 10)])
    aging = aging_items(df, now=NOW.replace(tzinfo=None))
    assert list(aging.items["age_days"]) == [10]


def test_aging_without_open_items(build_frame):
    df = build_frame([_rec(1, "Done", 20, lead=5)])
    aging = aging_items(df, now=NOW)
    assert aging.total == 0
    assert aging.avg_age_days is None
    assert list(aging.bands["items"]) == [0, 0, 0]
    assert aging_items(pd.DataFrame(), now=NOW).avg_age_days is None


def test_cycle_time_by_tag_counts_each_tag(build_frame):
    df = build_frame(
        [
            _rec(1, "Done", 30, tags="api; backend", lead=10, wait=2),  # cycle 8
            _rec(2, "Done", 30, tags="api", lead=4),  # cycle 4
            _rec(3, "Done", 30, lead=6),  # untagged
            _rec(4, "Active", 30, tags="backend"),  # open
            _rec(5, "Done", 30, tags="frontend", lead=5, wait=9),  # cycle undefined
        ]
    )
    by_tag = cycle_time_by_tag(df)
    assert list(by_tag["tag"]) == ["backend", "api"]
    assert list(by_tag["avg_cycle_time"]) == pytest.approx([8.0, 6.0])
    assert list(by_tag["items"]) == [1, 2]


def test_cycle_time_by_tag_empty_when_no_tags(build_frame):
    df = build_frame([_rec(1, "Done", 30, lead=6)])
    assert cycle_time_by_tag(df).empty
    assert cycle_time_by_tag(pd.DataFrame()).empty


def test_lead_vs_cycle_requires_both_metrics(build_frame):
    df = build_frame(
        [
            _rec(1, "Done", 30, team="Mobile", lead=10, wait=4),
            _rec(2, "Done", 30, team="Mobile", lead=6, wait=2),
            _rec(3, "Done", 30, team="Plataforma", lead=8, wait=9),  # cycle undefined
            _rec(4, "Done", 30, team="Plataforma", lead=2),
        ]
    )
    out = lead_vs_cycle_by_team(df).set_index("team")
    assert out.loc["Mobile", "lead_time"] == pytest.approx(8.0)
    assert out.loc["Mobile", "cycle_time"] == pytest.approx(5.0)
    assert out.loc["Plataforma", "items"] == 1
    assert out.loc["Plataforma", "cycle_time"] == pytest.approx(2.0)
