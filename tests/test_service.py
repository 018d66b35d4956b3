import json
from datetime import date, datetime

import pytz

from flow_app.analytics.aggregations.cumulative_flow import CumulativeFlow
from flow_app.core.errors import DataQualityKind, InvalidDateRangeError
from flow_app.core.sample_data import generate_sample_records
from flow_app.core.service import FlowService
from flow_app.core.status import StateTaxonomy

NOW = pytz.timezone("America/Sao_Paulo").localize(datetime(2024, 6, 1, 12, 0))


def _records():
    return [
        {
            "id": 1,
            "workItemType": "Task",
            "state": "Done",
            "createdDate": "2024-05-01T12:00:00Z",
            "closedDate": "2024-05-06T12:00:00Z",
        },
        {
            "id": 2,
            "workItemType": "Bug",
            "state": "Done",
            "createdDate": "2024-05-02T12:00:00Z",
            "closedDate": "2024-05-14T12:00:00Z",
        },
        {"id": 3, "workItemType": "Bug", "state": "Done", "createdDate": "2024-05-03T12:00:00Z"},
        {"id": 4, "workItemType": "Task", "state": "Active"},
    ]


def test_load_records_collects_issues():
    progress_calls = []
    svc = FlowService()
    df = svc.load_records(_records(), progress=lambda m, c, t: progress_calls.append(m))
    assert len(df) == 3
    assert {"cycle_time", "lead_time", "time_in_status", "lifecycle"} <= set(df.columns)
    kinds = sorted((i.item_id, i.kind) for i in svc.issues)
    assert kinds == [(3, DataQualityKind.MISSING_FIELD), (4, DataQualityKind.MISSING_FIELD)]
    assert progress_calls


def test_load_json_accepts_wrapped_list():
    svc = FlowService()
    df = svc.load_json(json.dumps({"count": 4, "value": _records()}))
    assert sorted(df["id"]) == [1, 2, 3]


def test_load_json_rejects_non_list():
    svc = FlowService()
    try:
        svc.load_json('{"unexpected": true}')
    except ValueError:
        pass
    else:
        raise AssertionError("expected ValueError")


def test_custom_taxonomy_is_used():
    svc = FlowService(StateTaxonomy.from_lists(["Active"], []))
    extra = {"id": 9, "state": "Active", "createdDate": "2024-05-01", "closedDate": "2024-05-03"}
    df = svc.load_records(_records()[:2] + [extra])
    assert list(df.loc[df["id"] == 9, "lifecycle"]) == ["completed"]
    assert set(df.loc[df["id"] != 9, "lifecycle"]) == {"other"}


def test_throughput_and_pool():
    svc = FlowService()
    df = svc.load_records(_records())
    series = svc.throughput(df)
    assert series.pool == (1, 1)
    assert svc.forecast_pool(df, lookback_weeks=1).insufficient_for_simulation


def test_cumulative_flow_via_service():
    svc = FlowService()
    df = svc.load_records(_records())
    result = svc.cumulative_flow(df, start=date(2024, 5, 1), end=date(2024, 5, 31))
    assert isinstance(result, CumulativeFlow)
    assert int(result.frame["wip"].iloc[-1]) == 1
    bad = svc.cumulative_flow(df, start=date(2024, 5, 31), end=date(2024, 5, 1))
    assert isinstance(bad, InvalidDateRangeError)
    rolling = svc.cumulative_flow(df, days=30, now=NOW)
    assert len(rolling.frame) == 30


def test_sample_records_load_cleanly():
    records = generate_sample_records(150, seed=7, now=NOW)
    assert len(records) == 150
    assert records == generate_sample_records(150, seed=7, now=NOW)
    svc = FlowService()
    df = svc.load_records(records)
    assert len(df) == 150
    assert (df["lifecycle"] == "completed").any()
    assert (df["cycle_time"].dropna() >= 0).all()
    assert (df["cycle_time"].dropna() <= df["lead_time"].dropna().max()).all()
