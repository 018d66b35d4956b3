from datetime import datetime

import pytz

from flow_app.core.sample_data import generate_sample_records
from flow_app.features.flow_overview import build_flow_context

NOW = pytz.timezone("America/Sao_Paulo").localize(datetime(2024, 6, 1, 12, 0))


def test_flow_context_basic(build_frame):
    df = build_frame(generate_sample_records(200, seed=11, now=NOW))
    ctx = build_flow_context(df, now=NOW)
    assert ctx.performance.total == len(df)
    assert len(ctx.throughput) == len(ctx.throughput_weeks)
    assert int(ctx.trend["count"].sum()) == sum(ctx.throughput.pool)
    assert int(ctx.histogram["weeks"].sum()) == len(ctx.throughput)
    assert (ctx.completed_items["lifecycle"] == "completed").all()
    assert not ctx.time_in_status.empty
    open_count = int((df["lifecycle"] != "completed").sum())
    assert ctx.aging.total == open_count
    assert int(ctx.aging.bands["items"].sum()) == open_count
    assert not ctx.cycle_time_by_tag.empty
    assert set(ctx.lead_vs_cycle["team"]) <= set(df["team"])


def test_flow_context_per_team(build_frame):
    df = build_frame(generate_sample_records(120, seed=3, now=NOW))
    ctx = build_flow_context(df, trend_by="team")
    assert "team" in ctx.trend.columns


def test_flow_context_empty(build_frame):
    ctx = build_flow_context(build_frame([]), now=NOW)
    assert ctx.performance.total == 0
    assert ctx.throughput.insufficient_for_simulation
    assert ctx.trend.empty
    assert ctx.efficiency.global_efficiency is None
    assert ctx.aging.total == 0
    assert ctx.cycle_time_by_tag.empty
    assert ctx.lead_vs_cycle.empty
