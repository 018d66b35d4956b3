"""Monte Carlo Forecast page: "how many by N weeks" and "when will M items finish".

Forecasts run in the background. Any change of parameters or filters submits
a new run, which supersedes the one in flight; the page polls until the
latest run settles and never blocks the script thread on a result.
"""

from __future__ import annotations

import pandas as pd
import streamlit as st

from flow_app.analytics.forecast.monte_carlo import distribution_frequencies
from flow_app.analytics.forecast.runner import AcceptedForecast, ForecastRequest, ForecastRunner
from flow_app.app import register_page
from flow_app.core.config import DEFAULT_FORECAST_ITEMS, DEFAULT_FORECAST_WEEKS, DEFAULT_TRIALS
from flow_app.core.errors import DataInsufficientError
from flow_app.core.service import FlowService
from flow_app.visual.charts import forecast_distribution_chart
from flow_app.visual.filter_bar import render_filter_bar

POLL_SECONDS = 0.5


def _runner() -> ForecastRunner:
    if "forecast_runner" not in st.session_state:
        st.session_state.forecast_runner = ForecastRunner()
    return st.session_state.forecast_runner


def _render_outcome(accepted: AcceptedForecast) -> None:
    outcome = accepted.outcome
    if isinstance(outcome, DataInsufficientError):
        st.warning(outcome.message)
        return
    req = accepted.request
    how_many, when = outcome.how_many, outcome.when
    left, right = st.columns(2)
    with left:
        st.subheader(f"How many items in {req.weeks} week(s)?")
        lv = how_many.confidence_levels
        st.markdown(
            f"- 50% chance of **{lv.p50}** or more\n"
            f"- 85% chance of **{lv.p85}** or more\n"
            f"- 95% chance of **{lv.p95}** or more"
        )
        chart = forecast_distribution_chart(distribution_frequencies(how_many), lv, x_title="Items completed")
        if chart is not None:
            st.altair_chart(chart, use_container_width=True)
    with right:
        st.subheader(f"When will {req.target_items} items be done?")
        lv = when.confidence_levels
        st.markdown(
            f"- 50% chance within **{lv.p50}** week(s)\n"
            f"- 85% chance within **{lv.p85}** week(s)\n"
            f"- 95% chance within **{lv.p95}** week(s)"
        )
        for warning in when.warnings:
            st.warning(warning)
        chart = forecast_distribution_chart(distribution_frequencies(when), lv, x_title="Weeks")
        if chart is not None:
            st.altair_chart(chart, use_container_width=True)
    st.caption(f"{how_many.trials} trials per mode, run #{accepted.sequence}.")


def _render_results(runner: ForecastRunner) -> None:
    sequence = st.session_state.get("forecast_sequence")
    running = sequence is not None and runner.pending(sequence)

    @st.fragment(run_every=POLL_SECONDS if running else None)
    def results():
        if sequence is not None and runner.pending(sequence):
            st.info(f"Running forecast #{sequence}...")
        elif running:
            # Settled since the last full run: redraw without polling.
            st.rerun()
        accepted = runner.latest
        if accepted is None:
            if sequence is None:
                st.info("Set the parameters to run a forecast.")
            return
        if accepted.sequence != sequence:
            st.caption(f"Showing forecast #{accepted.sequence} until the latest run finishes.")
        _render_outcome(accepted)

    results()


@register_page("Monte Carlo Forecast")
def forecast_page():
    st.title("Monte Carlo Forecast")
    st.caption("Resamples observed weekly throughput (weeks with at least one completion).")
    df = st.session_state.get("work_items_df")
    if not isinstance(df, pd.DataFrame) or df.empty:
        st.warning("No work items loaded. Please go to the 'Data Source' page.")
        return
    service: FlowService = st.session_state.get("flow_service") or FlowService()

    filtered = render_filter_bar(df)
    with st.sidebar:
        st.header("Forecast")
        weeks = st.number_input("Weeks ahead", min_value=1, max_value=52, value=DEFAULT_FORECAST_WEEKS)
        target = st.number_input("Target items", min_value=1, max_value=5000, value=DEFAULT_FORECAST_ITEMS)
        lookback = st.number_input("Lookback (weeks, 0 = all)", min_value=0, max_value=104, value=0)
        trials = st.select_slider("Trials", options=[1000, 2000, 5000, 10000], value=DEFAULT_TRIALS)
        rerun_btn = st.button("Re-run Forecast")

    pool = service.forecast_pool(filtered, lookback_weeks=int(lookback) or None)
    st.write(f"Throughput pool: {len(pool)} week(s), values {list(pool.pool)}")

    runner = _runner()
    request = ForecastRequest(pool=pool.pool, weeks=int(weeks), target_items=int(target), trials=int(trials))
    if rerun_btn or st.session_state.get("forecast_request") != request:
        ticket = runner.submit(request.pool, request.weeks, request.target_items, request.trials)
        st.session_state.forecast_request = request
        st.session_state.forecast_sequence = ticket.sequence

    _render_results(runner)
