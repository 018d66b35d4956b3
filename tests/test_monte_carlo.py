import numpy as np
import pytest

from flow_app.analytics.forecast.monte_carlo import (
    FORECAST_CAP_REACHED,
    HOW_MANY,
    WHEN,
    check_pool,
    distribution_frequencies,
    run_forecast,
    simulate_how_many,
    simulate_when,
)
from flow_app.core.errors import DataInsufficientError, InsufficientReason, SimulationCancelled
from flow_app.core.models import ThroughputSample, ThroughputSeries


class _SpyRng:
    """Generator stand-in that records every draw."""

    def __init__(self, seed=0):
        self._rng = np.random.default_rng(seed)
        self.calls = 0

    def choice(self, *args, **kwargs):
        self.calls += 1
        return self._rng.choice(*args, **kwargs)


def test_how_many_support_bound():
    result = simulate_how_many([5, 8, 6, 7], 1, 2000, rng=np.random.default_rng(1))
    assert result.mode == HOW_MANY
    assert len(result.distribution) == 2000
    assert set(result.distribution) <= {5, 6, 7, 8}


def test_how_many_levels_read_from_the_high_side():
    levels = simulate_how_many([1, 2, 3, 4, 5, 6], 3, 5000, rng=np.random.default_rng(7)).confidence_levels
    # Higher confidence means a smaller guaranteed count.
    assert levels.p95 <= levels.p85 <= levels.p50


def test_when_levels_read_from_the_low_side():
    levels = simulate_when([1, 2, 3, 4, 5, 6], 30, 5000, rng=np.random.default_rng(7)).confidence_levels
    assert levels.p50 <= levels.p85 <= levels.p95


def test_when_terminates_within_cap():
    result = simulate_when([1, 3, 2], 50, 1000, rng=np.random.default_rng(3), max_weeks=200)
    assert result.mode == WHEN
    assert max(result.distribution) <= 200
    assert min(result.distribution) >= 1
    assert result.capped_trials == 0
    assert result.warnings == ()


def test_when_counts_capped_trials():
    result = simulate_when([0, 0, 1], 40, 500, rng=np.random.default_rng(3), max_weeks=20)
    assert result.capped_trials == 500
    assert max(result.distribution) == 20
    assert result.warnings[0].startswith(FORECAST_CAP_REACHED)


@pytest.mark.parametrize("pool", [[], [7]])
def test_insufficient_pool_makes_no_draws(pool):
    spy = _SpyRng()
    result = run_forecast(pool, 4, 20, 1000, rng=spy)
    assert isinstance(result, DataInsufficientError)
    assert result.reason is InsufficientReason.TOO_FEW_SAMPLES
    assert not result.ok
    assert spy.calls == 0


def test_all_zero_pool_is_rejected_upfront():
    spy = _SpyRng()
    result = simulate_when([0, 0, 0], 10, 100, rng=spy)
    assert isinstance(result, DataInsufficientError)
    assert result.reason is InsufficientReason.NON_POSITIVE_POOL
    assert spy.calls == 0


def test_check_pool_accepts_throughput_series():
    series = ThroughputSeries(
        samples=(
            ThroughputSample("2024-W01", None, 3),
            ThroughputSample("2024-W02", None, 5),
        ),
        insufficient_for_simulation=False,
    )
    assert check_pool(series) is None


def test_invalid_parameters_raise():
    with pytest.raises(ValueError):
        simulate_how_many([1, 2], 0)
    with pytest.raises(ValueError):
        simulate_when([1, 2], -5)
    with pytest.raises(ValueError):
        check_pool([3, -1])


def test_how_many_scenario_near_expected_sum():
    result = run_forecast([10, 12, 9, 11, 10], 4, 40, 5000, rng=np.random.default_rng(2024))
    p50 = result.how_many.confidence_levels.p50
    assert 41.6 * 0.85 <= p50 <= 41.6 * 1.15
    assert result.when.confidence_levels.p50 in (4, 5)


def test_cancellation_stops_between_chunks():
    checks = iter([False, True])
    with pytest.raises(SimulationCancelled):
        simulate_how_many(
            [1, 2, 3],
            4,
            3000,
            rng=np.random.default_rng(0),
            is_cancelled=lambda: next(checks),
            chunk_size=1000,
        )


def test_distribution_frequencies():
    result = simulate_how_many([5, 8, 6, 7], 1, 400, rng=np.random.default_rng(5))
    freq = distribution_frequencies(result)
    assert list(freq.columns) == ["value", "frequency"]
    assert int(freq["frequency"].sum()) == 400
    assert list(freq["value"]) == sorted(freq["value"])
