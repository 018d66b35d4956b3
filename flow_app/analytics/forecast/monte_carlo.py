"""Monte Carlo delivery forecasts over historical weekly throughput.

Both modes bootstrap-resample the observed weekly completion counts (with
replacement) and read confidence levels off the sorted trial outcomes:

* "how many" sums ``weeks`` draws per trial. More items in a fixed window is
  less likely, so ``pX`` is the value met or exceeded in ``X`` of trials:
  index ``floor(n * (1 - X))`` of the ascending outcomes.
* "when" counts draws until ``target_items`` is reached. More weeks is more
  likely to suffice, so ``pX`` is the ascending nearest rank
  ``ceil(n * X) - 1``.

Functions are pure apart from the random generator, which callers may inject.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Sequence

import numpy as np
import pandas as pd

from flow_app.analytics.metrics.percentile import exceedance_percentile, percentile
from flow_app.core.config import (
    DEFAULT_TRIALS,
    MIN_THROUGHPUT_SAMPLES,
    SETTINGS,
    WHEN_CAP_WARNING_RATIO,
    WHEN_MAX_WEEKS,
)
from flow_app.core.errors import DataInsufficientError, InsufficientReason, SimulationCancelled
from flow_app.core.models import ConfidenceLevels, ForecastResult, SimulationResult, ThroughputSeries

logger = logging.getLogger(__name__)

HOW_MANY = "how_many"
WHEN = "when"
FORECAST_CAP_REACHED = "forecast_cap_reached"

CancelCheck = Callable[[], bool]
Pool = Sequence[int] | ThroughputSeries


def _pool_values(pool: Pool) -> np.ndarray:
    values = pool.pool if isinstance(pool, ThroughputSeries) else pool
    arr = np.asarray(list(values), dtype=np.int64)
    if (arr < 0).any():
        raise ValueError("Weekly throughput counts cannot be negative")
    return arr


def check_pool(pool: Pool) -> DataInsufficientError | None:
    """Reject pools that cannot support resampling, before any trial runs."""
    values = _pool_values(pool)
    if values.size < MIN_THROUGHPUT_SAMPLES:
        return DataInsufficientError(
            reason=InsufficientReason.TOO_FEW_SAMPLES,
            sample_count=int(values.size),
            required=MIN_THROUGHPUT_SAMPLES,
        )
    if not (values > 0).any():
        return DataInsufficientError(
            reason=InsufficientReason.NON_POSITIVE_POOL,
            sample_count=int(values.size),
            required=MIN_THROUGHPUT_SAMPLES,
        )
    return None


def _require_positive(**params: int) -> None:
    for name, value in params.items():
        if value is None or int(value) <= 0:
            raise ValueError(f"{name} must be a positive integer, got {value!r}")


def _chunks(total: int, size: int) -> Iterator[int]:
    size = max(1, size)
    done = 0
    while done < total:
        step = min(size, total - done)
        yield step
        done += step


def _check_cancelled(is_cancelled: CancelCheck | None) -> None:
    if is_cancelled is not None and is_cancelled():
        raise SimulationCancelled()


def _levels(distribution: np.ndarray, reader: Callable[[Sequence[float], float], float]) -> ConfidenceLevels:
    return ConfidenceLevels(
        p50=int(reader(distribution, 0.50)),
        p85=int(reader(distribution, 0.85)),
        p95=int(reader(distribution, 0.95)),
    )


def simulate_how_many(
    pool: Pool,
    weeks: int,
    trials: int = DEFAULT_TRIALS,
    *,
    rng: np.random.Generator | None = None,
    is_cancelled: CancelCheck | None = None,
    chunk_size: int | None = None,
) -> SimulationResult | DataInsufficientError:
    """How many items finish within ``weeks`` weeks."""
    _require_positive(weeks=weeks, trials=trials)
    insufficient = check_pool(pool)
    if insufficient is not None:
        return insufficient
    values = _pool_values(pool)
    gen = rng if rng is not None else np.random.default_rng()

    outcomes = []
    for size in _chunks(trials, chunk_size or SETTINGS.trial_chunk_size):
        _check_cancelled(is_cancelled)
        draws = gen.choice(values, size=(size, weeks), replace=True)
        outcomes.append(draws.sum(axis=1))
    distribution = np.sort(np.concatenate(outcomes))
    return SimulationResult(
        mode=HOW_MANY,
        distribution=tuple(int(v) for v in distribution),
        confidence_levels=_levels(distribution, exceedance_percentile),
        trials=trials,
    )


def simulate_when(
    pool: Pool,
    target_items: int,
    trials: int = DEFAULT_TRIALS,
    *,
    rng: np.random.Generator | None = None,
    max_weeks: int = WHEN_MAX_WEEKS,
    is_cancelled: CancelCheck | None = None,
    chunk_size: int | None = None,
) -> SimulationResult | DataInsufficientError:
    """How many weeks until ``target_items`` items finish.

    A trial that has not reached the target after ``max_weeks`` draws is
    recorded at the cap and counted in ``capped_trials``.
    """
    _require_positive(target_items=target_items, trials=trials, max_weeks=max_weeks)
    insufficient = check_pool(pool)
    if insufficient is not None:
        return insufficient
    values = _pool_values(pool)
    gen = rng if rng is not None else np.random.default_rng()

    outcomes = []
    capped = 0
    for size in _chunks(trials, chunk_size or SETTINGS.trial_chunk_size):
        _check_cancelled(is_cancelled)
        draws = gen.choice(values, size=(size, max_weeks), replace=True)
        reached = np.cumsum(draws, axis=1) >= target_items
        hit = reached.any(axis=1)
        outcomes.append(np.where(hit, reached.argmax(axis=1) + 1, max_weeks))
        capped += int((~hit).sum())
    distribution = np.sort(np.concatenate(outcomes))

    warnings: list[str] = []
    if capped and capped / trials > WHEN_CAP_WARNING_RATIO:
        logger.warning(
            "%s of %s forecast trials hit the %s-week cap for %s items",
            capped,
            trials,
            max_weeks,
            target_items,
        )
        warnings.append(
            f"{FORECAST_CAP_REACHED}: {capped} of {trials} trials did not reach {target_items} items "
            f"within {max_weeks} weeks; the history may not support this target"
        )
    return SimulationResult(
        mode=WHEN,
        distribution=tuple(int(v) for v in distribution),
        confidence_levels=_levels(distribution, percentile),
        trials=trials,
        capped_trials=capped,
        warnings=tuple(warnings),
    )


def run_forecast(
    pool: Pool,
    weeks: int,
    target_items: int,
    trials: int = DEFAULT_TRIALS,
    *,
    rng: np.random.Generator | None = None,
    is_cancelled: CancelCheck | None = None,
) -> ForecastResult | DataInsufficientError:
    """Run both forecast modes over the same pool.

    Returns a single ``DataInsufficientError`` without running any trial when
    the pool is too small or has no positive week.
    """
    _require_positive(weeks=weeks, target_items=target_items, trials=trials)
    insufficient = check_pool(pool)
    if insufficient is not None:
        logger.info("Forecast skipped: %s", insufficient.message)
        return insufficient
    gen = rng if rng is not None else np.random.default_rng()
    how_many = simulate_how_many(pool, weeks, trials, rng=gen, is_cancelled=is_cancelled)
    when = simulate_when(pool, target_items, trials, rng=gen, is_cancelled=is_cancelled)
    return ForecastResult(
        how_many=how_many,
        when=when,
        pool=tuple(int(v) for v in _pool_values(pool)),
        weeks=weeks,
        target_items=target_items,
    )


def distribution_frequencies(result: SimulationResult) -> pd.DataFrame:
    """Outcome histogram rows (``value``, ``frequency``) in ascending order."""
    if not result.distribution:
        return pd.DataFrame(columns=["value", "frequency"])
    counts = pd.Series(result.distribution).value_counts().sort_index()
    return pd.DataFrame({"value": counts.index.astype(int), "frequency": counts.to_numpy(dtype=int)})
