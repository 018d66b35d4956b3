"""Background execution of forecasts with last-writer-wins semantics.

Each submission takes the next sequence number. Only a run whose number is
still the latest issued when it finishes may replace the accepted result;
anything older is discarded. Superseded runs are cancelled if still queued,
or stop at their next chunk boundary if already running.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from dataclasses import dataclass

from flow_app.analytics.forecast.monte_carlo import Pool, run_forecast
from flow_app.core.config import DEFAULT_TRIALS, SETTINGS
from flow_app.core.errors import DataInsufficientError, SimulationCancelled
from flow_app.core.models import ForecastResult

logger = logging.getLogger(__name__)

ForecastOutcome = ForecastResult | DataInsufficientError
ForecastFn = Callable[..., ForecastOutcome]


@dataclass(frozen=True, slots=True)
class ForecastRequest:
    pool: tuple[int, ...]
    weeks: int
    target_items: int
    trials: int = DEFAULT_TRIALS


@dataclass(frozen=True, slots=True)
class AcceptedForecast:
    sequence: int
    request: ForecastRequest
    outcome: ForecastOutcome


@dataclass(frozen=True, slots=True)
class ForecastTicket:
    sequence: int
    future: Future  # resolves to the outcome, or None when superseded

    def result(self, timeout: float | None = None) -> ForecastOutcome | None:
        try:
            return self.future.result(timeout=timeout)
        except CancelledError:
            return None


class ForecastRunner:
    def __init__(self, max_workers: int | None = None, forecast: ForecastFn = run_forecast):
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers or SETTINGS.forecast_workers,
            thread_name_prefix="forecast",
        )
        self._forecast = forecast
        self._lock = threading.Lock()
        self._sequence = 0
        self._latest: AcceptedForecast | None = None
        self._pending: dict[int, Future] = {}

    @property
    def latest_sequence(self) -> int:
        return self._sequence

    @property
    def latest(self) -> AcceptedForecast | None:
        return self._latest

    def is_current(self, sequence: int) -> bool:
        return sequence == self._sequence

    def submit(self, pool: Pool, weeks: int, target_items: int, trials: int = DEFAULT_TRIALS) -> ForecastTicket:
        request = ForecastRequest(
            pool=tuple(int(v) for v in (pool.pool if hasattr(pool, "pool") else pool)),
            weeks=weeks,
            target_items=target_items,
            trials=trials,
        )
        with self._lock:
            self._sequence += 1
            sequence = self._sequence
            superseded = list(self._pending.items())
            future = self._executor.submit(self._run, sequence, request)
            self._pending[sequence] = future
        # cancel() runs done-callbacks inline, and _forget takes the lock.
        for older, fut in superseded:
            if fut.cancel():
                logger.debug("Cancelled queued forecast #%s", older)
        future.add_done_callback(lambda _f, seq=sequence: self._forget(seq))
        return ForecastTicket(sequence=sequence, future=future)

    def pending(self, sequence: int) -> bool:
        """True while the run with ``sequence`` is queued or executing."""
        with self._lock:
            fut = self._pending.get(sequence)
        return fut is not None and not fut.done()

    def _forget(self, sequence: int) -> None:
        with self._lock:
            self._pending.pop(sequence, None)

    def _run(self, sequence: int, request: ForecastRequest) -> ForecastOutcome | None:
        if not self.is_current(sequence):
            logger.debug("Skipping superseded forecast #%s", sequence)
            return None
        try:
            outcome = self._forecast(
                request.pool,
                request.weeks,
                request.target_items,
                request.trials,
                is_cancelled=lambda: not self.is_current(sequence),
            )
        except SimulationCancelled:
            logger.debug("Forecast #%s cancelled by a newer run", sequence)
            return None
        with self._lock:
            if sequence != self._sequence:
                logger.debug("Discarding stale forecast #%s (latest is #%s)", sequence, self._sequence)
                return None
            self._latest = AcceptedForecast(sequence=sequence, request=request, outcome=outcome)
        return outcome

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait, cancel_futures=True)
