"""Interactive simulation session with last-request-wins semantics.

A session owns the loaded price history (and its cached log-returns) and
the result of the most recent completed simulation. Requests run on a
single background worker. Submitting a new request cancels the token of
the one in flight, so a user who resubmits inputs only ever sees the
newest result; superseded requests end with BatchCancelled.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import TYPE_CHECKING, Any

from growthsim.analysis.returns import PricePoint, log_returns
from growthsim.config import EngineConfig
from growthsim.errors import (
    BatchCancelled,
    EmptyDistributionQuery,
    InsufficientDataError,
    InvalidParameters,
)
from growthsim.simulation.monte_carlo import SimulationResult, run_simulation
from growthsim.simulation.parameters import SimulationParameters

if TYPE_CHECKING:
    from collections.abc import Sequence

    import numpy as np
    from numpy.typing import NDArray

    from growthsim.analysis.distribution import Comparison, HistogramBucket, Inference
    from growthsim.analysis.statistics import DistributionSummary
    from growthsim.simulation.aggregate import AggregatedSeries, AggregationMode

logger = logging.getLogger(__name__)


class SimulationSession:
    """Holds price history and the latest result for one interactive user."""

    def __init__(self, config: EngineConfig | None = None) -> None:
        self.config = config or EngineConfig()
        self._lock = threading.Lock()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="growthsim")
        self._prices: list[PricePoint] = []
        self._returns: NDArray[np.float64] | None = None
        self._latest: SimulationResult | None = None
        self._cancel: threading.Event | None = None
        self._generation = 0

    def __enter__(self) -> SimulationSession:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Cancel any in-flight request and stop the worker."""
        with self._lock:
            if self._cancel is not None:
                self._cancel.set()
        self._executor.shutdown(wait=True)

    # -- price history -----------------------------------------------------

    def load_prices(self, prices: Sequence[PricePoint]) -> int:
        """Replace the price history and cache its log-returns.

        Args:
            prices: Price points in chronological order.

        Returns:
            Number of derived returns.

        Raises:
            DataFault: If the history is malformed or has fewer than 2 points.

        """
        returns = log_returns(prices)
        with self._lock:
            self._prices = list(prices)
            self._returns = returns
        logger.info("Loaded %d price points (%d returns)", len(prices), len(returns))
        return len(returns)

    @property
    def prices(self) -> list[PricePoint]:
        """The loaded price history."""
        return list(self._prices)

    # -- simulation ---------------------------------------------------------

    def submit(
        self,
        principal: float,
        periodic_contribution: float,
        horizon_periods: int,
        n_paths: int | None = None,
        seed: int | None = None,
    ) -> Future[SimulationResult]:
        """Queue a simulation, superseding any request still in flight.

        Parameters are validated here, before anything is queued.

        Returns:
            Future resolving to the SimulationResult, or raising
            BatchCancelled if a newer request supersedes it.

        Raises:
            InvalidParameters: If the parameters are out of range.
            InsufficientDataError: If no price history is loaded.

        """
        params = SimulationParameters(
            principal=principal,
            periodic_contribution=periodic_contribution,
            horizon_periods=horizon_periods,
        )
        params.check_horizon(self.config.max_horizon_periods)
        if n_paths is not None and (isinstance(n_paths, bool) or n_paths < 1):
            msg = f"n_paths must be >= 1, got {n_paths}"
            raise InvalidParameters(msg)

        with self._lock:
            if self._returns is None:
                msg = "no price history loaded"
                raise InsufficientDataError(msg)
            if self._cancel is not None:
                self._cancel.set()
            token = threading.Event()
            self._cancel = token
            self._generation += 1
            generation = self._generation
            returns = self._returns

        return self._executor.submit(
            self._run, generation, token, returns, params, n_paths, seed
        )

    def _run(  # noqa: PLR0913
        self,
        generation: int,
        token: threading.Event,
        returns: NDArray[np.float64],
        params: SimulationParameters,
        n_paths: int | None,
        seed: int | None,
    ) -> SimulationResult:
        if token.is_set():
            msg = "batch superseded by a newer request"
            raise BatchCancelled(msg)

        result = run_simulation(
            principal=params.principal,
            periodic_contribution=params.periodic_contribution,
            horizon_periods=params.horizon_periods,
            returns=returns,
            n_paths=n_paths,
            seed=seed,
            config=self.config,
            cancel=token,
        )

        with self._lock:
            if generation != self._generation:
                logger.debug("Discarding result of superseded request %d", generation)
                msg = "batch superseded by a newer request"
                raise BatchCancelled(msg)
            self._latest = result
        return result

    def run(
        self,
        principal: float,
        periodic_contribution: float,
        horizon_periods: int,
        n_paths: int | None = None,
        seed: int | None = None,
    ) -> SimulationResult:
        """Submit a simulation and wait for its result."""
        return self.submit(
            principal, periodic_contribution, horizon_periods, n_paths, seed
        ).result()

    # -- queries against the latest result -----------------------------------

    @property
    def latest(self) -> SimulationResult:
        """The most recent completed result.

        Raises:
            EmptyDistributionQuery: If no simulation has completed yet.

        """
        with self._lock:
            result = self._latest
        if result is None:
            raise EmptyDistributionQuery
        return result

    def series(self, mode: AggregationMode | str) -> AggregatedSeries:
        """Mean or median series of the latest result."""
        return self.latest.series(mode)

    def value_at_percentile(self, percentile: float, comparison: Comparison | str) -> float:
        """Cutoff value of the latest distribution."""
        return self.latest.distribution.value_at_percentile(percentile, comparison)

    def probability_for(self, value: float, comparison: Comparison | str) -> float:
        """Tail probability of ``value`` in the latest distribution."""
        return self.latest.distribution.probability_for(value, comparison)

    def reconcile(self, probability: float, comparison: Comparison | str) -> Inference:
        """Probability-to-value query with the configured tolerance."""
        return self.latest.distribution.reconcile(
            probability, comparison, tolerance=self.config.reconcile_tolerance
        )

    def histogram(self, max_buckets: int | None = None) -> list[HistogramBucket]:
        """IQR-trimmed histogram of the latest distribution."""
        buckets = self.config.histogram_buckets if max_buckets is None else max_buckets
        return self.latest.distribution.histogram(buckets)

    def summary(self) -> DistributionSummary:
        """Descriptive statistics of the latest distribution."""
        return self.latest.distribution.summary()

    def describe_latest(self) -> dict[str, Any]:
        """Headline numbers plus distribution summary of the latest result."""
        result = self.latest
        return {**result.headline(), "summary": result.distribution.summary().to_dict()}
