"""Monte Carlo pipeline.

Runs the full request: validate parameters, derive log-returns, simulate
the batch, reduce it to mean/median series and a sorted terminal
distribution, then release the batch. Default: 10,000 paths.

Only the derived products are kept. The (n_paths, horizon + 1) matrix is
dropped before returning.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import numpy as np

from growthsim.analysis.distribution import DistributionAnalyzer
from growthsim.analysis.returns import PricePoint, log_returns
from growthsim.config import EngineConfig
from growthsim.simulation.aggregate import (
    AggregatedSeries,
    AggregationMode,
    mean_series,
    median_series,
)
from growthsim.simulation.batch import run_batch
from growthsim.simulation.parameters import SimulationParameters

if TYPE_CHECKING:
    from numpy.typing import NDArray

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SimulationResult:
    """Derived products of one simulation request.

    Attributes:
        parameters: The request that produced this result.
        n_paths: Number of simulated trajectories.
        mean: Per-period mean trajectory.
        median: Per-period upper-middle median trajectory.
        distribution: Sorted terminal values and their queries.

    """

    parameters: SimulationParameters
    n_paths: int
    mean: AggregatedSeries
    median: AggregatedSeries
    distribution: DistributionAnalyzer

    def series(self, mode: AggregationMode | str) -> AggregatedSeries:
        """Return the aggregated series for ``mode``."""
        if AggregationMode(mode) is AggregationMode.MEAN:
            return self.mean
        return self.median

    def headline(self) -> dict[str, Any]:
        """Final mean and median portfolio values with the request inputs."""
        return {
            "principal": self.parameters.principal,
            "periodic_contribution": self.parameters.periodic_contribution,
            "horizon_periods": self.parameters.horizon_periods,
            "n_paths": self.n_paths,
            "mean_final_value": self.mean.final_value,
            "median_final_value": self.median.final_value,
        }


def run_simulation(  # noqa: PLR0913
    principal: float,
    periodic_contribution: float,
    horizon_periods: int,
    prices: Sequence[PricePoint] | Sequence[float] | None = None,
    returns: NDArray[np.float64] | None = None,
    n_paths: int | None = None,
    seed: int | None = None,
    config: EngineConfig | None = None,
    cancel: threading.Event | None = None,
) -> SimulationResult:
    """Run a bootstrap Monte Carlo simulation end to end.

    Provide either ``prices`` or pre-computed ``returns``. Parameters are
    validated before any return derivation or sampling happens.

    Args:
        principal: Starting portfolio value.
        periodic_contribution: Amount added each month (negative withdraws).
        horizon_periods: Number of monthly steps.
        prices: Historical prices in chronological order.
        returns: Pre-computed log-returns; used instead of ``prices``.
        n_paths: Trajectory count. Defaults to ``config.n_paths``.
        seed: Random seed for reproducibility.
        config: Engine settings. Defaults to ``EngineConfig()``.
        cancel: Cancellation token forwarded to the batch.

    Returns:
        SimulationResult holding mean/median series and the distribution.

    Raises:
        InvalidParameters: If the parameters are out of range.
        DataFault: If the price history is malformed or too short.
        ValueError: If neither prices nor returns is given.
        BatchCancelled: If ``cancel`` is set before the batch completes.

    """
    cfg = config or EngineConfig()
    params = SimulationParameters(
        principal=principal,
        periodic_contribution=periodic_contribution,
        horizon_periods=horizon_periods,
    )
    params.check_horizon(cfg.max_horizon_periods)
    paths = cfg.n_paths if n_paths is None else n_paths

    if returns is None:
        if prices is None:
            msg = "Provide either prices or returns"
            raise ValueError(msg)
        returns = log_returns(prices)

    logger.info(
        "Simulating %d paths over %d periods (principal=%s, contribution=%s)",
        paths,
        params.horizon_periods,
        params.principal,
        params.periodic_contribution,
    )
    started = time.perf_counter()

    batch = run_batch(
        returns,
        params,
        n_paths=paths,
        seed=seed,
        workers=cfg.resolved_workers,
        chunk_size=cfg.chunk_size,
        cancel=cancel,
    )
    result = SimulationResult(
        parameters=params,
        n_paths=len(batch),
        mean=mean_series(batch),
        median=median_series(batch),
        distribution=DistributionAnalyzer.from_batch(batch),
    )
    del batch

    logger.info(
        "Simulation finished in %.3fs (mean final %.2f, median final %.2f)",
        time.perf_counter() - started,
        result.mean.final_value,
        result.median.final_value,
    )
    return result
