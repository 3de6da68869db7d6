"""Single- and multi-path bootstrap simulation.

Each step draws one historical log-return with replacement, converts it to
a growth multiplier, and applies::

    value[t + 1] = value[t] * exp(r) + periodic_contribution

Values are never clamped at zero. A withdrawal plan that depletes the
portfolio keeps going negative, and that outcome stays visible in the
distribution.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from growthsim.analysis.statistics import bootstrap_indices

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from growthsim.simulation.parameters import SimulationParameters


@dataclass(frozen=True)
class Trajectory:
    """One simulated portfolio path.

    Attributes:
        period_index: Periods 0..H.
        values: Portfolio value at each period; ``values[0]`` is the principal.

    """

    period_index: NDArray[np.int64]
    values: NDArray[np.float64]

    def __len__(self) -> int:
        return len(self.values)

    @property
    def terminal_value(self) -> float:
        """Value at the final period."""
        return float(self.values[-1])


def _compound(
    principal: float,
    contribution: float,
    multipliers: NDArray[np.float64],
) -> NDArray[np.float64]:
    """Roll values forward through a (n_paths, n_periods) multiplier matrix."""
    n_paths, n_periods = multipliers.shape
    values = np.empty((n_paths, n_periods + 1), dtype=np.float64)
    values[:, 0] = principal
    for t in range(n_periods):
        values[:, t + 1] = values[:, t] * multipliers[:, t] + contribution
    return values


def simulate_path(
    returns: NDArray[np.float64],
    params: SimulationParameters,
    rng: np.random.Generator | None = None,
    indices: NDArray[np.int64] | None = None,
) -> Trajectory:
    """Simulate one trajectory.

    Args:
        returns: Historical log-returns to sample from.
        params: Principal, contribution and horizon.
        rng: Generator used for the index draws. A fresh unseeded one is
            created when omitted.
        indices: Pre-drawn return indices of length ``horizon_periods``.
            When given, ``rng`` is ignored and the result is fully
            determined by the inputs.

    Returns:
        Trajectory of length ``horizon_periods + 1``.

    Raises:
        ValueError: If returns is empty or indices has the wrong length
            or falls outside the return series.

    """
    horizon = params.horizon_periods
    if indices is None:
        if rng is None:
            rng = np.random.default_rng()
        draws = bootstrap_indices(len(returns), 1, horizon, rng)
    else:
        draws = np.asarray(indices, dtype=np.int64).reshape(1, -1)
        if draws.shape[1] != horizon:
            msg = f"indices must have length {horizon}, got {draws.shape[1]}"
            raise ValueError(msg)
        if draws.size and (draws.min() < 0 or draws.max() >= len(returns)):
            msg = f"indices must lie in [0, {len(returns)})"
            raise ValueError(msg)

    multipliers = np.exp(np.asarray(returns, dtype=np.float64)[draws])
    values = _compound(params.principal, params.periodic_contribution, multipliers)[0]
    return Trajectory(period_index=np.arange(horizon + 1, dtype=np.int64), values=values)


def simulate_paths(
    returns: NDArray[np.float64],
    params: SimulationParameters,
    n_paths: int,
    rng: np.random.Generator,
) -> NDArray[np.float64]:
    """Simulate many trajectories at once with a single generator.

    Vectorized over paths: the same update rule as :func:`simulate_path`,
    applied to every row of an index matrix.

    Args:
        returns: Historical log-returns to sample from.
        params: Principal, contribution and horizon.
        n_paths: Number of trajectories.
        rng: Generator owned by this call.

    Returns:
        Array of shape (n_paths, horizon_periods + 1).

    """
    draws = bootstrap_indices(len(returns), n_paths, params.horizon_periods, rng)
    multipliers = np.exp(np.asarray(returns, dtype=np.float64)[draws])
    return _compound(params.principal, params.periodic_contribution, multipliers)
