"""Statistical helpers shared by the simulator and the distribution layer.

Bootstrap index sampling, the upper-middle median used for per-period
aggregation, and descriptive statistics of a terminal distribution.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np
from scipy import stats

if TYPE_CHECKING:
    from numpy.typing import NDArray


@dataclass(frozen=True)
class DistributionSummary:
    """Descriptive statistics of a set of terminal values."""

    count: int
    mean: float
    median: float
    std: float
    minimum: float
    maximum: float
    skewness: float

    def to_dict(self) -> dict[str, float | int]:
        """Return the summary as a plain dict."""
        return {
            "count": self.count,
            "mean": self.mean,
            "median": self.median,
            "std": self.std,
            "min": self.minimum,
            "max": self.maximum,
            "skewness": self.skewness,
        }


def bootstrap_indices(
    n_returns: int,
    n_samples: int,
    n_periods: int,
    rng: np.random.Generator,
) -> NDArray[np.int64]:
    """Draw return indices uniformly with replacement.

    Args:
        n_returns: Length of the return series being sampled.
        n_samples: Number of paths.
        n_periods: Draws per path.
        rng: Generator owned by the caller.

    Returns:
        Integer array of shape (n_samples, n_periods), values in [0, n_returns).

    Raises:
        ValueError: If n_returns is not positive.

    """
    if n_returns <= 0:
        msg = "historical_returns must not be empty"
        raise ValueError(msg)
    return rng.integers(0, n_returns, size=(n_samples, n_periods))


def upper_median(values: NDArray[np.float64], axis: int = 0) -> NDArray[np.float64]:
    """Select the element at index ``floor(n / 2)`` of the sorted values.

    For even ``n`` this is the upper of the two middle elements; the two are
    never averaged. Uses ``np.partition`` so each slice costs O(n) rather
    than a full sort.

    Args:
        values: Input array.
        axis: Axis along which to take the median.

    Returns:
        Array with ``axis`` removed.

    """
    n = values.shape[axis]
    if n == 0:
        msg = "cannot take the median of an empty axis"
        raise ValueError(msg)
    kth = n // 2
    return np.take(np.partition(values, kth, axis=axis), kth, axis=axis)


def describe(values: NDArray[np.float64]) -> DistributionSummary:
    """Summarize a distribution with scipy.stats.describe.

    Skewness is reported as 0.0 for a constant distribution, where it is
    undefined.

    Args:
        values: Non-empty array of observations.

    Returns:
        DistributionSummary. ``median`` follows the upper-middle convention.

    """
    desc = stats.describe(values)
    std = float(np.sqrt(desc.variance)) if desc.nobs > 1 else 0.0
    skew = float(desc.skewness) if np.isfinite(desc.skewness) else 0.0
    return DistributionSummary(
        count=int(desc.nobs),
        mean=float(desc.mean),
        median=float(upper_median(values)),
        std=std,
        minimum=float(desc.minmax[0]),
        maximum=float(desc.minmax[1]),
        skewness=skew,
    )
