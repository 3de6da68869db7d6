"""Per-period reduction of a batch into representative trajectories."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

import numpy as np

from growthsim.analysis.statistics import upper_median

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from growthsim.simulation.batch import SimulationBatch

_PERIODS_PER_YEAR = 12


class AggregationMode(Enum):
    """Supported per-period reductions."""

    MEAN = "mean"
    MEDIAN = "median"


@dataclass(frozen=True)
class AggregatedSeries:
    """One value per period, reduced across all trajectories.

    Attributes:
        mode: Reduction used.
        period_index: Periods 0..H.
        values: Reduced value at each period.

    """

    mode: AggregationMode
    period_index: NDArray[np.int64]
    values: NDArray[np.float64]

    def __len__(self) -> int:
        return len(self.values)

    @property
    def final_value(self) -> float:
        """Reduced value at the last period."""
        return float(self.values[-1])

    def yearly(self) -> list[dict[str, Any]]:
        """Points that fall on whole years (every 12th period).

        Returns:
            List of dicts with keys: year, value.

        """
        return [
            {"year": int(p) // _PERIODS_PER_YEAR, "value": float(v)}
            for p, v in zip(self.period_index, self.values)
            if p % _PERIODS_PER_YEAR == 0
        ]

    def to_records(self) -> list[dict[str, Any]]:
        """Return the series as a list of {period, value} dicts."""
        return [
            {"period": int(p), "value": float(v)}
            for p, v in zip(self.period_index, self.values)
        ]


def mean_series(batch: SimulationBatch) -> AggregatedSeries:
    """Arithmetic mean of each period across trajectories."""
    return AggregatedSeries(
        mode=AggregationMode.MEAN,
        period_index=batch.period_index,
        values=batch.values.mean(axis=0),
    )


def median_series(batch: SimulationBatch) -> AggregatedSeries:
    """Upper-middle median of each period across trajectories.

    For an even number of trajectories the element at index ``N // 2`` of
    the sorted cross-section is taken, with no interpolation.
    """
    return AggregatedSeries(
        mode=AggregationMode.MEDIAN,
        period_index=batch.period_index,
        values=upper_median(batch.values, axis=0),
    )


def aggregate(batch: SimulationBatch, mode: AggregationMode | str) -> AggregatedSeries:
    """Reduce a batch with the requested mode.

    Args:
        batch: Completed simulation batch.
        mode: AggregationMode or its string value ("mean", "median").

    Returns:
        AggregatedSeries of length ``batch.n_periods``.

    Raises:
        ValueError: If mode is not recognized.

    """
    mode = AggregationMode(mode)
    if mode is AggregationMode.MEAN:
        return mean_series(batch)
    return median_series(batch)
