"""Terminal-value distribution and its percentile/probability queries.

The analyzer keeps one ascending-sorted copy of the terminal values and
answers two inverse questions against it:

* ``value_at_percentile`` -- which portfolio value is the cutoff for the
  lower (``at_most``) or upper (``at_least``) ``p`` percent of outcomes;
* ``probability_for`` -- what percent of outcomes land at or below (or
  above) a given value.

The two cutoffs are asymmetric. ``at_most`` uses
``floor(n * p) - 1`` and ``at_least`` uses ``floor(n * (1 - p))``, which
keeps ``probability_for(value_at_percentile(p))`` consistent at the
boundary index. :meth:`DistributionAnalyzer.reconcile` applies the
follow-up check for flat runs of identical values, where the recomputed
probability can differ a lot from the requested one.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

import numpy as np

from growthsim.analysis.statistics import DistributionSummary, describe
from growthsim.config import DEFAULT_HISTOGRAM_BUCKETS, DEFAULT_RECONCILE_TOLERANCE
from growthsim.errors import EmptyDistributionQuery

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from growthsim.simulation.batch import SimulationBatch

# Tukey fences for outlier trimming
_Q1 = 0.25
_Q3 = 0.75
_IQR_MULTIPLIER = 1.5


class Comparison(Enum):
    """Which tail of the distribution a query refers to."""

    AT_MOST = "at_most"
    AT_LEAST = "at_least"

    @classmethod
    def _missing_(cls, value: object) -> Comparison | None:
        aliases = {
            "<": cls.AT_MOST,
            "<=": cls.AT_MOST,
            "atmost": cls.AT_MOST,
            ">": cls.AT_LEAST,
            ">=": cls.AT_LEAST,
            "atleast": cls.AT_LEAST,
        }
        if isinstance(value, str):
            return aliases.get(value.strip().lower().replace("_", ""))
        return None


@dataclass(frozen=True)
class HistogramBucket:
    """One equal-width histogram bucket.

    Attributes:
        lower: Inclusive lower edge.
        upper: Upper edge (exclusive, except for the last bucket).
        count: Number of trimmed values in the bucket.
        frequency: ``count`` divided by the number of trimmed values.

    """

    lower: float
    upper: float
    count: int
    frequency: float

    def to_dict(self) -> dict[str, float | int]:
        """Return the bucket as a plain dict."""
        return {
            "lower": self.lower,
            "upper": self.upper,
            "count": self.count,
            "frequency": self.frequency,
        }


@dataclass(frozen=True)
class Inference:
    """Result of a probability-to-value query after reconciliation.

    Attributes:
        value: Portfolio value at the requested percentile.
        probability: Probability to report, in percent.
        comparison: Tail the query refers to.
        reconciled: True if the supplied probability was replaced by the
            one recomputed from ``value``.

    """

    value: float
    probability: float
    comparison: Comparison
    reconciled: bool

    def to_dict(self) -> dict[str, Any]:
        """Return the inference as a plain dict."""
        return {
            "value": self.value,
            "probability": self.probability,
            "comparison": self.comparison.value,
            "reconciled": self.reconciled,
        }


class DistributionAnalyzer:
    """Sorted terminal values plus the queries answered against them."""

    def __init__(self, values: Sequence[float] | NDArray[np.float64]) -> None:
        """Sort and freeze the given terminal values.

        Args:
            values: Terminal values in any order. May be empty, in which
                case every query raises EmptyDistributionQuery.

        """
        arr = np.sort(np.asarray(values, dtype=np.float64).ravel())
        arr.flags.writeable = False
        self._values = arr

    @classmethod
    def from_batch(cls, batch: SimulationBatch) -> DistributionAnalyzer:
        """Build the analyzer from the final period of every trajectory."""
        return cls(batch.terminal_values)

    @property
    def values(self) -> NDArray[np.float64]:
        """Read-only ascending terminal values."""
        return self._values

    def __len__(self) -> int:
        return len(self._values)

    def _require_values(self) -> int:
        n = len(self._values)
        if n == 0:
            raise EmptyDistributionQuery
        return n

    def value_at_percentile(
        self,
        percentile: float,
        comparison: Comparison | str = Comparison.AT_MOST,
    ) -> float:
        """Return the cutoff value for a tail probability.

        Args:
            percentile: Tail probability in percent, 0 to 100.
            comparison: ``at_most`` for the lower tail, ``at_least`` for
                the upper tail.

        Returns:
            ``values[target]`` with target clamped into ``[0, n - 1]``.

        Raises:
            EmptyDistributionQuery: If the distribution is empty.
            ValueError: If percentile is not within [0, 100].

        """
        n = self._require_values()
        if not (math.isfinite(percentile) and 0.0 <= percentile <= 100.0):  # noqa: PLR2004
            msg = f"percentile must be within [0, 100], got {percentile}"
            raise ValueError(msg)

        if Comparison(comparison) is Comparison.AT_MOST:
            target = math.floor(n * percentile / 100.0) - 1
        else:
            target = math.floor(n * (100.0 - percentile) / 100.0)
        target = min(max(target, 0), n - 1)
        return float(self._values[target])

    def probability_for(
        self,
        value: float,
        comparison: Comparison | str = Comparison.AT_MOST,
    ) -> float:
        """Return the percent of outcomes on one side of ``value``.

        Counts elements ``<= value`` with a binary search.

        Args:
            value: Portfolio value to test.
            comparison: ``at_most`` returns ``count / n * 100``;
                ``at_least`` returns its complement.

        Returns:
            Probability in percent, rounded to 2 decimals.

        Raises:
            EmptyDistributionQuery: If the distribution is empty.
            ValueError: If value is not finite.

        """
        n = self._require_values()
        if not math.isfinite(value):
            msg = f"value must be finite, got {value}"
            raise ValueError(msg)
        count = int(np.searchsorted(self._values, value, side="right"))
        below = count / n * 100.0
        if Comparison(comparison) is Comparison.AT_MOST:
            return round(below, 2)
        return round(100.0 - below, 2)

    def reconcile(
        self,
        probability: float,
        comparison: Comparison | str = Comparison.AT_MOST,
        tolerance: float = DEFAULT_RECONCILE_TOLERANCE,
    ) -> Inference:
        """Derive a value from a probability and check it round-trips.

        The value at ``probability`` is looked up, then the probability of
        that value is recomputed. If the two differ by more than
        ``tolerance`` (relative to the supplied probability), the
        recomputed probability is reported instead. A supplied probability
        of zero is replaced whenever the recomputed one is non-zero.

        Args:
            probability: Requested tail probability in percent.
            comparison: Tail the probability refers to.
            tolerance: Allowed relative difference.

        Returns:
            Inference with the value and the probability to report.

        Raises:
            EmptyDistributionQuery: If the distribution is empty.
            ValueError: If probability is not within [0, 100].

        """
        comparison = Comparison(comparison)
        value = self.value_at_percentile(probability, comparison)
        recomputed = self.probability_for(value, comparison)

        if probability == 0:
            drifted = recomputed != 0
        else:
            drifted = abs(probability - recomputed) / probability > tolerance

        return Inference(
            value=value,
            probability=recomputed if drifted else probability,
            comparison=comparison,
            reconciled=drifted,
        )

    def quartile_bounds(self) -> tuple[float, float]:
        """Return the Tukey fences ``(Q1 - 1.5 IQR, Q3 + 1.5 IQR)``.

        Quartiles are taken at indices ``floor(n * 0.25)`` and
        ``floor(n * 0.75)`` of the sorted values.

        Raises:
            EmptyDistributionQuery: If the distribution is empty.

        """
        n = self._require_values()
        q1 = float(self._values[math.floor(n * _Q1)])
        q3 = float(self._values[math.floor(n * _Q3)])
        iqr = q3 - q1
        return q1 - _IQR_MULTIPLIER * iqr, q3 + _IQR_MULTIPLIER * iqr

    def trimmed(self) -> NDArray[np.float64]:
        """Values inside the Tukey fences, still sorted."""
        lower, upper = self.quartile_bounds()
        mask = (self._values >= lower) & (self._values <= upper)
        return self._values[mask]

    def histogram(self, max_buckets: int = DEFAULT_HISTOGRAM_BUCKETS) -> list[HistogramBucket]:
        """Bin the outlier-trimmed values into equal-width buckets.

        The bucket count is ``max_buckets`` unless the trimmed range is
        narrower than that, in which case it drops to the integer width of
        the range (at least one bucket). Each value falls in bucket
        ``floor((v - min) / width)``; the maximum goes to the last bucket.

        Args:
            max_buckets: Upper bound on the number of buckets.

        Returns:
            Buckets in ascending order. Frequencies sum to 1.

        Raises:
            EmptyDistributionQuery: If the distribution is empty.
            ValueError: If max_buckets is not positive.

        """
        if max_buckets < 1:
            msg = f"max_buckets must be >= 1, got {max_buckets}"
            raise ValueError(msg)

        kept = self.trimmed()
        lo = float(kept[0])
        hi = float(kept[-1])
        span = hi - lo

        n_buckets = max_buckets
        if span < max_buckets:
            n_buckets = max(1, math.floor(span))

        if span == 0:
            counts = np.array([len(kept)], dtype=np.int64)
            edges = np.array([lo, hi], dtype=np.float64)
        else:
            width = span / n_buckets
            idx = np.floor((kept - lo) / width).astype(np.int64)
            np.clip(idx, 0, n_buckets - 1, out=idx)
            counts = np.bincount(idx, minlength=n_buckets)
            edges = lo + width * np.arange(n_buckets + 1, dtype=np.float64)
            edges[-1] = hi

        total = len(kept)
        return [
            HistogramBucket(
                lower=float(edges[i]),
                upper=float(edges[i + 1]),
                count=int(counts[i]),
                frequency=float(counts[i]) / total,
            )
            for i in range(len(counts))
        ]

    def summary(self) -> DistributionSummary:
        """Descriptive statistics of the terminal values.

        Raises:
            EmptyDistributionQuery: If the distribution is empty.

        """
        self._require_values()
        return describe(self._values)
