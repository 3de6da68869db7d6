"""Return series derivation.

Converts an ordered historical price sequence into the monthly log-returns
that the bootstrap sampler draws from.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING

import numpy as np

from growthsim.errors import DataFault, InsufficientDataError

if TYPE_CHECKING:
    from numpy.typing import NDArray


@dataclass(frozen=True)
class PricePoint:
    """A single historical observation.

    Attributes:
        timestamp: Observation date.
        price: Closing price. Must be positive.

    """

    timestamp: date
    price: float


def validate_prices(points: Sequence[PricePoint]) -> None:
    """Check ordering and positivity of a price history.

    Args:
        points: Price points in chronological order.

    Raises:
        DataFault: If a price is non-positive or non-finite, or if
            timestamps are not strictly increasing.

    """
    previous: date | None = None
    for i, point in enumerate(points):
        if not math.isfinite(point.price) or point.price <= 0:
            msg = f"price must be positive at index {i} ({point.timestamp}), got {point.price}"
            raise DataFault(msg)
        if previous is not None and point.timestamp <= previous:
            msg = (
                f"timestamps must be strictly increasing: {point.timestamp} "
                f"at index {i} follows {previous}"
            )
            raise DataFault(msg)
        previous = point.timestamp


def log_returns(prices: Sequence[PricePoint] | Sequence[float]) -> NDArray[np.float64]:
    """Compute period-over-period log-returns.

    Element ``i`` of the result is ``ln(price[i+1] / price[i])``. Bare floats
    are taken to be already in chronological order.

    Args:
        prices: Price points (or bare prices) in chronological order.
            Must have at least 2 elements.

    Returns:
        Read-only array of length ``len(prices) - 1``.

    Raises:
        InsufficientDataError: If fewer than 2 prices are given.
        DataFault: If a price is non-positive or ordering is violated.

    """
    if len(prices) < 2:  # noqa: PLR2004
        msg = f"at least 2 prices are required, got {len(prices)}"
        raise InsufficientDataError(msg)

    if isinstance(prices[0], PricePoint):
        points: Sequence[PricePoint] = prices  # type: ignore[assignment]
        validate_prices(points)
        values = np.fromiter((p.price for p in points), dtype=np.float64, count=len(points))
    else:
        values = np.asarray(prices, dtype=np.float64)
        bad = ~np.isfinite(values) | (values <= 0)
        if bad.any():
            idx = int(np.argmax(bad))
            msg = f"price must be positive at index {idx}, got {values[idx]}"
            raise DataFault(msg)

    returns = np.log(values[1:] / values[:-1])
    returns.flags.writeable = False
    return returns
