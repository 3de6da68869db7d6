"""Simulation request parameters."""

from __future__ import annotations

import math
from dataclasses import dataclass

from growthsim.config import DEFAULT_MAX_HORIZON_PERIODS
from growthsim.errors import InvalidParameters


@dataclass(frozen=True)
class SimulationParameters:
    """Inputs of one simulation request.

    Attributes:
        principal: Starting portfolio value. Must be non-negative.
        periodic_contribution: Amount added after each period's growth.
            Negative values model withdrawals.
        horizon_periods: Number of monthly steps to simulate.

    """

    principal: float
    periodic_contribution: float
    horizon_periods: int

    def __post_init__(self) -> None:
        """Reject parameters that can never produce a valid simulation."""
        if not math.isfinite(self.principal) or self.principal < 0:
            msg = f"principal must be non-negative, got {self.principal}"
            raise InvalidParameters(msg)
        if not math.isfinite(self.periodic_contribution):
            msg = f"periodic_contribution must be finite, got {self.periodic_contribution}"
            raise InvalidParameters(msg)
        if isinstance(self.horizon_periods, bool) or not isinstance(
            self.horizon_periods, int
        ):
            msg = f"horizon_periods must be an integer, got {self.horizon_periods!r}"
            raise InvalidParameters(msg)
        if self.horizon_periods < 1:
            msg = f"horizon_periods must be >= 1, got {self.horizon_periods}"
            raise InvalidParameters(msg)

    def check_horizon(self, max_horizon_periods: int = DEFAULT_MAX_HORIZON_PERIODS) -> None:
        """Enforce the configured horizon cap.

        Raises:
            InvalidParameters: If horizon_periods exceeds the cap.

        """
        if self.horizon_periods > max_horizon_periods:
            msg = (
                f"horizon_periods must be <= {max_horizon_periods}, "
                f"got {self.horizon_periods}"
            )
            raise InvalidParameters(msg)
