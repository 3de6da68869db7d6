"""Shared pytest fixtures for growthsim tests."""

from __future__ import annotations

from datetime import date

import numpy as np
import pytest
from growthsim.analysis.returns import PricePoint, log_returns
from growthsim.simulation.parameters import SimulationParameters
from numpy.typing import NDArray

# Month-end S&P 500 closes, Jan 2019 - Dec 2020 (rounded).
_MONTHLY_CLOSES = (
    2704.10, 2784.49, 2834.40, 2945.83, 2752.06, 2941.76,
    2980.38, 2926.46, 2976.74, 3037.56, 3140.98, 3230.78,
    3225.52, 2954.22, 2584.59, 2912.43, 3044.31, 3100.29,
    3271.12, 3500.31, 3363.00, 3269.96, 3621.63, 3756.07,
)


@pytest.fixture
def reproducible_rng() -> np.random.Generator:
    """Provide a seeded random number generator for deterministic tests."""
    return np.random.default_rng(seed=42)


@pytest.fixture
def sample_prices() -> list[PricePoint]:
    """Provide two years of monthly price points."""
    return [
        PricePoint(timestamp=date(2019 + i // 12, i % 12 + 1, 1), price=price)
        for i, price in enumerate(_MONTHLY_CLOSES)
    ]


@pytest.fixture
def sample_returns(sample_prices: list[PricePoint]) -> NDArray[np.float64]:
    """Provide the monthly log-returns of ``sample_prices``."""
    return log_returns(sample_prices)


@pytest.fixture
def sample_params() -> SimulationParameters:
    """Provide a ten-year monthly plan with a steady contribution."""
    return SimulationParameters(
        principal=10_000.0,
        periodic_contribution=500.0,
        horizon_periods=120,
    )


@pytest.fixture
def sample_csv() -> str:
    """Provide the sample prices as a headerless date,price CSV."""
    lines = [
        f"{2019 + i // 12}-{i % 12 + 1:02d}-01,{price}"
        for i, price in enumerate(_MONTHLY_CLOSES)
    ]
    return "\r\n".join(lines)
