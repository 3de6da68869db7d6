"""Tests for single- and multi-path simulation."""

from __future__ import annotations

import math

import numpy as np
import pytest
from growthsim.analysis.returns import log_returns
from growthsim.simulation.parameters import SimulationParameters
from growthsim.simulation.path import simulate_path, simulate_paths
from numpy.typing import NDArray


class TestSimulatePath:
    """Tests for the simulate_path function."""

    def test_length_and_indices(
        self,
        sample_returns: NDArray[np.float64],
        sample_params: SimulationParameters,
        reproducible_rng: np.random.Generator,
    ) -> None:
        path = simulate_path(sample_returns, sample_params, rng=reproducible_rng)
        assert len(path) == 121
        np.testing.assert_array_equal(path.period_index, np.arange(121))

    def test_starts_at_principal(
        self,
        sample_returns: NDArray[np.float64],
        sample_params: SimulationParameters,
        reproducible_rng: np.random.Generator,
    ) -> None:
        path = simulate_path(sample_returns, sample_params, rng=reproducible_rng)
        assert path.values[0] == sample_params.principal

    def test_one_step_admissible_outputs(self) -> None:
        returns = log_returns([100.0, 110.0, 99.0])
        params = SimulationParameters(principal=1000.0, periodic_contribution=0.0, horizon_periods=1)
        rng = np.random.default_rng(0)
        seen = set()
        for _ in range(50):
            value = simulate_path(returns, params, rng=rng).terminal_value
            assert value == pytest.approx(1100.0) or value == pytest.approx(900.0)
            seen.add(round(value))
        assert seen == {1100, 900}

    def test_fixed_draws_reproducible(self, sample_returns: NDArray[np.float64]) -> None:
        params = SimulationParameters(principal=1000.0, periodic_contribution=100.0, horizon_periods=3)
        indices = np.array([0, 5, 2])
        path1 = simulate_path(sample_returns, params, indices=indices)
        path2 = simulate_path(sample_returns, params, indices=indices)
        np.testing.assert_array_equal(path1.values, path2.values)

    def test_fixed_draws_follow_update_rule(self) -> None:
        returns = log_returns([100.0, 110.0, 99.0])
        params = SimulationParameters(principal=1000.0, periodic_contribution=50.0, horizon_periods=2)
        path = simulate_path(returns, params, indices=np.array([0, 1]))
        step1 = 1000.0 * math.exp(returns[0]) + 50.0
        step2 = step1 * math.exp(returns[1]) + 50.0
        np.testing.assert_allclose(path.values, [1000.0, step1, step2])

    def test_seeded_generator_reproducible(
        self,
        sample_returns: NDArray[np.float64],
        sample_params: SimulationParameters,
    ) -> None:
        path1 = simulate_path(sample_returns, sample_params, rng=np.random.default_rng(9))
        path2 = simulate_path(sample_returns, sample_params, rng=np.random.default_rng(9))
        np.testing.assert_array_equal(path1.values, path2.values)

    def test_withdrawals_can_go_negative(self) -> None:
        returns = log_returns([100.0, 100.0])
        params = SimulationParameters(principal=1000.0, periodic_contribution=-400.0, horizon_periods=4)
        path = simulate_path(returns, params, indices=np.zeros(4, dtype=np.int64))
        np.testing.assert_allclose(path.values, [1000.0, 600.0, 200.0, -200.0, -600.0])

    def test_unseeded_without_rng(
        self,
        sample_returns: NDArray[np.float64],
        sample_params: SimulationParameters,
    ) -> None:
        path = simulate_path(sample_returns, sample_params)
        assert len(path) == sample_params.horizon_periods + 1

    def test_wrong_indices_length_raises(self, sample_returns: NDArray[np.float64]) -> None:
        params = SimulationParameters(principal=1.0, periodic_contribution=0.0, horizon_periods=3)
        with pytest.raises(ValueError, match="length 3"):
            simulate_path(sample_returns, params, indices=np.array([0, 1]))

    def test_out_of_range_indices_raise(self) -> None:
        returns = log_returns([100.0, 110.0, 99.0])
        params = SimulationParameters(principal=1.0, periodic_contribution=0.0, horizon_periods=2)
        with pytest.raises(ValueError, match=r"\[0, 2\)"):
            simulate_path(returns, params, indices=np.array([0, 2]))


class TestSimulatePaths:
    """Tests for the vectorized simulate_paths function."""

    def test_shape(
        self,
        sample_returns: NDArray[np.float64],
        sample_params: SimulationParameters,
        reproducible_rng: np.random.Generator,
    ) -> None:
        values = simulate_paths(sample_returns, sample_params, 50, reproducible_rng)
        assert values.shape == (50, 121)

    def test_every_path_starts_at_principal(
        self,
        sample_returns: NDArray[np.float64],
        sample_params: SimulationParameters,
        reproducible_rng: np.random.Generator,
    ) -> None:
        values = simulate_paths(sample_returns, sample_params, 50, reproducible_rng)
        np.testing.assert_array_equal(values[:, 0], np.full(50, sample_params.principal))

    def test_one_step_values_admissible(self) -> None:
        returns = log_returns([100.0, 110.0, 99.0])
        params = SimulationParameters(principal=1000.0, periodic_contribution=0.0, horizon_periods=1)
        values = simulate_paths(returns, params, 200, np.random.default_rng(1))
        terminal = values[:, -1]
        assert np.all(np.isclose(terminal, 1100.0) | np.isclose(terminal, 900.0))

    def test_paths_differ(
        self,
        sample_returns: NDArray[np.float64],
        sample_params: SimulationParameters,
        reproducible_rng: np.random.Generator,
    ) -> None:
        values = simulate_paths(sample_returns, sample_params, 20, reproducible_rng)
        assert len(np.unique(values[:, -1])) > 1
