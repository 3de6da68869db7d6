"""Tests for per-period aggregation."""

from __future__ import annotations

import numpy as np
import pytest
from growthsim.simulation.aggregate import (
    AggregationMode,
    aggregate,
    mean_series,
    median_series,
)
from growthsim.simulation.batch import SimulationBatch


@pytest.fixture
def two_path_batch() -> SimulationBatch:
    """Two trajectories ending at 500 and 1500."""
    return SimulationBatch(values=np.array([[1000.0, 800.0, 500.0], [1000.0, 1200.0, 1500.0]]))


class TestMeanSeries:
    """Tests for mean aggregation."""

    def test_mean_of_two_paths(self, two_path_batch: SimulationBatch) -> None:
        series = mean_series(two_path_batch)
        np.testing.assert_allclose(series.values, [1000.0, 1000.0, 1000.0])
        assert series.final_value == 1000.0
        assert series.mode is AggregationMode.MEAN

    def test_length_matches_periods(self, two_path_batch: SimulationBatch) -> None:
        series = mean_series(two_path_batch)
        assert len(series) == 3
        np.testing.assert_array_equal(series.period_index, [0, 1, 2])


class TestMedianSeries:
    """Tests for median aggregation."""

    def test_even_count_upper_middle(self, two_path_batch: SimulationBatch) -> None:
        series = median_series(two_path_batch)
        np.testing.assert_array_equal(series.values, [1000.0, 1200.0, 1500.0])
        assert series.final_value == 1500.0

    def test_odd_count_middle(self) -> None:
        batch = SimulationBatch(values=np.array([[1.0, 9.0], [1.0, 3.0], [1.0, 6.0]]))
        np.testing.assert_array_equal(median_series(batch).values, [1.0, 6.0])

    def test_per_period_cross_section(self) -> None:
        # Medians are taken per period, not from a single "median path"
        batch = SimulationBatch(
            values=np.array([[0.0, 1.0, 30.0], [0.0, 3.0, 10.0], [0.0, 2.0, 20.0]])
        )
        np.testing.assert_array_equal(median_series(batch).values, [0.0, 2.0, 20.0])


class TestAggregate:
    """Tests for the aggregate dispatcher."""

    def test_string_modes(self, two_path_batch: SimulationBatch) -> None:
        assert aggregate(two_path_batch, "mean").final_value == 1000.0
        assert aggregate(two_path_batch, "median").final_value == 1500.0

    def test_enum_mode(self, two_path_batch: SimulationBatch) -> None:
        series = aggregate(two_path_batch, AggregationMode.MEDIAN)
        assert series.mode is AggregationMode.MEDIAN

    def test_unknown_mode_raises(self, two_path_batch: SimulationBatch) -> None:
        with pytest.raises(ValueError, match="mode"):
            aggregate(two_path_batch, "mode")


class TestSeriesViews:
    """Tests for record and yearly views."""

    def test_yearly_keeps_whole_years(self) -> None:
        values = np.tile(np.arange(25, dtype=np.float64), (2, 1))
        series = mean_series(SimulationBatch(values=values))
        assert series.yearly() == [
            {"year": 0, "value": 0.0},
            {"year": 1, "value": 12.0},
            {"year": 2, "value": 24.0},
        ]

    def test_records(self, two_path_batch: SimulationBatch) -> None:
        records = median_series(two_path_batch).to_records()
        assert records[0] == {"period": 0, "value": 1000.0}
        assert len(records) == 3
