"""Tests for the interactive simulation session."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from unittest.mock import patch

import pytest
from growthsim.analysis.returns import PricePoint
from growthsim.config import EngineConfig
from growthsim.errors import (
    BatchCancelled,
    EmptyDistributionQuery,
    InsufficientDataError,
    InvalidParameters,
)
from growthsim.simulation import monte_carlo
from growthsim.simulation.session import SimulationSession


@pytest.fixture
def session(sample_prices: list[PricePoint]) -> Iterator[SimulationSession]:
    """Session with the sample history loaded and small batches."""
    with SimulationSession(EngineConfig(n_paths=200, chunk_size=50, workers=1)) as s:
        s.load_prices(sample_prices)
        yield s


class TestLoadPrices:
    """Tests for loading price history."""

    def test_returns_count(self, sample_prices: list[PricePoint]) -> None:
        with SimulationSession() as s:
            assert s.load_prices(sample_prices) == len(sample_prices) - 1
            assert s.prices == sample_prices

    def test_run_without_history(self) -> None:
        with SimulationSession() as s, pytest.raises(InsufficientDataError, match="no price"):
            s.run(1_000.0, 0.0, 12)


class TestRun:
    """Tests for running simulations through the session."""

    def test_run_stores_latest(self, session: SimulationSession) -> None:
        result = session.run(1_000.0, 50.0, 24, seed=1)
        assert session.latest is result
        assert len(session.series("mean")) == 25

    def test_invalid_parameters_rejected_before_queueing(
        self, session: SimulationSession
    ) -> None:
        with (
            patch.object(session, "_executor") as executor,
            pytest.raises(InvalidParameters),
        ):
            session.submit(1_000.0, 0.0, 5_000)
        executor.submit.assert_not_called()

    def test_invalid_n_paths_rejected_before_queueing(
        self, session: SimulationSession
    ) -> None:
        with (
            patch.object(session, "_executor") as executor,
            pytest.raises(InvalidParameters, match="n_paths"),
        ):
            session.submit(1_000.0, 0.0, 12, n_paths=-5)
        executor.submit.assert_not_called()

    def test_queries_delegate(self, session: SimulationSession) -> None:
        session.run(1_000.0, 50.0, 24, seed=1)
        value = session.value_at_percentile(50, "at_most")
        assert session.probability_for(value, "at_most") == pytest.approx(50.0, abs=5.0)
        inference = session.reconcile(50, "at_most")
        assert inference.value == value
        assert sum(b.frequency for b in session.histogram()) == pytest.approx(1.0)
        assert session.summary().count == 200

    def test_describe_latest(self, session: SimulationSession) -> None:
        session.run(1_000.0, 50.0, 24, seed=1)
        described = session.describe_latest()
        assert described["n_paths"] == 200
        assert described["summary"]["count"] == 200


class TestEmptySession:
    """Queries before any simulation has completed."""

    def test_latest_unavailable(self, session: SimulationSession) -> None:
        with pytest.raises(EmptyDistributionQuery, match="unavailable"):
            _ = session.latest

    def test_queries_unavailable(self, session: SimulationSession) -> None:
        with pytest.raises(EmptyDistributionQuery):
            session.value_at_percentile(5, "at_most")
        with pytest.raises(EmptyDistributionQuery):
            session.probability_for(0.0, "at_least")
        with pytest.raises(EmptyDistributionQuery):
            session.histogram()


class TestLastRequestWins:
    """Superseded requests never overwrite newer results."""

    def test_newer_request_supersedes_in_flight(self, session: SimulationSession) -> None:
        started = threading.Event()
        release = threading.Event()
        original = monte_carlo.run_simulation

        def slow_first(**kwargs: object) -> object:
            if kwargs["horizon_periods"] == 12:
                started.set()
                release.wait(timeout=5)
            return original(**kwargs)  # type: ignore[arg-type]

        with patch("growthsim.simulation.session.run_simulation", side_effect=slow_first):
            first = session.submit(1_000.0, 0.0, 12, seed=1)
            assert started.wait(timeout=5)
            second = session.submit(1_000.0, 0.0, 24, seed=2)
            release.set()

            with pytest.raises(BatchCancelled):
                first.result(timeout=10)
            result = second.result(timeout=10)

        assert session.latest is result
        assert result.parameters.horizon_periods == 24

    def test_queued_request_skipped(self, session: SimulationSession) -> None:
        started = threading.Event()
        release = threading.Event()
        original = monte_carlo.run_simulation

        def blocking(**kwargs: object) -> object:
            if kwargs["horizon_periods"] == 6:
                started.set()
                release.wait(timeout=5)
            return original(**kwargs)  # type: ignore[arg-type]

        with patch("growthsim.simulation.session.run_simulation", side_effect=blocking):
            running = session.submit(1_000.0, 0.0, 6)
            assert started.wait(timeout=5)
            queued = session.submit(1_000.0, 0.0, 12)
            latest = session.submit(1_000.0, 0.0, 18)
            release.set()

            with pytest.raises(BatchCancelled):
                running.result(timeout=10)
            with pytest.raises(BatchCancelled):
                queued.result(timeout=10)
            assert latest.result(timeout=10).parameters.horizon_periods == 18

    def test_invalid_request_leaves_in_flight_run_alone(
        self, session: SimulationSession
    ) -> None:
        started = threading.Event()
        release = threading.Event()
        original = monte_carlo.run_simulation

        def held(**kwargs: object) -> object:
            started.set()
            release.wait(timeout=5)
            return original(**kwargs)  # type: ignore[arg-type]

        with patch("growthsim.simulation.session.run_simulation", side_effect=held):
            running = session.submit(1_000.0, 0.0, 12, seed=1)
            assert started.wait(timeout=5)
            with pytest.raises(InvalidParameters, match="n_paths must be >= 1"):
                session.submit(1_000.0, 0.0, 24, n_paths=0)
            release.set()
            result = running.result(timeout=10)

        assert session.latest is result
        assert result.parameters.horizon_periods == 12
