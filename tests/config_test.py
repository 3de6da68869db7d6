"""Tests for engine configuration."""

from __future__ import annotations

import pytest
from growthsim.config import EngineConfig


class TestEngineConfig:
    """Tests for EngineConfig."""

    def test_defaults(self) -> None:
        config = EngineConfig()
        assert config.n_paths == 10_000
        assert config.max_horizon_periods == 1200
        assert config.histogram_buckets == 100
        assert config.reconcile_tolerance == 0.05

    def test_resolved_workers_default(self) -> None:
        assert 1 <= EngineConfig().resolved_workers <= 8

    def test_resolved_workers_explicit(self) -> None:
        assert EngineConfig(workers=3).resolved_workers == 3

    def test_invalid_n_paths(self) -> None:
        with pytest.raises(ValueError, match="n_paths must be >= 1"):
            EngineConfig(n_paths=0)

    def test_invalid_tolerance(self) -> None:
        with pytest.raises(ValueError, match="reconcile_tolerance"):
            EngineConfig(reconcile_tolerance=-0.1)


class TestFromEnv:
    """Tests for environment overrides."""

    def test_empty_env_uses_defaults(self) -> None:
        assert EngineConfig.from_env({}) == EngineConfig()

    def test_overrides(self) -> None:
        config = EngineConfig.from_env(
            {
                "GROWTHSIM_N_PATHS": "500",
                "GROWTHSIM_MAX_HORIZON": "600",
                "GROWTHSIM_WORKERS": "2",
                "GROWTHSIM_RECONCILE_TOLERANCE": "0.1",
            }
        )
        assert config.n_paths == 500
        assert config.max_horizon_periods == 600
        assert config.workers == 2
        assert config.reconcile_tolerance == 0.1

    def test_blank_value_ignored(self) -> None:
        assert EngineConfig.from_env({"GROWTHSIM_N_PATHS": "  "}).n_paths == 10_000

    def test_non_integer(self) -> None:
        with pytest.raises(ValueError, match="GROWTHSIM_N_PATHS must be an integer"):
            EngineConfig.from_env({"GROWTHSIM_N_PATHS": "many"})

    def test_non_number_tolerance(self) -> None:
        with pytest.raises(ValueError, match="must be a number"):
            EngineConfig.from_env({"GROWTHSIM_RECONCILE_TOLERANCE": "high"})

    def test_reads_os_environ(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GROWTHSIM_HISTOGRAM_BUCKETS", "40")
        assert EngineConfig.from_env().histogram_buckets == 40
