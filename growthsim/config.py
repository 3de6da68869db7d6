"""Engine configuration.

Defaults mirror the behavior of the interactive simulator: 10,000 paths,
a 100-year monthly horizon cap, and a 100-bucket histogram. Each field can
be overridden through a ``GROWTHSIM_*`` environment variable via
:meth:`EngineConfig.from_env`.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_N_PATHS = 10_000
DEFAULT_MAX_HORIZON_PERIODS = 1200  # 100 years of monthly steps
DEFAULT_HISTOGRAM_BUCKETS = 100
DEFAULT_RECONCILE_TOLERANCE = 0.05
DEFAULT_CHUNK_SIZE = 1_000
# Tail probability of the inference returned with every run
DEFAULT_INFERENCE_PERCENTILE = 5.0

_ENV_PREFIX = "GROWTHSIM_"


@dataclass(frozen=True)
class EngineConfig:
    """Tunable engine settings.

    Attributes:
        n_paths: Number of trajectories per batch.
        max_horizon_periods: Largest accepted horizon, in monthly periods.
        histogram_buckets: Upper bound on histogram bucket count.
        reconcile_tolerance: Relative probability difference above which a
            supplied probability is replaced by the recomputed one.
        workers: Worker threads for the batch fan-out. None picks
            ``min(8, os.cpu_count())``.
        chunk_size: Trajectories simulated per worker task.

    """

    n_paths: int = DEFAULT_N_PATHS
    max_horizon_periods: int = DEFAULT_MAX_HORIZON_PERIODS
    histogram_buckets: int = DEFAULT_HISTOGRAM_BUCKETS
    reconcile_tolerance: float = DEFAULT_RECONCILE_TOLERANCE
    workers: int | None = None
    chunk_size: int = DEFAULT_CHUNK_SIZE

    def __post_init__(self) -> None:
        """Validate field ranges."""
        if self.n_paths < 1:
            msg = f"n_paths must be >= 1, got {self.n_paths}"
            raise ValueError(msg)
        if self.max_horizon_periods < 1:
            msg = f"max_horizon_periods must be >= 1, got {self.max_horizon_periods}"
            raise ValueError(msg)
        if self.histogram_buckets < 1:
            msg = f"histogram_buckets must be >= 1, got {self.histogram_buckets}"
            raise ValueError(msg)
        if self.reconcile_tolerance < 0:
            msg = f"reconcile_tolerance must be >= 0, got {self.reconcile_tolerance}"
            raise ValueError(msg)
        if self.workers is not None and self.workers < 1:
            msg = f"workers must be >= 1, got {self.workers}"
            raise ValueError(msg)
        if self.chunk_size < 1:
            msg = f"chunk_size must be >= 1, got {self.chunk_size}"
            raise ValueError(msg)

    @property
    def resolved_workers(self) -> int:
        """Worker count with the CPU-based default applied."""
        if self.workers is not None:
            return self.workers
        return min(8, os.cpu_count() or 1)

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> EngineConfig:
        """Build a config from ``GROWTHSIM_*`` environment variables.

        Unset or empty variables keep their defaults.

        Args:
            environ: Mapping to read from. Defaults to ``os.environ``.

        Returns:
            A validated EngineConfig.

        Raises:
            ValueError: If a variable cannot be parsed or is out of range.

        """
        env = os.environ if environ is None else environ
        kwargs: dict[str, int | float | None] = {}

        int_fields = {
            "N_PATHS": "n_paths",
            "MAX_HORIZON": "max_horizon_periods",
            "HISTOGRAM_BUCKETS": "histogram_buckets",
            "WORKERS": "workers",
            "CHUNK_SIZE": "chunk_size",
        }
        for suffix, field_name in int_fields.items():
            raw = env.get(_ENV_PREFIX + suffix, "").strip()
            if raw:
                try:
                    kwargs[field_name] = int(raw)
                except ValueError as exc:
                    msg = f"{_ENV_PREFIX}{suffix} must be an integer, got '{raw}'"
                    raise ValueError(msg) from exc

        raw_tol = env.get(_ENV_PREFIX + "RECONCILE_TOLERANCE", "").strip()
        if raw_tol:
            try:
                kwargs["reconcile_tolerance"] = float(raw_tol)
            except ValueError as exc:
                msg = f"{_ENV_PREFIX}RECONCILE_TOLERANCE must be a number, got '{raw_tol}'"
                raise ValueError(msg) from exc

        return cls(**kwargs)  # type: ignore[arg-type]
