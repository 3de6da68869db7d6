"""Batch orchestration: fan out independent path simulations, then join.

The batch is split into chunks. Every chunk gets its own generator spawned
from one ``SeedSequence``, so chunks share nothing mutable and can run on a
thread pool without locks. The batch returns only after every chunk has
finished; a failure in any chunk fails the whole batch.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from growthsim.config import DEFAULT_CHUNK_SIZE, DEFAULT_N_PATHS
from growthsim.errors import BatchCancelled
from growthsim.simulation.path import Trajectory, simulate_paths

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from growthsim.simulation.parameters import SimulationParameters

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SimulationBatch:
    """N trajectories aligned on the same periods.

    Attributes:
        values: Read-only array of shape (n_paths, horizon_periods + 1).

    """

    values: NDArray[np.float64]

    def __len__(self) -> int:
        return int(self.values.shape[0])

    @property
    def n_periods(self) -> int:
        """Points per trajectory (horizon + 1)."""
        return int(self.values.shape[1])

    @property
    def period_index(self) -> NDArray[np.int64]:
        """Period numbers 0..H shared by every trajectory."""
        return np.arange(self.n_periods, dtype=np.int64)

    @property
    def terminal_values(self) -> NDArray[np.float64]:
        """Final-period value of each trajectory, in batch order."""
        return self.values[:, -1]

    def trajectory(self, i: int) -> Trajectory:
        """Return trajectory ``i`` as a Trajectory."""
        return Trajectory(period_index=self.period_index, values=self.values[i])


def _chunk_sizes(n_paths: int, chunk_size: int) -> list[int]:
    full, rest = divmod(n_paths, chunk_size)
    sizes = [chunk_size] * full
    if rest:
        sizes.append(rest)
    return sizes


def run_batch(  # noqa: PLR0913
    returns: NDArray[np.float64],
    params: SimulationParameters,
    n_paths: int = DEFAULT_N_PATHS,
    seed: int | np.random.SeedSequence | None = None,
    workers: int | None = 1,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    cancel: threading.Event | None = None,
) -> SimulationBatch:
    """Simulate ``n_paths`` independent trajectories.

    Args:
        returns: Historical log-returns shared read-only by every path.
        params: Principal, contribution and horizon.
        n_paths: Exact number of trajectories to produce.
        seed: Root seed. The same seed and chunk_size reproduce the batch
            regardless of worker count.
        workers: Thread count. 1 (or None) runs chunks inline.
        chunk_size: Trajectories per task.
        cancel: When set, pending chunks are skipped and the batch raises
            BatchCancelled.

    Returns:
        SimulationBatch with exactly ``n_paths`` rows.

    Raises:
        ValueError: If n_paths or chunk_size is not positive, or returns is empty.
        BatchCancelled: If ``cancel`` is set before the batch completes.

    """
    if n_paths < 1:
        msg = f"n_paths must be >= 1, got {n_paths}"
        raise ValueError(msg)
    if chunk_size < 1:
        msg = f"chunk_size must be >= 1, got {chunk_size}"
        raise ValueError(msg)
    if len(returns) == 0:
        msg = "historical_returns must not be empty"
        raise ValueError(msg)

    root = seed if isinstance(seed, np.random.SeedSequence) else np.random.SeedSequence(seed)
    sizes = _chunk_sizes(n_paths, chunk_size)
    streams = root.spawn(len(sizes))
    out = np.empty((n_paths, params.horizon_periods + 1), dtype=np.float64)
    offsets = np.concatenate(([0], np.cumsum(sizes)))

    def _run_chunk(k: int) -> None:
        if cancel is not None and cancel.is_set():
            msg = "batch superseded by a newer request"
            raise BatchCancelled(msg)
        rng = np.random.default_rng(streams[k])
        out[offsets[k] : offsets[k + 1]] = simulate_paths(returns, params, sizes[k], rng)

    logger.debug(
        "Running batch: %d paths x %d periods in %d chunks",
        n_paths,
        params.horizon_periods,
        len(sizes),
    )

    if workers is None or workers <= 1 or len(sizes) == 1:
        for k in range(len(sizes)):
            _run_chunk(k)
    else:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [pool.submit(_run_chunk, k) for k in range(len(sizes))]
            done, pending = wait(futures, return_when=FIRST_EXCEPTION)
            for fut in pending:
                fut.cancel()
            for fut in done:
                exc = fut.exception()
                if exc is not None:
                    raise exc

    if cancel is not None and cancel.is_set():
        msg = "batch superseded by a newer request"
        raise BatchCancelled(msg)

    out.flags.writeable = False
    return SimulationBatch(values=out)
