"""JSON export of a complete simulation result.

Produces the time-series, distribution summary and histogram of one run
in a single document with metadata.

"""

from __future__ import annotations

import json
from datetime import UTC, date, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

import numpy as np

from growthsim import __version__
from growthsim.config import DEFAULT_HISTOGRAM_BUCKETS

if TYPE_CHECKING:
    from growthsim.simulation.monte_carlo import SimulationResult


class ResultEncoder(json.JSONEncoder):
    """JSON encoder that handles NumPy types and dates."""

    def default(self, o: Any) -> Any:
        """Convert non-serializable types to JSON-safe values."""
        if isinstance(o, np.ndarray):
            return o.tolist()
        if isinstance(o, np.integer):
            return int(o)
        if isinstance(o, np.floating):
            return float(o)
        if isinstance(o, (datetime, date)):
            return o.isoformat()
        return super().default(o)


def export_result_json(
    result: SimulationResult,
    histogram_buckets: int = DEFAULT_HISTOGRAM_BUCKETS,
    output_path: str | None = None,
) -> str:
    """Export a simulation result to JSON format.

    Args:
        result: Completed simulation result.
        histogram_buckets: Upper bound on histogram bucket count.
        output_path: File path to write. If None, returns JSON string.

    Returns:
        JSON string, or file path if output_path given.

    """
    export_data: dict[str, Any] = {
        "metadata": {
            "export_date": datetime.now(tz=UTC),
            "format_version": "1.0",
            "source": "growthsim",
            "engine_version": __version__,
        },
        "parameters": result.headline(),
        "series": {
            "mean": result.mean.values,
            "median": result.median.values,
        },
        "distribution": {
            "summary": result.distribution.summary().to_dict(),
            "histogram": [b.to_dict() for b in result.distribution.histogram(histogram_buckets)],
        },
    }

    content = json.dumps(export_data, cls=ResultEncoder, indent=2)

    if output_path:
        Path(output_path).write_text(content, encoding="utf-8")
        return output_path
    return content
