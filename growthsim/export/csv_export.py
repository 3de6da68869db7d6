"""CSV export for simulation series and distribution histograms.

Generates CSV files with ``#`` metadata header lines including the export
time and the simulation inputs.

"""

from __future__ import annotations

import csv
import io
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from growthsim.analysis.distribution import HistogramBucket
    from growthsim.simulation.monte_carlo import SimulationResult

_PERIODS_PER_YEAR = 12


def export_series_csv(
    result: SimulationResult,
    output_path: str | None = None,
) -> str:
    """Export the mean and median trajectories to CSV.

    Writes one row per period with columns period, year, mean, median.

    Args:
        result: Completed simulation result.
        output_path: File path to write. If None, returns CSV string.

    Returns:
        The CSV content as a string, or file path if output_path given.

    """
    params = result.parameters
    output = io.StringIO()
    _write_metadata_header(
        output,
        "Simulation Series Export",
        extra=(
            f"Principal: {params.principal} | "
            f"Contribution: {params.periodic_contribution} | "
            f"Paths: {result.n_paths}"
        ),
    )

    writer = csv.DictWriter(output, fieldnames=["period", "year", "mean", "median"])
    writer.writeheader()
    for period, mean_val, median_val in zip(
        result.mean.period_index, result.mean.values, result.median.values
    ):
        writer.writerow(
            {
                "period": int(period),
                "year": f"{period / _PERIODS_PER_YEAR:.2f}",
                "mean": f"{float(mean_val):.2f}",
                "median": f"{float(median_val):.2f}",
            }
        )

    return _finish(output, output_path)


def export_histogram_csv(
    buckets: list[HistogramBucket],
    output_path: str | None = None,
) -> str:
    """Export histogram buckets to CSV.

    Args:
        buckets: Buckets as returned by ``DistributionAnalyzer.histogram``.
        output_path: File path to write. If None, returns CSV string.

    Returns:
        The CSV content as a string, or file path if output_path given.

    """
    output = io.StringIO()
    _write_metadata_header(
        output,
        "Terminal Distribution Histogram Export",
        extra=f"Buckets: {len(buckets)}",
    )

    fieldnames = ["lower", "upper", "count", "frequency"]
    writer = csv.DictWriter(output, fieldnames=fieldnames)
    writer.writeheader()
    for bucket in buckets:
        row: dict[str, Any] = {
            "lower": f"{bucket.lower:.2f}",
            "upper": f"{bucket.upper:.2f}",
            "count": bucket.count,
            "frequency": f"{bucket.frequency:.6f}",
        }
        writer.writerow(row)

    return _finish(output, output_path)


def _finish(output: io.StringIO, output_path: str | None) -> str:
    content = output.getvalue()
    if output_path:
        Path(output_path).write_text(content, encoding="utf-8")
        return output_path
    return content


def _write_metadata_header(
    output: io.StringIO,
    title: str,
    extra: str = "",
) -> None:
    """Write metadata comment lines at the top of a CSV export.

    Args:
        output: StringIO buffer to write to.
        title: Export title.
        extra: Optional additional metadata line.

    """
    now = datetime.now(tz=UTC).strftime("%Y-%m-%d %H:%M:%S UTC")
    output.write(f"# {title}\n")
    output.write(f"# Generated: {now}\n")
    if extra:
        output.write(f"# {extra}\n")
