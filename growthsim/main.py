"""growthsim sidecar entry point.

Communicates with the host application via stdin/stdout using
newline-delimited JSON messages. Logs go to stderr.

Protocol:
    Request:  {"id": "uuid", "method": "string", "params": {}}
    Response: {"id": "uuid", "result": {}}
    Error:    {"id": "uuid", "error": {"message": "string", "type": "string"}}

The process keeps one SimulationSession: load a price history, run a
simulation, then query its series and distribution. Queries issued before
any simulation has completed return the error message "unavailable".
"""

from __future__ import annotations

import json
import logging
import sys
import traceback
from typing import Any

from growthsim import log_config
from growthsim.analysis.distribution import Comparison
from growthsim.config import DEFAULT_INFERENCE_PERCENTILE, EngineConfig
from growthsim.export.csv_export import export_histogram_csv, export_series_csv
from growthsim.export.json_export import ResultEncoder, export_result_json
from growthsim.ingest.prices import parse_price_csv
from growthsim.simulation.session import SimulationSession

logger = logging.getLogger(__name__)

_session: SimulationSession | None = None


def get_session() -> SimulationSession:
    """Return the process-wide session, creating it from the environment."""
    global _session  # noqa: PLW0603
    if _session is None:
        _session = SimulationSession(EngineConfig.from_env())
    return _session


def _handle_load_csv(
    file_path: str | None = None,
    csv_content: str | None = None,
) -> dict[str, Any]:
    points = parse_price_csv(file_path=file_path, csv_content=csv_content)
    n_returns = get_session().load_prices(points)
    return {
        "n_prices": len(points),
        "n_returns": n_returns,
        "start": points[0].timestamp,
        "end": points[-1].timestamp,
    }


def _handle_run(
    principal: float,
    periodic_contribution: float,
    horizon_periods: int,
    n_paths: int | None = None,
    seed: int | None = None,
) -> dict[str, Any]:
    session = get_session()
    session.run(principal, periodic_contribution, horizon_periods, n_paths, seed)
    described = session.describe_latest()
    described["default_inference"] = session.reconcile(
        DEFAULT_INFERENCE_PERCENTILE, Comparison.AT_MOST
    ).to_dict()
    return described


def _handle_series(mode: str = "mean", yearly: bool = False) -> list[dict[str, Any]]:
    series = get_session().series(mode)
    return series.yearly() if yearly else series.to_records()


def _handle_summary() -> dict[str, Any]:
    return get_session().summary().to_dict()


def _handle_histogram(max_buckets: int | None = None) -> list[dict[str, Any]]:
    return [b.to_dict() for b in get_session().histogram(max_buckets)]


def _handle_value_at_percentile(percentile: float, comparison: str = "at_most") -> float:
    return get_session().value_at_percentile(percentile, comparison)


def _handle_probability_for(value: float, comparison: str = "at_most") -> float:
    return get_session().probability_for(value, comparison)


def _handle_reconcile(probability: float, comparison: str = "at_most") -> dict[str, Any]:
    return get_session().reconcile(probability, comparison).to_dict()


def _handle_export_series(output_path: str | None = None) -> str:
    return export_series_csv(get_session().latest, output_path=output_path)


def _handle_export_histogram(
    output_path: str | None = None,
    max_buckets: int | None = None,
) -> str:
    return export_histogram_csv(get_session().histogram(max_buckets), output_path=output_path)


def _handle_export_json(output_path: str | None = None) -> str:
    session = get_session()
    return export_result_json(
        session.latest,
        histogram_buckets=session.config.histogram_buckets,
        output_path=output_path,
    )


def dispatch(method: str, params: dict[str, Any]) -> Any:
    """Route a method call to the appropriate handler.

    Args:
        method: The method name (e.g., "simulation.run").
        params: The parameters for the method.

    Returns:
        The result of the method call.

    Raises:
        ValueError: If the method is not recognized.

    """
    handlers: dict[str, Any] = {
        # Price history
        "prices.load_csv": _handle_load_csv,
        # Simulation
        "simulation.run": _handle_run,
        "simulation.series": _handle_series,
        # Distribution
        "distribution.summary": _handle_summary,
        "distribution.histogram": _handle_histogram,
        "distribution.value_at_percentile": _handle_value_at_percentile,
        "distribution.probability_for": _handle_probability_for,
        "distribution.reconcile": _handle_reconcile,
        # Export
        "export.series_csv": _handle_export_series,
        "export.histogram_csv": _handle_export_histogram,
        "export.result_json": _handle_export_json,
    }
    if method not in handlers:
        msg = f"Unknown method: {method}"
        raise ValueError(msg)
    return handlers[method](**params)


def main(argv: list[str] | None = None) -> None:
    """Run the sidecar message loop.

    Reads newline-delimited JSON from stdin, dispatches to handlers,
    and writes JSON responses to stdout. Runs until stdin is closed.
    """
    args = sys.argv[1:] if argv is None else argv
    log_config.setup(verbose="--verbose" in args or "-v" in args)

    for raw_line in sys.stdin:
        stripped = raw_line.strip()
        if not stripped:
            continue

        request: dict[str, Any] = {}
        try:
            request = json.loads(stripped)
            request_id = request.get("id", "unknown")
            method = request["method"]
            params = request.get("params", {})
            logger.debug("Dispatching %s (id=%s)", method, request_id)
            result = dispatch(method, params)
            response: dict[str, Any] = {"id": request_id, "result": result}
        except Exception as exc:  # noqa: BLE001
            request_id = (
                request.get("id", "unknown") if isinstance(request, dict) else "unknown"
            )
            logger.warning("Request %s failed: %s: %s", request_id, type(exc).__name__, exc)
            response = {
                "id": request_id,
                "error": {
                    "message": str(exc),
                    "type": type(exc).__name__,
                    "traceback": traceback.format_exc(),
                },
            }
        sys.stdout.write(json.dumps(response, cls=ResultEncoder) + "\n")
        sys.stdout.flush()


if __name__ == "__main__":
    main()
