"""Historical price loading.

Reads the two-column ``date,price`` monthly history (no header row) used by
the simulator, or converts a pandas Series indexed by date. Loading stops
at the first malformed row.

pandas is an optional dependency (install with ``pip install
growthsim[frames]``). :func:`prices_from_series` raises ``ImportError`` at
call time if it is not installed.
"""

from __future__ import annotations

import csv
import io
import logging
import math
from datetime import date, datetime
from pathlib import Path
from typing import Any

from growthsim.analysis.returns import PricePoint, validate_prices
from growthsim.errors import DataFault, InsufficientDataError

logger = logging.getLogger(__name__)

_DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%Y/%m/%d", "%Y-%m")
_N_COLUMNS = 2


def _require_pandas() -> Any:
    """Lazy-import pandas.

    Raises:
        ImportError: If pandas is not installed.

    """
    try:
        import pandas as pd
    except ImportError as exc:
        msg = (
            "pandas is required to load prices from a Series. "
            "Install with: pip install growthsim[frames]"
        )
        raise ImportError(msg) from exc
    return pd


def _parse_date(raw: str) -> date:
    """Parse a date cell in any of the supported formats.

    Raises:
        ValueError: If no format matches.

    """
    cleaned = raw.strip()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt).date()
        except ValueError:
            continue
    msg = f"unrecognized date '{raw}'"
    raise ValueError(msg)


def _parse_price(raw: str) -> float:
    """Parse a price cell, tolerating a leading ``$`` and thousands commas.

    Raises:
        ValueError: If the cell is not a finite number.

    """
    value = float(raw.strip().replace("$", "").replace(",", ""))
    if not math.isfinite(value):
        msg = f"price must be finite, got '{raw}'"
        raise ValueError(msg)
    return value


def parse_price_csv(
    file_path: str | Path | None = None,
    csv_content: str | None = None,
) -> list[PricePoint]:
    """Parse a headerless ``date,price`` CSV into price points.

    Provide either file_path or csv_content, not both. Blank lines are
    ignored; ``\\r\\n`` line endings are accepted.

    Args:
        file_path: Path to the CSV file.
        csv_content: Raw CSV content as a string.

    Returns:
        Price points in file order, validated for ordering and positivity.

    Raises:
        ValueError: If neither or both of file_path and csv_content are given.
        DataFault: If a row is malformed or the history is invalid.
        InsufficientDataError: If fewer than 2 rows are present.

    """
    if (file_path is None) == (csv_content is None):
        msg = "Provide either file_path or csv_content"
        raise ValueError(msg)

    if file_path is not None:
        text = Path(file_path).read_text(encoding="utf-8")
    else:
        text = csv_content  # type: ignore[assignment]

    points: list[PricePoint] = []
    reader = csv.reader(io.StringIO(text))
    for line_num, row in enumerate(reader, start=1):
        if not any(cell.strip() for cell in row):
            continue
        if len(row) != _N_COLUMNS:
            msg = f"line {line_num}: expected 2 columns (date, price), got {len(row)}"
            raise DataFault(msg)
        try:
            points.append(PricePoint(timestamp=_parse_date(row[0]), price=_parse_price(row[1])))
        except ValueError as exc:
            msg = f"line {line_num}: {exc}"
            raise DataFault(msg) from exc

    if len(points) < 2:  # noqa: PLR2004
        msg = f"at least 2 price rows are required, got {len(points)}"
        raise InsufficientDataError(msg)

    validate_prices(points)
    logger.info(
        "Parsed %d price points (%s to %s)",
        len(points),
        points[0].timestamp,
        points[-1].timestamp,
    )
    return points


def prices_from_series(series: Any) -> list[PricePoint]:
    """Convert a pandas Series of prices indexed by date.

    Args:
        series: pandas Series whose index is datetime-like. NaN entries
            are treated as malformed data.

    Returns:
        Price points sorted by the Series order, validated.

    Raises:
        ImportError: If pandas is not installed.
        DataFault: If a value is missing, an index entry is not a date,
            or the history is invalid.
        InsufficientDataError: If fewer than 2 points are present.

    """
    pd = _require_pandas()

    if series.isna().any():
        first_bad = series[series.isna()].index[0]
        msg = f"missing price at {first_bad}"
        raise DataFault(msg)

    try:
        index = pd.DatetimeIndex(series.index)
    except (TypeError, ValueError) as exc:
        msg = f"series index must be datetime-like: {exc}"
        raise DataFault(msg) from exc

    points = [
        PricePoint(timestamp=ts.date(), price=float(price))
        for ts, price in zip(index, series.to_numpy(), strict=True)
    ]
    if len(points) < 2:  # noqa: PLR2004
        msg = f"at least 2 prices are required, got {len(points)}"
        raise InsufficientDataError(msg)

    validate_prices(points)
    return points
