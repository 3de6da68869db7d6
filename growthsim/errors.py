"""Error taxonomy for the simulation engine.

Every error is raised synchronously to the caller of the engine. Nothing is
retried.
"""

from __future__ import annotations


class GrowthSimError(Exception):
    """Base class for all engine errors."""


class DataFault(GrowthSimError, ValueError):
    """Malformed historical price data (non-positive price, bad ordering, bad row)."""


class InsufficientDataError(DataFault):
    """Fewer than two price points, so no return can be derived."""


class InvalidParameters(GrowthSimError, ValueError):
    """Simulation parameters rejected before any simulation work begins."""


class EmptyDistributionQuery(GrowthSimError, LookupError):
    """A percentile/value query issued against an empty distribution."""

    def __init__(self, message: str = "unavailable") -> None:
        super().__init__(message)


class BatchCancelled(GrowthSimError):
    """An in-flight batch was superseded by a newer request."""
