"""Central error types used across the application."""

from __future__ import annotations


class TrailCoverageError(RuntimeError):
    """Base error for coverage analysis failures."""


class InvalidRouteData(TrailCoverageError):
    """Raised when a route definition yields no usable 2D line coordinates."""


class EngineNotInitialized(TrailCoverageError):
    """Raised when an analysis is requested before the route was loaded."""


class DegenerateTrace(TrailCoverageError):
    """Raised when a trace has fewer than two points or zero length.

    Never surfaced to callers of the engine: it is logged and the trace
    contributes no coverage points.
    """


class GeometryQueryFailure(TrailCoverageError):
    """Raised when a nearest-point or route-position query fails for a point."""


class CoverageAnalysisError(TrailCoverageError):
    """Raised by the host when the worker reports a failed analysis."""


class StravaAPIError(RuntimeError):
    """Base error for Strava API failures."""


class StravaPermissionError(StravaAPIError):
    """Raised when the API reports insufficient scopes or authentication issues."""


class StravaRateLimitError(StravaAPIError):
    """Raised when Strava answers HTTP 429."""


__all__ = [
    "TrailCoverageError",
    "InvalidRouteData",
    "EngineNotInitialized",
    "DegenerateTrace",
    "GeometryQueryFailure",
    "CoverageAnalysisError",
    "StravaAPIError",
    "StravaPermissionError",
    "StravaRateLimitError",
]
