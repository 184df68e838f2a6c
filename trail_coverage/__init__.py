"""Trail coverage tracker package."""

from .coverage import CoverageEngine, CoverageWorker, ProgressResult
from .errors import (
    EngineNotInitialized,
    InvalidRouteData,
    TrailCoverageError,
)
from .geometry import ReferenceRoute, load_route, load_route_file
from .main import main

__all__ = [
    "main",
    "CoverageEngine",
    "CoverageWorker",
    "ProgressResult",
    "ReferenceRoute",
    "load_route",
    "load_route_file",
    "EngineNotInitialized",
    "InvalidRouteData",
    "TrailCoverageError",
]
