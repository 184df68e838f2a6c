"""Service layer orchestrating the coverage worker and the progress store."""

from .coverage_service import (
    CoverageService,
    CoverageServiceConfig,
    RECOMPUTE_ACTIVITY_ID,
    summarize,
)

__all__ = [
    "CoverageService",
    "CoverageServiceConfig",
    "RECOMPUTE_ACTIVITY_ID",
    "summarize",
]
