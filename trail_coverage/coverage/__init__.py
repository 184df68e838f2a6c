"""Public entry points for the trail coverage analysis engine."""

from __future__ import annotations

from .dedup import deduplicate_points
from .engine import CoverageEngine
from .matching import match_trace_to_route, sample_distances
from .models import PositionedPoint, ProgressResult, Segment, TraceMatch
from .segmentation import order_along_route, segment_length_km, split_segments
from .worker import (
    INIT_ACTIVITY_ID,
    AnalyzeRequest,
    CoverageWorker,
    ErrorMessage,
    InitRequest,
    ProgressMessage,
    ReadyMessage,
    ResultMessage,
    WorkerMessage,
    is_terminal,
)

__all__ = [
    "INIT_ACTIVITY_ID",
    "AnalyzeRequest",
    "CoverageEngine",
    "CoverageWorker",
    "ErrorMessage",
    "InitRequest",
    "PositionedPoint",
    "ProgressMessage",
    "ProgressResult",
    "ReadyMessage",
    "ResultMessage",
    "Segment",
    "TraceMatch",
    "WorkerMessage",
    "deduplicate_points",
    "is_terminal",
    "match_trace_to_route",
    "order_along_route",
    "sample_distances",
    "segment_length_km",
    "split_segments",
]
