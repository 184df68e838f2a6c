"""Dataclasses describing coverage analysis inputs and results."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Hashable, List, Tuple

from ..geometry import LonLat

Segment = List[LonLat]


@dataclass(slots=True)
class TraceMatch:
    """Route points matched while sampling one activity trace."""

    points: List[LonLat]
    samples: int
    trace_length_m: float


@dataclass(slots=True)
class PositionedPoint:
    """A coverage point together with its distance along the route."""

    position_km: float
    point: LonLat
    metric: Tuple[float, float]


@dataclass(slots=True)
class ProgressResult:
    """Outcome of one coverage analysis.

    ``updated_coverage`` supersedes the caller's prior coverage set and must
    be stored by overwrite, never merged again.
    """

    activity_id: Hashable
    segments: List[Segment]
    total_distance_km: float
    percentage: str
    percentage_value: float
    updated_coverage: List[LonLat]
    route_length_km: float
    new_points: int = 0
    excluded_points: int = 0
    diagnostics: Dict[str, Any] = field(default_factory=dict)

    @property
    def remaining_distance_km(self) -> float:
        return max(self.route_length_km - self.total_distance_km, 0.0)

    @property
    def overlaps_route(self) -> bool:
        return self.new_points > 0

    def to_payload(self) -> Dict[str, Any]:
        """Return a JSON-friendly representation of the result."""

        return {
            "activityId": self.activity_id,
            "segments": [[list(point) for point in seg] for seg in self.segments],
            "totalDistanceKm": self.total_distance_km,
            "percentage": self.percentage,
            "updatedCoveragePoints": [list(point) for point in self.updated_coverage],
        }


__all__ = ["PositionedPoint", "ProgressResult", "Segment", "TraceMatch"]
