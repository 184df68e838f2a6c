"""Coverage engine: turns a trace plus prior coverage into progress metrics."""

from __future__ import annotations

import logging
from typing import Hashable, List, Optional, Sequence

from ..config import (
    COVERAGE_MERGE_THRESHOLD_M,
    COVERAGE_PROXIMITY_THRESHOLD_M,
    COVERAGE_SAMPLE_INTERVAL_M,
    COVERAGE_SEGMENT_BREAK_KM,
)
from ..errors import DegenerateTrace, EngineNotInitialized
from ..geometry import LonLat, ReferenceRoute, load_serialized_route
from .dedup import deduplicate_points
from .matching import ProgressCallback, match_trace_to_route
from .models import ProgressResult, Segment
from .segmentation import order_along_route, segment_length_km, split_segments


class CoverageEngine:
    """Owns one reference route and analyses activities against it.

    ``analyze`` is synchronous and keeps no state between calls besides the
    route, so a fresh engine per session (or per test) is all that is needed.
    """

    def __init__(
        self,
        *,
        sample_interval_m: float = COVERAGE_SAMPLE_INTERVAL_M,
        proximity_threshold_m: float = COVERAGE_PROXIMITY_THRESHOLD_M,
        merge_threshold_m: float = COVERAGE_MERGE_THRESHOLD_M,
        segment_break_km: float = COVERAGE_SEGMENT_BREAK_KM,
        logger: logging.Logger | None = None,
    ) -> None:
        self.sample_interval_m = sample_interval_m
        self.proximity_threshold_m = proximity_threshold_m
        self.merge_threshold_m = merge_threshold_m
        self.segment_break_km = segment_break_km
        self._route: Optional[ReferenceRoute] = None
        self._log = logger or logging.getLogger(self.__class__.__name__)

    @property
    def route(self) -> ReferenceRoute:
        if self._route is None:
            raise EngineNotInitialized("Reference route not initialized in engine")
        return self._route

    @property
    def is_initialized(self) -> bool:
        return self._route is not None

    def initialize(self, route: ReferenceRoute) -> None:
        self._route = route
        self._log.info(
            "Engine initialized with %d route points (%.2f km)",
            len(route.coordinates),
            route.total_length_km,
        )

    def initialize_from_serialized(
        self, serialized_route: str, total_length_km: float | None = None
    ) -> None:
        """Initialise from a serialised GeoJSON line, as sent by the host."""

        self.initialize(load_serialized_route(serialized_route, total_length_km))

    def analyze(
        self,
        trace: Optional[Sequence[Sequence[float]]],
        prior_coverage: Sequence[LonLat],
        activity_id: Hashable = None,
        progress: Optional[ProgressCallback] = None,
    ) -> ProgressResult:
        """Merge the trace's on-route points into ``prior_coverage``.

        ``trace=None`` recomputes segments and metrics from the prior coverage
        alone. The returned ``updated_coverage`` always contains every prior
        point that survives deduplication, so it never shrinks.
        """

        route = self.route
        new_points: List[LonLat] = []
        if trace is not None:
            try:
                match = match_trace_to_route(
                    trace,
                    route,
                    sample_interval_m=self.sample_interval_m,
                    proximity_threshold_m=self.proximity_threshold_m,
                    progress=progress,
                )
            except DegenerateTrace as exc:
                self._log.info(
                    "Activity %s contributes no coverage: %s", activity_id, exc
                )
            else:
                new_points = match.points

        combined: List[LonLat] = [(point[0], point[1]) for point in prior_coverage]
        combined.extend(new_points)
        unique = deduplicate_points(
            combined, route, merge_threshold_m=self.merge_threshold_m
        )

        ordered, excluded = order_along_route(unique, route)
        if excluded:
            self._log.warning(
                "Excluded %d coverage point(s) with indeterminate route position",
                excluded,
            )
        grouped = split_segments(ordered, break_km=self.segment_break_km)
        total_km = float(sum(segment_length_km(segment) for segment in grouped))
        percentage_value = total_km / route.total_length_km * 100.0
        if percentage_value > 100.0:
            self._log.warning(
                "Covered distance %.2f km exceeds route length %.2f km",
                total_km,
                route.total_length_km,
            )
        segments: List[Segment] = [
            [item.point for item in segment] for segment in grouped
        ]
        self._log.debug(
            "Activity %s: %d new, %d unique points, %d segments, %.2f km",
            activity_id,
            len(new_points),
            len(unique),
            len(segments),
            total_km,
        )
        return ProgressResult(
            activity_id=activity_id,
            segments=segments,
            total_distance_km=total_km,
            percentage=f"{percentage_value:.2f}",
            percentage_value=percentage_value,
            updated_coverage=unique,
            route_length_km=route.total_length_km,
            new_points=len(new_points),
            excluded_points=excluded,
            diagnostics={
                "prior_points": len(prior_coverage),
                "candidate_points": len(combined),
            },
        )


__all__ = ["CoverageEngine"]
