"""Trace-to-route matching: sample an activity and keep on-route points."""

from __future__ import annotations

import logging
import math
from typing import Callable, List, Optional, Sequence

import numpy as np
from numpy.typing import NDArray
from shapely.geometry import LineString

from ..config import COVERAGE_PROXIMITY_THRESHOLD_M, COVERAGE_SAMPLE_INTERVAL_M
from ..errors import DegenerateTrace
from ..geometry import LonLat, ReferenceRoute
from .models import TraceMatch

LOGGER = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]


def sample_distances(total_length: float, interval_m: float) -> NDArray[np.float64]:
    """Return monotonically increasing sample distances that include the end point."""

    if interval_m <= 0:
        raise ValueError("interval_m must be greater than zero")
    distances = [0.0]
    current = interval_m
    while current < total_length:
        distances.append(current)
        current += interval_m
    if total_length > 0:
        distances.append(total_length)
    return np.asarray(distances, dtype=float)


def progress_tick(distance: float, total_length: float) -> int:
    """Percentage of the trace walked, rounded half up."""

    return int(math.floor(distance / total_length * 100.0 + 0.5))


def match_trace_to_route(
    trace: Sequence[Sequence[float]],
    route: ReferenceRoute,
    *,
    sample_interval_m: float = COVERAGE_SAMPLE_INTERVAL_M,
    proximity_threshold_m: float = COVERAGE_PROXIMITY_THRESHOLD_M,
    progress: Optional[ProgressCallback] = None,
) -> TraceMatch:
    """Walk ``trace`` and collect the route points it passes within range of.

    The trace is sampled every ``sample_interval_m`` metres, including its
    final point. For each sample the nearest route point is recorded when it
    lies within ``proximity_threshold_m``. ``progress`` receives increasing
    percentages and always ends with 100.

    Raises:
        DegenerateTrace: the trace has fewer than two points or zero length.
    """

    if len(trace) < 2:
        raise DegenerateTrace(f"Trace has {len(trace)} point(s)")
    metric = route.to_metric(trace)
    finite = metric[np.all(np.isfinite(metric), axis=1)]
    if finite.shape[0] < 2:
        raise DegenerateTrace("Trace has fewer than two finite points")
    line = LineString(finite)
    total_length = float(line.length)
    if not math.isfinite(total_length) or total_length <= 0:
        raise DegenerateTrace("Trace has zero length")

    matched: List[tuple[float, float]] = []
    targets = sample_distances(total_length, sample_interval_m)
    last_progress = -1
    for distance in targets:
        sample = line.interpolate(float(distance))
        nearest, offset = route.nearest(sample.x, sample.y)
        if offset <= proximity_threshold_m:
            matched.append((nearest.x, nearest.y))
        tick = progress_tick(float(distance), total_length)
        if tick > last_progress:
            if progress is not None:
                progress(tick)
            last_progress = tick
    if last_progress < 100 and progress is not None:
        progress(100)

    points: List[LonLat] = route.to_lonlat(matched)
    LOGGER.debug(
        "Sampled %d points over %.0f m; %d on route",
        targets.size,
        total_length,
        len(points),
    )
    return TraceMatch(
        points=points, samples=int(targets.size), trace_length_m=total_length
    )


__all__ = ["ProgressCallback", "match_trace_to_route", "progress_tick", "sample_distances"]
