"""Ordering coverage points along the route and grouping them into segments."""

from __future__ import annotations

import logging
from typing import List, Sequence, Tuple

import numpy as np

from ..config import COVERAGE_SEGMENT_BREAK_KM
from ..errors import GeometryQueryFailure
from ..geometry import LonLat, ReferenceRoute
from .models import PositionedPoint

LOGGER = logging.getLogger(__name__)


def order_along_route(
    points: Sequence[LonLat], route: ReferenceRoute
) -> Tuple[List[PositionedPoint], int]:
    """Sort points by their distance along the route.

    Returns the ordered points and the number of points excluded because
    their route position could not be computed.
    """

    if not points:
        return [], 0
    metric = route.to_metric(points)
    positioned: List[PositionedPoint] = []
    excluded = 0
    for point, (x, y) in zip(points, metric):
        try:
            position = route.position_km(float(x), float(y))
        except GeometryQueryFailure as exc:
            excluded += 1
            LOGGER.debug("Excluding coverage point %s from ordering: %s", point, exc)
            continue
        positioned.append(
            PositionedPoint(position_km=position, point=point, metric=(float(x), float(y)))
        )
    positioned.sort(key=lambda item: item.position_km)
    return positioned, excluded


def split_segments(
    ordered: Sequence[PositionedPoint],
    *,
    break_km: float = COVERAGE_SEGMENT_BREAK_KM,
) -> List[List[PositionedPoint]]:
    """Split ordered points wherever the position gap exceeds ``break_km``.

    Runs of a single point are dropped: an isolated point covers no distance.
    """

    segments: List[List[PositionedPoint]] = []
    current: List[PositionedPoint] = []
    for item in ordered:
        if current and item.position_km - current[-1].position_km > break_km:
            if len(current) > 1:
                segments.append(current)
            current = []
        current.append(item)
    if len(current) > 1:
        segments.append(current)
    return segments


def segment_length_km(segment: Sequence[PositionedPoint]) -> float:
    """Length of the line through the segment's own points."""

    if len(segment) < 2:
        return 0.0
    coords = np.asarray([item.metric for item in segment], dtype=float)
    steps = np.linalg.norm(np.diff(coords, axis=0), axis=1)
    return float(np.sum(steps)) / 1000.0


__all__ = ["order_along_route", "segment_length_km", "split_segments"]
