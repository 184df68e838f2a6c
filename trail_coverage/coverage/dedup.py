"""Coverage point deduplication within the merge threshold."""

from __future__ import annotations

import math
from collections import defaultdict
from typing import DefaultDict, Dict, List, Sequence, Tuple

import numpy as np

from ..config import COVERAGE_MERGE_THRESHOLD_M
from ..geometry import LonLat, ReferenceRoute

_Cell = Tuple[int, int]


def deduplicate_points(
    points: Sequence[LonLat],
    route: ReferenceRoute,
    *,
    merge_threshold_m: float = COVERAGE_MERGE_THRESHOLD_M,
) -> List[LonLat]:
    """Keep each point only if no already-kept point lies within the threshold.

    Points are scanned in input order, so earlier (prior) coverage wins over
    later matches. Kept points are bucketed in a grid of threshold-sized
    cells; only the 3x3 neighbourhood is compared, which yields the same
    result as comparing against every kept point. Points whose projection is
    not finite cannot be compared and are kept unchanged.
    """

    if not points:
        return []
    if merge_threshold_m <= 0:
        return list(points)
    metric = route.to_metric(points)
    grid: DefaultDict[_Cell, List[Tuple[float, float]]] = defaultdict(list)
    kept: List[LonLat] = []
    threshold_sq = merge_threshold_m * merge_threshold_m
    for point, (x, y) in zip(points, metric):
        if not (np.isfinite(x) and np.isfinite(y)):
            kept.append(point)
            continue
        cell = (math.floor(x / merge_threshold_m), math.floor(y / merge_threshold_m))
        if _has_neighbour(grid, cell, float(x), float(y), threshold_sq):
            continue
        grid[cell].append((float(x), float(y)))
        kept.append(point)
    return kept


def _has_neighbour(
    grid: Dict[_Cell, List[Tuple[float, float]]],
    cell: _Cell,
    x: float,
    y: float,
    threshold_sq: float,
) -> bool:
    cx, cy = cell
    for dx in (-1, 0, 1):
        for dy in (-1, 0, 1):
            for kx, ky in grid.get((cx + dx, cy + dy), ()):
                if (kx - x) ** 2 + (ky - y) ** 2 <= threshold_sq:
                    return True
    return False


__all__ = ["deduplicate_points"]
