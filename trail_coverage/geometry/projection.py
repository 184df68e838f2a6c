"""Local metric projection helpers for lon/lat geometry."""

from __future__ import annotations

from typing import Iterable, List, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray
from pyproj import CRS, Transformer
from pyproj.enums import TransformDirection

LonLat = Tuple[float, float]
MetricArray = NDArray[np.float64]


def as_lonlat_array(points: Iterable[Sequence[float]]) -> NDArray[np.float64]:
    """Return ``points`` as an ``(n, 2)`` float array, dropping any z column."""

    array = np.asarray(list(points), dtype=float)
    if array.size == 0:
        return np.empty((0, 2), dtype=float)
    if array.ndim != 2 or array.shape[1] < 2:
        raise ValueError("Expected a sequence of [lon, lat] coordinates")
    return array[:, :2]


def build_local_transformer(points: Sequence[Sequence[float]]) -> Transformer:
    """Build a UTM transformer for the zone containing the points' centroid."""

    array = as_lonlat_array(points)
    if array.shape[0] == 0:
        raise ValueError("Cannot build a projection for an empty point collection")
    mean_lon = float(np.mean(array[:, 0]))
    mean_lat = float(np.mean(array[:, 1]))
    zone = int((mean_lon + 180.0) // 6.0) + 1
    zone = max(1, min(zone, 60))
    if mean_lat >= 0:
        epsg = 32600 + zone
    else:
        epsg = 32700 + zone
    try:
        target_crs = CRS.from_epsg(epsg)
    except Exception:
        target_crs = CRS.from_epsg(3857)
    return Transformer.from_crs(CRS.from_epsg(4326), target_crs, always_xy=True)


def project_points(
    points: Iterable[Sequence[float]], transformer: Transformer
) -> MetricArray:
    """Project lon/lat pairs through an existing transformer."""

    array = as_lonlat_array(points)
    if array.shape[0] == 0:
        return np.empty((0, 2), dtype=float)
    xs, ys = transformer.transform(array[:, 0], array[:, 1])
    return np.column_stack((xs, ys)).astype(float, copy=False)


def unproject_points(
    points: Iterable[Sequence[float]], transformer: Transformer
) -> List[LonLat]:
    """Convert metric coordinates back to lon/lat tuples."""

    array = np.asarray(list(points), dtype=float)
    if array.size == 0:
        return []
    lons, lats = transformer.transform(
        array[:, 0], array[:, 1], direction=TransformDirection.INVERSE
    )
    return [(float(lon), float(lat)) for lon, lat in zip(lons, lats)]


__all__ = [
    "LonLat",
    "MetricArray",
    "as_lonlat_array",
    "build_local_transformer",
    "project_points",
    "unproject_points",
]
