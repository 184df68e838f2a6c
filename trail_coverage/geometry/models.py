"""Dataclasses describing the trail's reference route."""

from __future__ import annotations

from dataclasses import dataclass, field
import json
import math
from typing import List, Sequence, Tuple

from pyproj import Transformer
from shapely.errors import GEOSException
from shapely.geometry import LineString, Point

from ..errors import GeometryQueryFailure
from .projection import LonLat, MetricArray, project_points, unproject_points


@dataclass(frozen=True, slots=True)
class ReferenceRoute:
    """Immutable trail geometry shared read-only by the coverage engine.

    ``coordinates`` are 2D ``(lon, lat)`` pairs. ``line`` is the same path in
    a local metric projection, used for every distance query so lengths and
    thresholds are measured consistently.
    """

    coordinates: Tuple[LonLat, ...]
    total_length_km: float
    transformer: Transformer = field(repr=False, compare=False)
    line: LineString = field(repr=False, compare=False)

    @property
    def total_length_m(self) -> float:
        return self.total_length_km * 1000.0

    def to_metric(self, points: Sequence[Sequence[float]]) -> MetricArray:
        """Project lon/lat points into the route's metric coordinate system."""

        return project_points(points, self.transformer)

    def to_lonlat(self, points: Sequence[Sequence[float]]) -> List[LonLat]:
        """Convert metric points back to lon/lat."""

        return unproject_points(points, self.transformer)

    def nearest(self, x: float, y: float) -> Tuple[Point, float]:
        """Return the nearest route point to ``(x, y)`` and the offset in metres."""

        sample = Point(x, y)
        nearest = self.line.interpolate(self.line.project(sample))
        return nearest, float(sample.distance(nearest))

    def position_km(self, x: float, y: float) -> float:
        """Return the distance along the route to the point nearest ``(x, y)``.

        Raises:
            GeometryQueryFailure: the point or the computed position is not finite.
        """

        if not (math.isfinite(x) and math.isfinite(y)):
            raise GeometryQueryFailure(f"Non-finite coordinate ({x}, {y})")
        try:
            along_m = float(self.line.project(Point(x, y)))
        except (GEOSException, ValueError) as exc:
            raise GeometryQueryFailure(str(exc)) from exc
        if not math.isfinite(along_m):
            raise GeometryQueryFailure(f"Indeterminate route position for ({x}, {y})")
        return along_m / 1000.0

    def serialize(self) -> str:
        """Return the route geometry as a GeoJSON LineString string."""

        return json.dumps(
            {
                "type": "LineString",
                "coordinates": [[lon, lat] for lon, lat in self.coordinates],
            }
        )


__all__ = ["LonLat", "ReferenceRoute"]
