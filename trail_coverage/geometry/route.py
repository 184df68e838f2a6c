"""Route index: parse a route definition into one measurable trail line."""

from __future__ import annotations

import json
import logging
import math
from pathlib import Path
from typing import Any, Iterator, List, Mapping, Optional, Sequence

from shapely.geometry import LineString

from ..errors import InvalidRouteData
from .models import ReferenceRoute
from .projection import LonLat, build_local_transformer, project_points

LOGGER = logging.getLogger(__name__)

_LINE_TYPES = {"LineString", "MultiLineString"}


def load_route(raw: Mapping[str, Any]) -> ReferenceRoute:
    """Build a :class:`ReferenceRoute` from GeoJSON.

    Accepts a ``FeatureCollection``, a single ``Feature`` or a bare geometry.
    Coordinates of every ``LineString`` and ``MultiLineString`` are
    concatenated in document order; any elevation component is dropped.

    Raises:
        InvalidRouteData: fewer than two valid 2D coordinates were found or
            the resulting line has no length.
    """

    if not isinstance(raw, Mapping):
        raise InvalidRouteData("Route definition must be a GeoJSON object")
    coordinates: List[LonLat] = []
    for geometry in _iter_geometries(raw):
        for line in _iter_lines(geometry):
            for coord in line:
                point = _as_2d(coord)
                if point is not None:
                    coordinates.append(point)
    return build_route(coordinates)


def load_route_file(path: str | Path) -> ReferenceRoute:
    """Read a GeoJSON route file from disk."""

    route_path = Path(path)
    try:
        with route_path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
    except (OSError, ValueError) as exc:
        raise InvalidRouteData(f"Unable to read route file {route_path}: {exc}") from exc
    route = load_route(payload)
    LOGGER.info(
        "Loaded route %s: %d points, %.2f km",
        route_path,
        len(route.coordinates),
        route.total_length_km,
    )
    return route


def load_serialized_route(
    serialized: str, total_length_km: Optional[float] = None
) -> ReferenceRoute:
    """Rebuild a route from :meth:`ReferenceRoute.serialize` output.

    A positive, finite ``total_length_km`` supplied by the sender is kept as
    the route length; otherwise the length is measured again.
    """

    try:
        payload = json.loads(serialized)
    except (TypeError, ValueError) as exc:
        raise InvalidRouteData(f"Unable to parse serialized route: {exc}") from exc
    route = load_route(payload)
    if (
        total_length_km is None
        or not math.isfinite(total_length_km)
        or total_length_km <= 0
    ):
        return route
    return ReferenceRoute(
        coordinates=route.coordinates,
        total_length_km=float(total_length_km),
        transformer=route.transformer,
        line=route.line,
    )


def build_route(coordinates: Sequence[LonLat]) -> ReferenceRoute:
    """Project and measure an ordered list of 2D coordinates."""

    if len(coordinates) < 2:
        raise InvalidRouteData(
            "No valid LineString or MultiLineString features with 2D coordinates found"
        )
    transformer = build_local_transformer(coordinates)
    metric = project_points(coordinates, transformer)
    line = LineString(metric)
    length_m = float(line.length)
    if not math.isfinite(length_m) or length_m <= 0:
        raise InvalidRouteData("Route geometry has zero length")
    return ReferenceRoute(
        coordinates=tuple(coordinates),
        total_length_km=length_m / 1000.0,
        transformer=transformer,
        line=line,
    )


def _iter_geometries(raw: Mapping[str, Any]) -> Iterator[Mapping[str, Any]]:
    kind = raw.get("type")
    if kind == "FeatureCollection":
        for feature in raw.get("features") or []:
            if isinstance(feature, Mapping):
                yield from _iter_geometries(feature)
    elif kind == "Feature":
        geometry = raw.get("geometry")
        if isinstance(geometry, Mapping):
            yield from _iter_geometries(geometry)
    elif kind == "GeometryCollection":
        for geometry in raw.get("geometries") or []:
            if isinstance(geometry, Mapping):
                yield from _iter_geometries(geometry)
    else:
        yield raw


def _iter_lines(geometry: Mapping[str, Any]) -> Iterator[Sequence[Any]]:
    kind = geometry.get("type")
    if kind not in _LINE_TYPES:
        return
    coords = geometry.get("coordinates") or []
    if kind == "LineString":
        yield coords
    else:
        for sub_line in coords:
            if isinstance(sub_line, (list, tuple)):
                yield sub_line


def _as_2d(coord: Any) -> LonLat | None:
    """Return the (lon, lat) part of a coordinate or ``None`` when unusable."""

    if not isinstance(coord, (list, tuple)) or len(coord) < 2:
        return None
    lon, lat = coord[0], coord[1]
    if isinstance(lon, bool) or isinstance(lat, bool):
        return None
    if not isinstance(lon, (int, float)) or not isinstance(lat, (int, float)):
        return None
    if not (math.isfinite(lon) and math.isfinite(lat)):
        return None
    return float(lon), float(lat)


__all__ = ["build_route", "load_route", "load_route_file", "load_serialized_route"]
