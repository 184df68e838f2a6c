"""Global pytest fixtures & helpers.

Adds project root to path and provides a small synthetic trail so geometry
tests can reason in metres: the route runs due north along the 3°W
meridian (the central meridian of UTM zone 30) for 5 km.
"""
from __future__ import annotations

import os
import sys
from typing import List, Tuple

import pytest
from pyproj import Geod

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from trail_coverage.coverage import CoverageEngine
from trail_coverage.geometry import build_route

GEOD = Geod(ellps="WGS84")
START_LON = -3.0
START_LAT = 50.5
ROUTE_LENGTH_M = 5000.0


# --- Factory helpers -------------------------------------------------
def point_at(along_m: float, east_m: float = 0.0) -> Tuple[float, float]:
    """Return (lon, lat) ``along_m`` north of the start, shifted ``east_m`` east."""
    lon, lat, _ = GEOD.fwd(START_LON, START_LAT, 0.0, along_m)
    if east_m:
        azimuth = 90.0 if east_m > 0 else 270.0
        lon, lat, _ = GEOD.fwd(lon, lat, azimuth, abs(east_m))
    return lon, lat


def make_trace(start_m: float, end_m: float, east_m: float = 0.0, step_m: float = 100.0) -> List[Tuple[float, float]]:
    points = []
    along = start_m
    while along < end_m:
        points.append(point_at(along, east_m))
        along += step_m
    points.append(point_at(end_m, east_m))
    return points


def route_coordinates() -> List[Tuple[float, float]]:
    return [point_at(d) for d in range(0, int(ROUTE_LENGTH_M) + 1, 500)]


def route_feature_collection(with_elevation: bool = False) -> dict:
    coords = [list(c) for c in route_coordinates()]
    if with_elevation:
        coords = [c + [120.0 + i * 35.0] for i, c in enumerate(coords)]
    return {
        "type": "FeatureCollection",
        "features": [
            {"type": "Feature", "properties": {}, "geometry": {"type": "LineString", "coordinates": coords}},
        ],
    }


# --- Fixtures --------------------------------------------------------
@pytest.fixture
def route():
    return build_route(route_coordinates())


@pytest.fixture
def engine(route):
    eng = CoverageEngine()
    eng.initialize(route)
    return eng


@pytest.fixture(name="point_at")
def point_at_fixture():
    return point_at


@pytest.fixture(name="make_trace")
def make_trace_fixture():
    return make_trace


@pytest.fixture(name="route_geojson")
def route_geojson_fixture():
    return route_feature_collection
