"""Tests for parsing and measuring the reference route."""

from __future__ import annotations

import json
import math

import pytest

from trail_coverage.errors import GeometryQueryFailure, InvalidRouteData
from trail_coverage.geometry import (
    load_route,
    load_route_file,
    load_serialized_route,
)


def test_load_route_measures_length_in_km(route_geojson) -> None:
    route = load_route(route_geojson())

    assert len(route.coordinates) == 11
    assert route.total_length_km == pytest.approx(5.0, rel=1e-3)


def test_elevation_component_is_dropped(route_geojson) -> None:
    flat = load_route(route_geojson())
    with_z = load_route(route_geojson(with_elevation=True))

    assert all(len(coord) == 2 for coord in with_z.coordinates)
    assert with_z.coordinates == flat.coordinates
    assert with_z.total_length_km == pytest.approx(flat.total_length_km)


def test_multilinestring_parts_are_concatenated_in_order(point_at) -> None:
    first = [list(point_at(0)), list(point_at(1000))]
    second = [list(point_at(1500)), list(point_at(3000))]
    raw = {
        "type": "FeatureCollection",
        "features": [
            {"type": "Feature", "geometry": {"type": "MultiLineString", "coordinates": [first, second]}},
            {"type": "Feature", "geometry": {"type": "Point", "coordinates": [0.0, 0.0]}},
        ],
    }

    route = load_route(raw)

    assert len(route.coordinates) == 4
    assert route.coordinates[-1] == pytest.approx(point_at(3000))
    assert route.total_length_km == pytest.approx(3.0, rel=1e-3)


def test_invalid_coordinates_are_filtered(point_at) -> None:
    raw = {
        "type": "Feature",
        "geometry": {
            "type": "LineString",
            "coordinates": [list(point_at(0)), ["x", "y"], [1.0], list(point_at(800))],
        },
    }

    route = load_route(raw)

    assert len(route.coordinates) == 2


@pytest.mark.parametrize(
    "raw",
    [
        {"type": "FeatureCollection", "features": []},
        {"type": "FeatureCollection", "features": [{"type": "Feature", "geometry": {"type": "Point", "coordinates": [1.0, 2.0]}}]},
        {"type": "LineString", "coordinates": [[-3.0, 50.5]]},
        {"type": "LineString", "coordinates": [[-3.0, 50.5], [-3.0, 50.5]]},
    ],
)
def test_unusable_route_raises(raw) -> None:
    with pytest.raises(InvalidRouteData):
        load_route(raw)


def test_load_route_file_reads_geojson(tmp_path, route_geojson) -> None:
    path = tmp_path / "routes.geojson"
    path.write_text(json.dumps(route_geojson()), encoding="utf-8")

    route = load_route_file(path)

    assert route.total_length_km == pytest.approx(5.0, rel=1e-3)


def test_load_route_file_missing_raises(tmp_path) -> None:
    with pytest.raises(InvalidRouteData):
        load_route_file(tmp_path / "missing.geojson")


def test_serialized_route_round_trip_keeps_supplied_length(route) -> None:
    restored = load_serialized_route(route.serialize(), 630.0)
    measured = load_serialized_route(route.serialize())

    assert restored.coordinates == route.coordinates
    assert restored.total_length_km == 630.0
    assert measured.total_length_km == pytest.approx(route.total_length_km)


def test_serialized_route_rejects_garbage() -> None:
    with pytest.raises(InvalidRouteData):
        load_serialized_route("not json")


def test_position_km_rejects_non_finite(route) -> None:
    with pytest.raises(GeometryQueryFailure):
        route.position_km(math.nan, 0.0)


def test_position_km_along_route(route, point_at) -> None:
    (x, y), = route.to_metric([point_at(2500, east_m=40.0)])

    assert route.position_km(float(x), float(y)) == pytest.approx(2.5, rel=2e-3)


def test_feature_wrapping_geometry_collection_is_read(point_at) -> None:
    raw = {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "geometry": {
                    "type": "GeometryCollection",
                    "geometries": [
                        {"type": "Point", "coordinates": [0.0, 0.0]},
                        {"type": "LineString", "coordinates": [list(point_at(0)), list(point_at(2000))]},
                    ],
                },
            }
        ],
    }

    route = load_route(raw)

    assert len(route.coordinates) == 2
    assert route.total_length_km == pytest.approx(2.0, rel=1e-3)
