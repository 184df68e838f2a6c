"""Reference route geometry: parsing, projection and measurement."""

from .models import LonLat, ReferenceRoute
from .projection import (
    MetricArray,
    as_lonlat_array,
    build_local_transformer,
    project_points,
    unproject_points,
)
from .route import build_route, load_route, load_route_file, load_serialized_route

__all__ = [
    "LonLat",
    "MetricArray",
    "ReferenceRoute",
    "as_lonlat_array",
    "build_local_transformer",
    "build_route",
    "load_route",
    "load_route_file",
    "load_serialized_route",
    "project_points",
    "unproject_points",
]
