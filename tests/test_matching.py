"""Tests for sampling a trace and matching samples onto the route."""

from __future__ import annotations

from typing import List

import numpy as np
import pytest

from trail_coverage.coverage.matching import (
    match_trace_to_route,
    progress_tick,
    sample_distances,
)
from trail_coverage.errors import DegenerateTrace


def test_sample_distances_include_final_remainder() -> None:
    assert sample_distances(120.0, 50.0).tolist() == [0.0, 50.0, 100.0, 120.0]
    assert sample_distances(100.0, 50.0).tolist() == [0.0, 50.0, 100.0]
    assert sample_distances(30.0, 50.0).tolist() == [0.0, 30.0]


def test_sample_distances_rejects_non_positive_interval() -> None:
    with pytest.raises(ValueError):
        sample_distances(100.0, 0.0)


def test_progress_tick_rounds_half_up() -> None:
    assert progress_tick(0.0, 200.0) == 0
    assert progress_tick(1.0, 200.0) == 1  # 0.5% rounds up
    assert progress_tick(199.0, 200.0) == 100  # 99.5% rounds up
    assert progress_tick(200.0, 200.0) == 100


def test_on_route_trace_matches_every_sample(route, make_trace) -> None:
    ticks: List[int] = []
    trace = make_trace(0.0, 1000.0)

    match = match_trace_to_route(trace, route, progress=ticks.append)

    assert match.samples == 21
    assert len(match.points) == 21
    assert match.trace_length_m == pytest.approx(1000.0, rel=1e-3)
    lons = np.asarray([pt[0] for pt in match.points])
    assert np.allclose(lons, -3.0, atol=1e-6)


def test_matched_points_lie_on_route_not_on_trace(route, make_trace) -> None:
    trace = make_trace(0.0, 500.0, east_m=60.0)

    match = match_trace_to_route(trace, route)

    assert match.points
    metric = route.to_metric(match.points)
    offsets = [route.nearest(float(x), float(y))[1] for x, y in metric]
    assert max(offsets) < 0.01


def test_proximity_threshold_is_inclusive_of_100m(route, make_trace) -> None:
    near = match_trace_to_route(make_trace(0.0, 500.0, east_m=95.0), route)
    far = match_trace_to_route(make_trace(0.0, 500.0, east_m=150.0), route)

    assert len(near.points) == near.samples
    assert far.points == []


def test_progress_is_monotonic_and_ends_with_single_100(route, make_trace) -> None:
    ticks: List[int] = []

    match_trace_to_route(make_trace(0.0, 2730.0, east_m=500.0), route, progress=ticks.append)

    assert ticks[0] == 0
    assert ticks == sorted(ticks)
    assert len(ticks) == len(set(ticks))
    assert ticks[-1] == 100
    assert ticks.count(100) == 1


def test_short_trace_still_reports_completion(route, make_trace) -> None:
    ticks: List[int] = []

    match_trace_to_route(make_trace(0.0, 20.0), route, progress=ticks.append)

    assert ticks == [0, 100]


@pytest.mark.parametrize("count", [0, 1])
def test_too_few_points_is_degenerate(route, point_at, count) -> None:
    with pytest.raises(DegenerateTrace):
        match_trace_to_route([point_at(100.0)] * count, route)


def test_zero_length_trace_emits_no_progress(route, point_at) -> None:
    ticks: List[int] = []

    with pytest.raises(DegenerateTrace):
        match_trace_to_route([point_at(100.0)] * 5, route, progress=ticks.append)

    assert ticks == []
