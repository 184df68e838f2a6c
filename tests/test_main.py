"""Smoke tests for the command line entry point."""

from __future__ import annotations

import json

import pytest

from trail_coverage.main import main
from trail_coverage.progress_store import JsonFileProgressStore, load_coverage, load_ledger_data


@pytest.fixture
def route_file(tmp_path, route_geojson):
    path = tmp_path / "routes.geojson"
    path.write_text(json.dumps(route_geojson()), encoding="utf-8")
    return path


def _base_args(route_file, store_dir):
    return ["--route", str(route_file), "--store-dir", str(store_dir), "--user", "walker"]


def test_analyze_command_stores_progress(tmp_path, route_file, make_trace) -> None:
    trace_path = tmp_path / "morning_walk.json"
    trace_path.write_text(json.dumps([list(p) for p in make_trace(0.0, 1500.0)]), encoding="utf-8")
    store_dir = tmp_path / "store"

    code = main(_base_args(route_file, store_dir) + ["analyze", str(trace_path)])

    assert code == 0
    store = JsonFileProgressStore(store_dir)
    assert load_coverage(store, "walker")
    assert load_ledger_data(store, "walker")["analyzed_activity_ids"] == ["morning_walk"]


def test_analyze_accepts_strava_stream_payload(tmp_path, route_file, make_trace) -> None:
    latlng = [[lat, lon] for lon, lat in make_trace(0.0, 800.0)]
    trace_path = tmp_path / "streams.json"
    trace_path.write_text(json.dumps({"latlng": {"data": latlng}}), encoding="utf-8")
    store_dir = tmp_path / "store"

    code = main(_base_args(route_file, store_dir) + ["analyze", str(trace_path), "--activity-id", "77"])

    assert code == 0
    assert load_coverage(JsonFileProgressStore(store_dir), "walker")


def test_status_and_reset(tmp_path, route_file, make_trace) -> None:
    trace_path = tmp_path / "walk.json"
    trace_path.write_text(json.dumps([list(p) for p in make_trace(0.0, 1000.0)]), encoding="utf-8")
    store_dir = tmp_path / "store"
    args = _base_args(route_file, store_dir)
    main(args + ["analyze", str(trace_path)])

    assert main(args + ["status"]) == 0
    assert main(args + ["recompute"]) == 0
    assert main(args + ["reset"]) == 0
    assert load_coverage(JsonFileProgressStore(store_dir), "walker") == []


def test_missing_route_file_returns_2(tmp_path) -> None:
    code = main(_base_args(tmp_path / "missing.geojson", tmp_path / "store") + ["status"])

    assert code == 2


def test_unreadable_trace_returns_1(tmp_path, route_file) -> None:
    code = main(_base_args(route_file, tmp_path / "store") + ["analyze", str(tmp_path / "nope.json")])

    assert code == 1


def test_sync_without_token_returns_1(tmp_path, route_file) -> None:
    code = main(_base_args(route_file, tmp_path / "store") + ["sync", "--access-token", ""])

    assert code == 1
