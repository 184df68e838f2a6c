import json
from datetime import datetime, timezone

import polyline
import pytest
import requests

from trail_coverage import strava_client
from trail_coverage.errors import StravaAPIError, StravaPermissionError, StravaRateLimitError


class FakeResp:
    """Minimal fake response matching needed parts of requests.Response."""

    def __init__(self, status_code=200, data=None, raw_text=None):
        self.status_code = status_code
        self._data = data if data is not None else []
        self._raw_text = raw_text

    def json(self):
        if self._raw_text is not None:
            return json.loads(self._raw_text)
        return self._data

    @property
    def text(self):
        if self._raw_text is not None:
            return self._raw_text
        return json.dumps(self._data)


@pytest.fixture(autouse=True)
def clear_cache():
    strava_client.clear_stream_cache()
    yield
    strava_client.clear_stream_cache()


def _install(monkeypatch, handler):
    calls = []

    def fake_get(url, headers=None, params=None, timeout=None):
        calls.append({"url": url, "headers": headers, "params": params})
        return handler(url, params or {})

    monkeypatch.setattr(strava_client.requests, "get", fake_get)
    return calls


def test_fetch_activity_trace_swaps_axes_and_caches(monkeypatch):
    stream = {"latlng": {"data": [[50.5, -3.0], [50.6, -3.1]]}}
    calls = _install(monkeypatch, lambda url, params: FakeResp(200, stream))

    first = strava_client.fetch_activity_trace("tok", 99)
    second = strava_client.fetch_activity_trace("tok", 99)

    assert first == [(-3.0, 50.5), (-3.1, 50.6)]
    assert second == first
    assert len(calls) == 1
    assert calls[0]["url"].endswith("/activities/99/streams")
    assert calls[0]["headers"]["Authorization"] == "Bearer tok"
    assert calls[0]["params"]["keys"] == "latlng"


def test_cache_is_keyed_per_token(monkeypatch):
    stream = {"latlng": {"data": [[50.5, -3.0]]}}
    calls = _install(monkeypatch, lambda url, params: FakeResp(200, stream))

    strava_client.fetch_activity_trace("a", 1)
    strava_client.fetch_activity_trace("b", 1)

    assert len(calls) == 2


def test_activity_without_gps_yields_empty_trace(monkeypatch, caplog):
    _install(monkeypatch, lambda url, params: FakeResp(200, {"distance": {"data": [1, 2]}}))

    assert strava_client.fetch_activity_trace("tok", 5) == []
    assert any("No GPS data" in rec.getMessage() for rec in caplog.records)


@pytest.mark.parametrize(
    "status,exc_type",
    [(429, StravaRateLimitError), (401, StravaPermissionError), (403, StravaPermissionError), (500, StravaAPIError)],
)
def test_http_errors_are_mapped(monkeypatch, status, exc_type):
    _install(monkeypatch, lambda url, params: FakeResp(status, {"message": "nope"}))

    with pytest.raises(exc_type):
        strava_client.fetch_activity_trace("tok", 1)


def test_network_failure_becomes_api_error(monkeypatch):
    def boom(url, headers=None, params=None, timeout=None):
        raise requests.ConnectionError("offline")

    monkeypatch.setattr(strava_client.requests, "get", boom)

    with pytest.raises(StravaAPIError):
        strava_client.fetch_activities("tok")


def test_invalid_json_becomes_api_error(monkeypatch):
    _install(monkeypatch, lambda url, params: FakeResp(200, raw_text="<html>"))

    with pytest.raises(StravaAPIError):
        strava_client.fetch_activity_trace("tok", 1)


def test_fetch_activities_pages_and_filters_types(monkeypatch):
    monkeypatch.setattr(strava_client, "STRAVA_ACTIVITIES_PER_PAGE", 2)
    pages = {
        1: [{"id": 1, "type": "Hike"}, {"id": 2, "type": "Ride"}],
        2: [{"id": 3, "sport_type": "Walk", "type": "Walk"}, {"id": 4, "type": "Run"}],
        3: [{"id": 5, "type": "walk"}],
    }
    calls = _install(monkeypatch, lambda url, params: FakeResp(200, pages.get(params["page"], [])))
    after = datetime(2024, 1, 1, tzinfo=timezone.utc)

    activities = strava_client.fetch_activities("tok", after=after)

    assert [a["id"] for a in activities] == [1, 3, 5]
    assert [c["params"]["page"] for c in calls] == [1, 2, 3]
    assert all(c["params"]["after"] == int(after.timestamp()) for c in calls)


def test_fetch_activities_respects_page_cap(monkeypatch):
    monkeypatch.setattr(strava_client, "STRAVA_ACTIVITIES_PER_PAGE", 1)
    calls = _install(monkeypatch, lambda url, params: FakeResp(200, [{"id": params["page"], "type": "Hike"}]))

    activities = strava_client.fetch_activities("tok", max_pages=3)

    assert len(activities) == 3
    assert len(calls) == 3


@pytest.mark.parametrize(
    "activity,expected",
    [
        ({"type": "Hike"}, True),
        ({"sport_type": "Walk"}, True),
        ({"type": " hike "}, True),
        ({"type": "Ride"}, False),
        ({}, False),
    ],
)
def test_is_trail_activity(activity, expected):
    assert strava_client.is_trail_activity(activity, {"hike", "walk"}) is expected


def test_empty_allow_list_accepts_everything():
    assert strava_client.is_trail_activity({"type": "Ride"}, [])


def test_decode_summary_polyline_returns_lon_lat():
    encoded = polyline.encode([(50.5, -3.0), (50.6, -3.1)])

    decoded = strava_client.decode_summary_polyline(encoded)

    assert decoded == [pytest.approx((-3.0, 50.5)), pytest.approx((-3.1, 50.6))]
    assert strava_client.decode_summary_polyline(None) == []
