"""Strava activity provider: activity listings and GPS streams.

Token acquisition is outside this module; every call takes a ready access
token. Strava streams arrive as ``[lat, lon]`` pairs and are converted to the
engine's ``(lon, lat)`` convention here, at the boundary, so no other module
needs to know about the provider's axis order.
"""

from __future__ import annotations

from datetime import datetime
import logging
from threading import RLock
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from cachetools import TTLCache
from polyline import decode as polyline_decode
import requests

from .config import (
    ACTIVITY_STREAM_CACHE_SIZE,
    ACTIVITY_STREAM_CACHE_TTL_S,
    ALLOWED_ACTIVITY_TYPES,
    REQUEST_TIMEOUT,
    STRAVA_ACTIVITIES_PER_PAGE,
    STRAVA_BASE_URL,
    STRAVA_MAX_ACTIVITY_PAGES,
)
from .errors import StravaAPIError, StravaPermissionError, StravaRateLimitError
from .geometry import LonLat
from .utils import swap_axes, to_epoch_seconds

LOGGER = logging.getLogger(__name__)

_StreamCacheKey = Tuple[str, int]

# Keyed by (token, activity_id) so different athletes never share entries.
_stream_cache: TTLCache[_StreamCacheKey, List[LonLat]] = TTLCache(
    maxsize=max(1, ACTIVITY_STREAM_CACHE_SIZE), ttl=max(1, ACTIVITY_STREAM_CACHE_TTL_S)
)
_stream_cache_lock = RLock()


def _http_get(
    path: str,
    token: str,
    *,
    params: Dict[str, Any] | None = None,
) -> Any:
    """Authenticated GET against the Strava API with error mapping."""

    url = f"{STRAVA_BASE_URL}{path}"
    headers = {"Authorization": f"Bearer {token}"}
    LOGGER.debug("GET %s params=%s", url, params)
    try:
        response = requests.get(
            url, headers=headers, params=params, timeout=REQUEST_TIMEOUT
        )
    except requests.RequestException as exc:
        raise StravaAPIError(f"Request to {path} failed: {exc}") from exc
    status = response.status_code
    if status == 429:
        raise StravaRateLimitError(
            "Strava API rate limit exceeded; wait 15 minutes and try again"
        )
    if status in (401, 403):
        raise StravaPermissionError(f"Strava rejected credentials ({status})")
    if status >= 400:
        raise StravaAPIError(f"API error ({status}): {response.text[:200]}")
    try:
        return response.json()
    except ValueError as exc:
        raise StravaAPIError(f"Invalid JSON from {path}") from exc


def is_trail_activity(
    activity: Mapping[str, Any], allowed: Iterable[str] = ALLOWED_ACTIVITY_TYPES
) -> bool:
    """Return ``True`` when the activity's type is one counted on the trail.

    Either ``sport_type`` or ``type`` may match, case-insensitively. An empty
    ``allowed`` collection disables filtering.
    """

    allowed_set = {value.lower() for value in allowed}
    if not allowed_set:
        return True
    for key in ("sport_type", "type"):
        value = activity.get(key)
        if value is not None and str(value).strip().lower() in allowed_set:
            return True
    return False


def fetch_activities(
    token: str,
    *,
    after: Optional[datetime] = None,
    allowed_types: Iterable[str] = ALLOWED_ACTIVITY_TYPES,
    max_pages: int = STRAVA_MAX_ACTIVITY_PAGES,
) -> List[Dict[str, Any]]:
    """Return the athlete's activities of the allowed types, newest pages first."""

    activities: List[Dict[str, Any]] = []
    allowed = list(allowed_types)
    for page in range(1, max(1, max_pages) + 1):
        params: Dict[str, Any] = {"per_page": STRAVA_ACTIVITIES_PER_PAGE, "page": page}
        if after is not None:
            params["after"] = to_epoch_seconds(after)
        payload = _http_get("/athlete/activities", token, params=params)
        if not isinstance(payload, list) or not payload:
            break
        activities.extend(
            item for item in payload if isinstance(item, dict) and is_trail_activity(item, allowed)
        )
        if len(payload) < STRAVA_ACTIVITIES_PER_PAGE:
            break
    LOGGER.info("Fetched %d trail activities", len(activities))
    return activities


def fetch_activity_trace(token: str, activity_id: int) -> List[LonLat]:
    """Return the activity's GPS stream as ``(lon, lat)`` tuples.

    Activities without GPS data (private maps, indoor sessions) yield an
    empty list rather than an error.
    """

    cache_key: _StreamCacheKey = (token, int(activity_id))
    with _stream_cache_lock:
        cached = _stream_cache.get(cache_key)
    if cached is not None:
        return cached

    payload = _http_get(
        f"/activities/{activity_id}/streams",
        token,
        params={"keys": "latlng", "key_by_type": "true"},
    )
    latlng: List[Any] = []
    if isinstance(payload, dict):
        stream = payload.get("latlng")
        if isinstance(stream, dict):
            latlng = stream.get("data") or []
    else:
        LOGGER.warning("Unexpected streams response format: %s", type(payload))
    trace = swap_axes(latlng)
    if not trace:
        LOGGER.warning("No GPS data found for activity %s", activity_id)
    with _stream_cache_lock:
        _stream_cache[cache_key] = trace
    return trace


def decode_summary_polyline(encoded: str | None) -> List[LonLat]:
    """Decode an encoded polyline (``map.summary_polyline``) to ``(lon, lat)``."""

    if not encoded:
        return []
    try:
        decoded = polyline_decode(encoded)
    except (ValueError, TypeError, IndexError) as exc:
        raise ValueError("Unable to decode polyline") from exc
    return swap_axes(decoded)


def clear_stream_cache() -> None:
    with _stream_cache_lock:
        _stream_cache.clear()


__all__ = [
    "clear_stream_cache",
    "decode_summary_polyline",
    "fetch_activities",
    "fetch_activity_trace",
    "is_trail_activity",
]
