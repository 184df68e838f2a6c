"""Central configuration for the trail coverage tracker.

All values are constants imported by the rest of the package. Adjust as needed
for your environment. Secrets are read from environment variables (optionally
via a local `.env`).
"""

from __future__ import annotations

import importlib
import os


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_set(key: str, default: str) -> set[str]:
    raw = os.getenv(key, default)
    return {item.strip().lower() for item in raw.split(",") if item.strip()}


# Load .env variables when python-dotenv is available.
_load_dotenv = None
try:
    _dotenv_mod = importlib.import_module("dotenv")
    _load_dotenv = getattr(_dotenv_mod, "load_dotenv", None)
except Exception:
    _load_dotenv = None

if callable(_load_dotenv):
    # Load .env from the current directory or any parent folder.
    _load_dotenv()


# ---------------------------------------------------------------------------
# Input/Output
# ---------------------------------------------------------------------------
# GeoJSON file holding the trail's reference route (LineString features).
ROUTE_FILE = os.getenv("TRAIL_ROUTE_FILE", "routes.geojson")

# Directory used by the JSON file progress store (one file per key).
PROGRESS_STORE_DIR = os.getenv("TRAIL_PROGRESS_STORE_DIR", "trail_progress")


# ---------------------------------------------------------------------------
# Coverage analysis thresholds
# ---------------------------------------------------------------------------
# Distance (metres) between successive samples taken along an activity trace.
COVERAGE_SAMPLE_INTERVAL_M = _env_float("COVERAGE_SAMPLE_INTERVAL_M", 50.0)

# Maximum distance (metres) between a trace sample and the route for the
# sample to count as "on the route".
COVERAGE_PROXIMITY_THRESHOLD_M = _env_float("COVERAGE_PROXIMITY_THRESHOLD_M", 100.0)

# Coverage points closer than this (metres) are treated as the same point.
COVERAGE_MERGE_THRESHOLD_M = _env_float("COVERAGE_MERGE_THRESHOLD_M", 20.0)

# A gap in route position larger than this (kilometres) starts a new segment.
COVERAGE_SEGMENT_BREAK_KM = _env_float("COVERAGE_SEGMENT_BREAK_KM", 0.2)


# ---------------------------------------------------------------------------
# Worker settings
# ---------------------------------------------------------------------------
# Seconds the host waits for a terminal worker message before giving up.
WORKER_RESULT_TIMEOUT_S = _env_float("WORKER_RESULT_TIMEOUT_S", 600.0)

# Seconds allowed for the worker to acknowledge route initialisation.
WORKER_INIT_TIMEOUT_S = _env_float("WORKER_INIT_TIMEOUT_S", 60.0)


# ---------------------------------------------------------------------------
# Strava settings
# ---------------------------------------------------------------------------
STRAVA_BASE_URL = "https://www.strava.com/api/v3"

# Access token used by the `sync` command when none is passed explicitly.
STRAVA_ACCESS_TOKEN = os.getenv("STRAVA_ACCESS_TOKEN", "")

# Request timeout in seconds.
REQUEST_TIMEOUT = _env_int("REQUEST_TIMEOUT", 15)

# Activities per page and page cap when listing athlete activities.
STRAVA_ACTIVITIES_PER_PAGE = 200
STRAVA_MAX_ACTIVITY_PAGES = _env_int("STRAVA_MAX_ACTIVITY_PAGES", 10)

# Only these activity types are analysed against the trail.
ALLOWED_ACTIVITY_TYPES = _env_set("ALLOWED_ACTIVITY_TYPES", "hike,walk")

# In-memory cache for activity GPS streams.
ACTIVITY_STREAM_CACHE_SIZE = _env_int("ACTIVITY_STREAM_CACHE_SIZE", 64)
ACTIVITY_STREAM_CACHE_TTL_S = _env_int("ACTIVITY_STREAM_CACHE_TTL_S", 3600)
