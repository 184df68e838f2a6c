"""Durable key-value stores for per-user coverage and ledger data.

The engine never touches these stores; the host reads the prior coverage set
before an analysis and overwrites it with the result afterwards.
"""

from __future__ import annotations

from hashlib import sha256
import json
import logging
import math
from pathlib import Path
from threading import RLock
from typing import Any, Dict, List, Optional, Protocol

from .geometry import LonLat

_LOGGER = logging.getLogger(__name__)

LEDGER_KEY_SUFFIX = ":ledger"


class ProgressStore(Protocol):
    """Minimal get/set contract expected from a durable profile store."""

    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> bool: ...


class InMemoryProgressStore:
    """Thread-safe dictionary store, mainly for tests and one-off runs."""

    def __init__(self) -> None:
        self._lock = RLock()
        self._data: Dict[str, str] = {}

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            raw = self._data.get(key)
        if raw is None:
            return default
        return json.loads(raw)

    def set(self, key: str, value: Any) -> bool:
        # Values are stored as JSON so callers never share mutable state.
        encoded = json.dumps(value)
        with self._lock:
            self._data[key] = encoded
        return True

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)


class JsonFileProgressStore:
    """Store each key as a JSON file in ``directory``.

    Writes go to a temporary file that replaces the target, so a crash never
    leaves a half-written coverage set behind.
    """

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)
        self._lock = RLock()

    def path_for(self, key: str) -> Path:
        digest = sha256(key.encode("utf-8")).hexdigest()[:32]
        return self.directory / f"{digest}.json"

    def get(self, key: str, default: Any = None) -> Any:
        path = self.path_for(key)
        with self._lock:
            try:
                with path.open("r", encoding="utf-8") as handle:
                    record = json.load(handle)
            except FileNotFoundError:
                return default
            except (OSError, ValueError) as exc:
                _LOGGER.error("Failed reading progress file %s: %s", path, exc)
                return default
        if not isinstance(record, dict) or record.get("key") != key:
            return default
        return record.get("value", default)

    def set(self, key: str, value: Any) -> bool:
        path = self.path_for(key)
        temp_path = path.with_suffix(".tmp")
        with self._lock:
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                with temp_path.open("w", encoding="utf-8") as handle:
                    json.dump({"key": key, "value": value}, handle, ensure_ascii=True)
                temp_path.replace(path)
            except (OSError, TypeError, ValueError) as exc:
                _LOGGER.error("Failed writing progress file %s: %s", path, exc)
                temp_path.unlink(missing_ok=True)
                return False
        return True

    def delete(self, key: str) -> None:
        with self._lock:
            self.path_for(key).unlink(missing_ok=True)


def load_coverage(store: ProgressStore, user_id: str) -> List[LonLat]:
    """Return the stored coverage set for ``user_id`` (empty when absent).

    Accepts both native lists and JSON-string encodings; malformed entries
    are skipped with a warning.
    """

    raw = store.get(user_id)
    if raw is None:
        return []
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            _LOGGER.warning("Ignoring undecodable coverage data for user %s", user_id)
            return []
    if not isinstance(raw, list):
        _LOGGER.warning("Ignoring unexpected coverage payload for user %s", user_id)
        return []
    points: List[LonLat] = []
    skipped = 0
    for item in raw:
        point = _as_point(item)
        if point is None:
            skipped += 1
            continue
        points.append(point)
    if skipped:
        _LOGGER.warning(
            "Skipped %d malformed coverage point(s) for user %s", skipped, user_id
        )
    return points


def save_coverage(store: ProgressStore, user_id: str, points: List[LonLat]) -> bool:
    """Overwrite the user's coverage set."""

    ok = store.set(user_id, [[float(lon), float(lat)] for lon, lat in points])
    if not ok:
        _LOGGER.error("Progress store rejected coverage update for user %s", user_id)
    return bool(ok)


def load_ledger_data(store: ProgressStore, user_id: str) -> Optional[Dict[str, Any]]:
    data = store.get(user_id + LEDGER_KEY_SUFFIX)
    return data if isinstance(data, dict) else None


def save_ledger_data(store: ProgressStore, user_id: str, data: Dict[str, Any]) -> bool:
    return bool(store.set(user_id + LEDGER_KEY_SUFFIX, data))


def reset_progress(store: ProgressStore, user_id: str) -> bool:
    """Explicit full reset: clear coverage and ledger for ``user_id``."""

    ok = store.set(user_id, [])
    return bool(ok) and bool(store.set(user_id + LEDGER_KEY_SUFFIX, None))


def _as_point(item: Any) -> LonLat | None:
    if not isinstance(item, (list, tuple)) or len(item) < 2:
        return None
    lon, lat = item[0], item[1]
    if isinstance(lon, bool) or isinstance(lat, bool):
        return None
    if not isinstance(lon, (int, float)) or not isinstance(lat, (int, float)):
        return None
    if not (math.isfinite(lon) and math.isfinite(lat)):
        return None
    return float(lon), float(lat)


__all__ = [
    "InMemoryProgressStore",
    "JsonFileProgressStore",
    "ProgressStore",
    "load_coverage",
    "load_ledger_data",
    "reset_progress",
    "save_coverage",
    "save_ledger_data",
]
