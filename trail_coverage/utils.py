"""General utility helpers shared across modules."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Sequence, Tuple


def format_duration(seconds: float) -> str:
    """Format seconds into a ``Xh Ym`` string."""

    total_minutes = int(max(seconds, 0) // 60)
    hours, minutes = divmod(total_minutes, 60)
    return f"{hours}h {minutes}m"


def parse_iso_datetime(value: Any) -> datetime | None:
    """Parse Strava-style ISO timestamps (``...Z`` suffix allowed)."""

    if not isinstance(value, str) or not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def to_epoch_seconds(value: datetime) -> int:
    """Return a Unix timestamp, treating naive datetimes as UTC."""

    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp())


def swap_axes(points: Sequence[Sequence[float]]) -> List[Tuple[float, float]]:
    """Convert ``[lat, lon]`` pairs into ``(lon, lat)`` tuples."""

    swapped: List[Tuple[float, float]] = []
    for pair in points:
        if len(pair) < 2:
            raise ValueError("Expected lat/lon pair")
        swapped.append((float(pair[1]), float(pair[0])))
    return swapped


__all__ = ["format_duration", "parse_iso_datetime", "swap_axes", "to_epoch_seconds"]
