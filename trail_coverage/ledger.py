"""Per-user progress ledger: analysed activities and derived statistics.

Pure bookkeeping on top of :class:`ProgressResult`: which activities have
been analysed, whether they touched the trail, and the elevation / moving
time / daily distance totals shown next to the completion percentage.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from .coverage.models import ProgressResult
from .utils import parse_iso_datetime

Activity = Dict[str, Any]  # Strava summary: id, name, distance, moving_time, ...


@dataclass(slots=True)
class ActivityStats:
    activity_id: str
    name: str | None = None
    elevation_gain_m: float = 0.0
    moving_time_s: float = 0.0
    distance_km: float = 0.0
    start_date: str | None = None
    overlaps_route: bool = False

    @classmethod
    def from_activity(cls, activity: Mapping[str, Any], overlaps_route: bool) -> "ActivityStats":
        distance = activity.get("distance")
        elevation = activity.get("total_elevation_gain")
        moving = activity.get("moving_time")
        return cls(
            activity_id=str(activity.get("id")),
            name=activity.get("name"),
            elevation_gain_m=float(elevation) if _is_number(elevation) else 0.0,
            moving_time_s=float(moving) if _is_number(moving) else 0.0,
            distance_km=float(distance) / 1000.0 if _is_number(distance) else 0.0,
            start_date=activity.get("start_date_local") or activity.get("start_date"),
            overlaps_route=overlaps_route,
        )


@dataclass(slots=True)
class ProgressLedger:
    route_length_km: float = 0.0
    completed_distance_km: float = 0.0
    percentage: float = 0.0
    analyzed_activity_ids: List[str] = field(default_factory=list)
    activity_stats: Dict[str, ActivityStats] = field(default_factory=dict)
    last_updated: str | None = None

    @property
    def remaining_distance_km(self) -> float:
        return max(self.route_length_km - self.completed_distance_km, 0.0)

    @property
    def total_elevation_m(self) -> float:
        return sum(s.elevation_gain_m for s in self.activity_stats.values() if s.overlaps_route)

    @property
    def total_moving_time_s(self) -> float:
        return sum(s.moving_time_s for s in self.activity_stats.values() if s.overlaps_route)

    @property
    def overlapping_activity_count(self) -> int:
        return sum(1 for s in self.activity_stats.values() if s.overlaps_route)

    def is_analyzed(self, activity_id: Any) -> bool:
        return str(activity_id) in self.analyzed_activity_ids

    def record_result(
        self,
        result: ProgressResult,
        activity: Optional[Mapping[str, Any]] = None,
        *,
        now: datetime | None = None,
    ) -> None:
        """Apply an analysis result, and the activity it came from if any.

        Recording the same activity twice replaces its stats, so re-analysis
        never double counts elevation or time.
        """

        self.route_length_km = result.route_length_km
        self.completed_distance_km = result.total_distance_km
        self.percentage = result.percentage_value
        if activity is not None:
            stats = ActivityStats.from_activity(activity, result.overlaps_route)
            if stats.activity_id not in self.analyzed_activity_ids:
                self.analyzed_activity_ids.append(stats.activity_id)
            self.activity_stats[stats.activity_id] = stats
        self.last_updated = (now or datetime.now(timezone.utc)).isoformat()

    def daily_totals(self) -> Dict[str, float]:
        """Kilometres per ``YYYY-MM-DD`` across analysed activities."""

        totals: Dict[str, float] = {}
        for stats in self.activity_stats.values():
            if not stats.start_date:
                continue
            parsed = parse_iso_datetime(stats.start_date)
            day = parsed.date().isoformat() if parsed else stats.start_date[:10]
            totals[day] = round(totals.get(day, 0.0) + stats.distance_km, 3)
        return dict(sorted(totals.items()))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "route_length_km": self.route_length_km,
            "completed_distance_km": self.completed_distance_km,
            "percentage": self.percentage,
            "analyzed_activity_ids": list(self.analyzed_activity_ids),
            "activity_stats": {key: asdict(value) for key, value in self.activity_stats.items()},
            "last_updated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "ProgressLedger":
        if not data:
            return cls()
        stats = {
            str(key): ActivityStats(**value)
            for key, value in (data.get("activity_stats") or {}).items()
            if isinstance(value, Mapping)
        }
        return cls(
            route_length_km=float(data.get("route_length_km") or 0.0),
            completed_distance_km=float(data.get("completed_distance_km") or 0.0),
            percentage=float(data.get("percentage") or 0.0),
            analyzed_activity_ids=[str(v) for v in data.get("analyzed_activity_ids") or []],
            activity_stats=stats,
            last_updated=data.get("last_updated"),
        )


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


__all__ = ["ActivityStats", "ProgressLedger"]
