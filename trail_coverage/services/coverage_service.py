"""Coverage service.

Host-side orchestration around the coverage worker: loads the stored
coverage for a user, sends one analysis request at a time, waits for its
terminal reply, and overwrites the stored coverage and ledger with the
result. Keeping the engine behind the worker channel means the caller's
thread only ever blocks on a queue, never on geometry work.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import queue
import time
from typing import Any, Callable, Dict, Hashable, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..config import WORKER_INIT_TIMEOUT_S, WORKER_RESULT_TIMEOUT_S
from ..coverage import (
    INIT_ACTIVITY_ID,
    CoverageWorker,
    ErrorMessage,
    ProgressMessage,
    ProgressResult,
    ReadyMessage,
    ResultMessage,
)
from ..errors import CoverageAnalysisError
from ..geometry import LonLat, ReferenceRoute
from ..ledger import ProgressLedger
from ..progress_store import (
    ProgressStore,
    load_coverage,
    load_ledger_data,
    reset_progress,
    save_coverage,
    save_ledger_data,
)

ProgressHandler = Callable[[Hashable, int], None]
RECOMPUTE_ACTIVITY_ID = "recompute"


@dataclass(slots=True)
class CoverageServiceConfig:
    result_timeout_s: float = WORKER_RESULT_TIMEOUT_S
    init_timeout_s: float = WORKER_INIT_TIMEOUT_S
    logger: logging.Logger | None = None


class CoverageService:
    def __init__(
        self,
        route: ReferenceRoute,
        store: ProgressStore,
        *,
        worker: CoverageWorker | None = None,
        config: CoverageServiceConfig | None = None,
    ) -> None:
        self.route = route
        self.store = store
        self.config = config or CoverageServiceConfig()
        self._worker = worker or CoverageWorker()
        self._log = self.config.logger or logging.getLogger(self.__class__.__name__)
        self._ready = False

    def start(self) -> "CoverageService":
        """Start the worker and wait until it has loaded the route."""

        self._worker.start()
        self._worker.init(self.route)
        message = self._next_message(self.config.init_timeout_s)
        if isinstance(message, ErrorMessage):
            raise CoverageAnalysisError(f"Worker initialisation failed: {message.message}")
        if not isinstance(message, ReadyMessage):
            raise CoverageAnalysisError(
                f"Unexpected worker reply during initialisation: {type(message).__name__}"
            )
        self._ready = True
        self._log.info("Coverage worker ready (route %.2f km)", message.route_length_km)
        return self

    def close(self) -> None:
        self._worker.stop()
        self._ready = False

    def __enter__(self) -> "CoverageService":
        return self.start()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def load_ledger(self, user_id: str) -> ProgressLedger:
        return ProgressLedger.from_dict(load_ledger_data(self.store, user_id))

    def analyze_activity(
        self,
        user_id: str,
        activity_id: Hashable,
        trace: Optional[Sequence[Sequence[float]]],
        *,
        activity: Optional[Mapping[str, Any]] = None,
        progress: Optional[ProgressHandler] = None,
    ) -> ProgressResult:
        """Analyse one trace for ``user_id`` and persist the outcome.

        ``trace`` must already be in ``(lon, lat)`` order. ``trace=None``
        recomputes metrics from the stored coverage only.
        """

        prior = load_coverage(self.store, user_id)
        result = self._request(activity_id, trace, prior, progress)
        if not save_coverage(self.store, user_id, result.updated_coverage):
            raise CoverageAnalysisError(f"Failed to persist coverage for user {user_id}")
        ledger = self.load_ledger(user_id)
        ledger.record_result(result, activity)
        if not save_ledger_data(self.store, user_id, ledger.to_dict()):
            self._log.warning("Failed to persist ledger for user %s", user_id)
        self._log.info(
            "Activity %s: %d new points, %.2f km covered (%s%%)",
            activity_id,
            result.new_points,
            result.total_distance_km,
            result.percentage,
        )
        return result

    def recompute(self, user_id: str) -> ProgressResult:
        """Re-derive segments and metrics from the stored coverage."""

        return self.analyze_activity(user_id, RECOMPUTE_ACTIVITY_ID, None)

    def analyze_activities(
        self,
        user_id: str,
        items: Iterable[Tuple[Mapping[str, Any], Sequence[Sequence[float]]]],
        *,
        skip_analyzed: bool = True,
        progress: Optional[ProgressHandler] = None,
    ) -> List[ProgressResult]:
        """Analyse ``(activity, trace)`` pairs one after another."""

        results: List[ProgressResult] = []
        ledger = self.load_ledger(user_id)
        for activity, trace in items:
            activity_id = activity.get("id")
            if skip_analyzed and ledger.is_analyzed(activity_id):
                self._log.debug("Skipping already analysed activity %s", activity_id)
                continue
            results.append(
                self.analyze_activity(
                    user_id, activity_id, trace, activity=activity, progress=progress
                )
            )
        return results

    def reset(self, user_id: str) -> bool:
        """Explicitly clear all stored progress for ``user_id``."""

        ok = reset_progress(self.store, user_id)
        self._log.info("Reset progress for user %s (ok=%s)", user_id, ok)
        return ok

    def _request(
        self,
        activity_id: Hashable,
        trace: Optional[Sequence[Sequence[float]]],
        prior: List[LonLat],
        progress: Optional[ProgressHandler],
    ) -> ProgressResult:
        if not self._ready:
            raise CoverageAnalysisError("Coverage service not started")
        self._worker.analyze(activity_id, trace, prior)
        deadline = time.monotonic() + self.config.result_timeout_s
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise CoverageAnalysisError(
                    f"Timed out waiting for analysis of activity {activity_id}"
                )
            message = self._next_message(remaining)
            if isinstance(message, ProgressMessage):
                if progress is not None and message.activity_id == activity_id:
                    progress(activity_id, message.percent)
                continue
            if isinstance(message, ErrorMessage):
                if message.activity_id in (activity_id, INIT_ACTIVITY_ID):
                    raise CoverageAnalysisError(message.message)
                self._log.warning(
                    "Ignoring stale error for activity %s: %s",
                    message.activity_id,
                    message.message,
                )
                continue
            if isinstance(message, ResultMessage):
                if message.activity_id == activity_id:
                    return message.result
                self._log.warning("Ignoring stale result for activity %s", message.activity_id)

    def _next_message(self, timeout: float):
        try:
            return self._worker.get_message(timeout=timeout)
        except queue.Empty as exc:
            raise CoverageAnalysisError("Timed out waiting for coverage worker") from exc


def summarize(ledger: ProgressLedger) -> Dict[str, Any]:
    """Return the dashboard figures derived from a ledger."""

    return {
        "completed_distance_km": round(ledger.completed_distance_km, 2),
        "remaining_distance_km": round(ledger.remaining_distance_km, 2),
        "route_length_km": round(ledger.route_length_km, 2),
        "percentage": f"{ledger.percentage:.2f}",
        "analyzed_activities": len(ledger.analyzed_activity_ids),
        "overlapping_activities": ledger.overlapping_activity_count,
        "elevation_gain_m": round(ledger.total_elevation_m),
        "moving_time_s": int(ledger.total_moving_time_s),
    }


__all__ = [
    "CoverageService",
    "CoverageServiceConfig",
    "RECOMPUTE_ACTIVITY_ID",
    "summarize",
]
