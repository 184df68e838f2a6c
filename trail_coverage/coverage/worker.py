"""Message-based wrapper running a coverage engine on its own thread.

The host posts requests (:class:`InitRequest`, :class:`AnalyzeRequest`) and
reads replies from the outbox. Requests are handled strictly in arrival
order. Every analysis request produces zero or more
:class:`ProgressMessage` replies followed by exactly one terminal
:class:`ResultMessage` or :class:`ErrorMessage`.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import queue
import threading
from typing import Any, Callable, Hashable, Optional, Sequence, Union

from ..errors import TrailCoverageError
from ..geometry import LonLat, ReferenceRoute
from .engine import CoverageEngine
from .models import ProgressResult

LOGGER = logging.getLogger(__name__)

INIT_ACTIVITY_ID = "worker_init"


@dataclass(frozen=True, slots=True)
class InitRequest:
    serialized_route: str
    total_length_km: Optional[float] = None


@dataclass(frozen=True, slots=True)
class AnalyzeRequest:
    activity_id: Hashable
    trace: Optional[Sequence[Sequence[float]]]
    prior_coverage: Sequence[LonLat]


@dataclass(frozen=True, slots=True)
class ReadyMessage:
    route_length_km: float


@dataclass(frozen=True, slots=True)
class ProgressMessage:
    activity_id: Hashable
    percent: int


@dataclass(frozen=True, slots=True)
class ResultMessage:
    activity_id: Hashable
    result: ProgressResult


@dataclass(frozen=True, slots=True)
class ErrorMessage:
    activity_id: Hashable
    message: str


WorkerRequest = Union[InitRequest, AnalyzeRequest]
WorkerMessage = Union[ReadyMessage, ProgressMessage, ResultMessage, ErrorMessage]
MessageHandler = Callable[[WorkerMessage], None]

_STOP: Any = object()


def is_terminal(message: WorkerMessage) -> bool:
    """Return ``True`` for the single closing reply of an analysis request."""

    return isinstance(message, (ResultMessage, ErrorMessage))


class CoverageWorker:
    """Serial request processor around one :class:`CoverageEngine`.

    Replies go to ``on_message`` when given (called on the worker thread),
    otherwise to an internal outbox read with :meth:`get_message`.
    """

    def __init__(
        self,
        engine: CoverageEngine | None = None,
        *,
        on_message: MessageHandler | None = None,
        name: str = "coverage-worker",
    ) -> None:
        self._engine = engine or CoverageEngine()
        self._on_message = on_message
        self._inbox: "queue.Queue[Any]" = queue.Queue()
        self._outbox: "queue.Queue[WorkerMessage]" = queue.Queue()
        self._thread: threading.Thread | None = None
        self._name = name
        self._lock = threading.Lock()

    @property
    def engine(self) -> CoverageEngine:
        return self._engine

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> "CoverageWorker":
        with self._lock:
            if self.is_running:
                return self
            self._thread = threading.Thread(
                target=self._run, name=self._name, daemon=True
            )
            self._thread.start()
        return self

    def stop(self, timeout: float | None = None) -> None:
        """Finish pending requests and stop the thread."""

        with self._lock:
            thread = self._thread
            if thread is None:
                return
            self._inbox.put(_STOP)
        thread.join(timeout)
        with self._lock:
            if not thread.is_alive():
                self._thread = None

    def __enter__(self) -> "CoverageWorker":
        return self.start()

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def send(self, request: WorkerRequest) -> None:
        """Queue a request for the worker thread."""

        if not isinstance(request, (InitRequest, AnalyzeRequest)):
            raise TypeError(f"Unsupported worker request: {type(request).__name__}")
        self._inbox.put(request)

    def init(self, route: ReferenceRoute) -> None:
        self.send(InitRequest(route.serialize(), route.total_length_km))

    def analyze(
        self,
        activity_id: Hashable,
        trace: Optional[Sequence[Sequence[float]]],
        prior_coverage: Sequence[LonLat],
    ) -> None:
        self.send(AnalyzeRequest(activity_id, trace, list(prior_coverage)))

    def get_message(self, timeout: float | None = None) -> WorkerMessage:
        """Return the next reply; raises :class:`queue.Empty` on timeout."""

        return self._outbox.get(timeout=timeout)

    def _emit(self, message: WorkerMessage) -> None:
        if self._on_message is not None:
            try:
                self._on_message(message)
            except Exception:
                LOGGER.exception(
                    "Message handler failed on %s", type(message).__name__
                )
        else:
            self._outbox.put(message)

    def _run(self) -> None:
        while True:
            request = self._inbox.get()
            if request is _STOP:
                LOGGER.debug("Coverage worker stopping")
                return
            if isinstance(request, InitRequest):
                self._handle_init(request)
            else:
                self._handle_analyze(request)

    def _handle_init(self, request: InitRequest) -> None:
        try:
            self._engine.initialize_from_serialized(
                request.serialized_route, request.total_length_km
            )
        except Exception as exc:
            LOGGER.error("Worker failed to initialise route: %s", exc)
            self._emit(ErrorMessage(INIT_ACTIVITY_ID, str(exc)))
            return
        self._emit(ReadyMessage(self._engine.route.total_length_km))

    def _handle_analyze(self, request: AnalyzeRequest) -> None:
        activity_id = request.activity_id

        def _progress(percent: int) -> None:
            self._emit(ProgressMessage(activity_id, percent))

        try:
            result = self._engine.analyze(
                request.trace,
                request.prior_coverage,
                activity_id,
                progress=_progress,
            )
        except TrailCoverageError as exc:
            LOGGER.warning("Analysis of activity %s rejected: %s", activity_id, exc)
            self._emit(ErrorMessage(activity_id, str(exc)))
            return
        except Exception as exc:
            LOGGER.error(
                "Analysis of activity %s failed: %s", activity_id, exc, exc_info=True
            )
            self._emit(ErrorMessage(activity_id, str(exc) or type(exc).__name__))
            return
        self._emit(ResultMessage(activity_id, result))


__all__ = [
    "INIT_ACTIVITY_ID",
    "AnalyzeRequest",
    "CoverageWorker",
    "ErrorMessage",
    "InitRequest",
    "MessageHandler",
    "ProgressMessage",
    "ReadyMessage",
    "ResultMessage",
    "WorkerMessage",
    "WorkerRequest",
    "is_terminal",
]
