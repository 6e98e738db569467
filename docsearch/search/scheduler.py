"""Background query driver for an interactive search box."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from queue import Empty, Queue

from .runtime import SearchResponse

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueryRequest:
    """One scheduled query."""

    request_id: int
    text: str


@dataclass(frozen=True)
class QueryResult:
    """Completed query whose request was still the newest when it finished."""

    request: QueryRequest
    response: SearchResponse


class QueryScheduler:
    """Single-threaded latest-request-wins query scheduler.

    Requests scheduled while a query runs collapse to the newest one, and a
    response is published only if no newer request was scheduled before it
    finished, so a UI never renders stale results.
    """

    def __init__(self, run_query: Callable[[str], SearchResponse]) -> None:
        self._run_query = run_query
        self._lock = threading.Lock()
        self._pending: QueryRequest | None = None
        self._running = False
        self._next_request_id = 1
        self._latest_request_id = 0
        self._results: Queue[QueryResult] = Queue()

    @property
    def latest_request_id(self) -> int:
        with self._lock:
            return self._latest_request_id

    def _worker(self) -> None:
        while True:
            with self._lock:
                request = self._pending
                self._pending = None
                if request is None:
                    self._running = False
                    return

            try:
                response = self._run_query(request.text)
            except Exception:
                logger.exception("query %r failed", request.text)
                continue

            with self._lock:
                stale = request.request_id != self._latest_request_id
            if stale or response.superseded:
                logger.debug("discarding stale results for request %d", request.request_id)
                continue
            self._results.put(QueryResult(request=request, response=response))

    def schedule(self, text: str) -> int:
        """Queue/replace pending query work and return its request id."""
        with self._lock:
            request_id = self._next_request_id
            self._next_request_id += 1
            self._latest_request_id = request_id
            self._pending = QueryRequest(request_id=request_id, text=text)
            if self._running:
                return request_id
            self._running = True

        worker = threading.Thread(
            target=self._worker,
            name="docsearch-query",
            daemon=True,
        )
        worker.start()
        return request_id

    def drain_results(self) -> list[QueryResult]:
        """Drain all published query results."""
        out: list[QueryResult] = []
        while True:
            try:
                out.append(self._results.get_nowait())
            except Empty:
                break
        return out


__all__ = ["QueryRequest", "QueryResult", "QueryScheduler"]
