"""On-demand shard loading and incremental query evaluation.

Each shard moves ``unloaded -> loading -> ready`` (or ``failed``). Loads run on
a small thread pool; concurrent queries that need the same shard share one
future, so a shard is fetched at most once per runtime. Ready shards are never
mutated or evicted.

Queries carry a generation number. A query that finishes after a newer one
started is reported as superseded and its results are dropped; the shard loads
it triggered still complete and stay cached.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Iterator
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from queue import Empty, Queue

from ..errors import ShardFormatError
from ..index.normalize import normalize_key
from ..index.partition import Partitioner
from ..index.shard_format import loads_shard
from ..index.types import Shard
from .matching import (
    MATCH_MODES,
    MATCH_SUBSTRING,
    MATCH_PREFIX,
    Candidate,
    Result,
    ResultGroup,
    expand_results,
    filter_candidates,
    group_results,
    rank_candidates,
)

logger = logging.getLogger(__name__)

SHARD_UNLOADED = "unloaded"
SHARD_LOADING = "loading"
SHARD_READY = "ready"
SHARD_FAILED = "failed"

DEFAULT_LOAD_WORKERS = 4


@dataclass(frozen=True)
class ShardLoadFailure:
    """Non-fatal warning: ``shard_id`` could not be fetched or parsed."""

    shard_id: str
    reason: str


@dataclass(frozen=True)
class ShardEvent:
    """Shard state transition, for progress indication in a UI."""

    shard_id: str
    state: str
    failure: ShardLoadFailure | None = None


@dataclass(frozen=True)
class SearchResponse:
    query: str
    results: tuple[Result, ...] = ()
    warnings: tuple[ShardLoadFailure, ...] = ()
    superseded: bool = False
    generation: int = 0

    def groups(self) -> list[ResultGroup]:
        return group_results(self.results)


@dataclass(frozen=True)
class _QuerySnapshot:
    """Last completed query: what it scanned and every entry it matched."""

    query: str
    shard_ids: frozenset[str]
    matched: tuple[Candidate, ...] = field(default_factory=tuple)


class SearchRuntime:
    """Answer incremental symbol queries against lazily loaded shards.

    ``source`` provides ``manifest()`` and ``fetch(shard_id)``; see
    ``docsearch.search.sources``.
    """

    def __init__(
        self,
        source,
        *,
        match_mode: str = MATCH_SUBSTRING,
        limit: int | None = None,
        load_workers: int = DEFAULT_LOAD_WORKERS,
        on_event: Callable[[ShardEvent], None] | None = None,
    ) -> None:
        if match_mode not in MATCH_MODES:
            raise ValueError(f"unknown match mode: {match_mode!r}")
        self._source = source
        self.manifest = source.manifest()
        self.partitioner = Partitioner(scheme=self.manifest.scheme, shard_count=self.manifest.shard_count)
        self.match_mode = match_mode
        self.limit = limit
        self._on_event = on_event
        self._shard_order = {shard_id: idx for idx, shard_id in enumerate(self.manifest.shard_ids())}

        self._lock = threading.Lock()
        self._states: dict[str, str] = {shard_id: SHARD_UNLOADED for shard_id in self._shard_order}
        self._futures: dict[str, Future[Shard | None]] = {}
        self._ready: dict[str, Shard] = {}
        self._failures: dict[str, ShardLoadFailure] = {}
        self._generation = 0
        self._last: _QuerySnapshot | None = None
        self._events: Queue[ShardEvent] = Queue()
        self._executor = ThreadPoolExecutor(
            max_workers=max(1, load_workers),
            thread_name_prefix="docsearch-shard",
        )

    def __enter__(self) -> SearchRuntime:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self, wait_for_loads: bool = True) -> None:
        self._executor.shutdown(wait=wait_for_loads)

    def _emit(self, event: ShardEvent) -> None:
        self._events.put(event)
        if self._on_event is None:
            return
        try:
            self._on_event(event)
        except Exception:
            logger.exception("shard event listener failed for %s", event.shard_id)

    def _fail(self, shard_id: str, exc: BaseException) -> None:
        failure = ShardLoadFailure(shard_id=shard_id, reason=str(exc) or type(exc).__name__)
        logger.warning("shard %s failed to load: %s", shard_id, failure.reason)
        with self._lock:
            self._states[shard_id] = SHARD_FAILED
            self._failures[shard_id] = failure
        self._emit(ShardEvent(shard_id=shard_id, state=SHARD_FAILED, failure=failure))

    def _load(self, shard_id: str) -> Shard | None:
        logger.debug("loading shard %s", shard_id)
        try:
            shard = loads_shard(self._source.fetch(shard_id))
            if shard.shard_id != shard_id:
                raise ShardFormatError(f"document holds shard {shard.shard_id!r}")
        except Exception as exc:
            self._fail(shard_id, exc)
            return None

        with self._lock:
            self._ready[shard_id] = shard
            self._states[shard_id] = SHARD_READY
        self._emit(ShardEvent(shard_id=shard_id, state=SHARD_READY))
        return shard

    def _run_load(self, shard_id: str, future: Future[Shard | None]) -> None:
        future.set_result(self._load(shard_id))

    def _ensure_loading(self, shard_id: str) -> Future[Shard | None]:
        with self._lock:
            future = self._futures.get(shard_id)
            if future is not None:
                return future
            future = Future()
            self._futures[shard_id] = future
            self._states[shard_id] = SHARD_LOADING
        # Announce before submitting so ``loading`` always precedes ``ready``.
        self._emit(ShardEvent(shard_id=shard_id, state=SHARD_LOADING))
        try:
            self._executor.submit(self._run_load, shard_id, future)
        except RuntimeError as exc:
            self._fail(shard_id, exc)
            future.set_result(None)
        return future

    def preload(self, shard_ids: Iterable[str] | None = None) -> list[Future[Shard | None]]:
        """Start loading ``shard_ids`` (default: every shard) without waiting."""
        targets = self.manifest.shard_ids() if shard_ids is None else list(shard_ids)
        return [self._ensure_loading(shard_id) for shard_id in targets if shard_id in self._shard_order]

    def shard_state(self, shard_id: str) -> str:
        with self._lock:
            return self._states.get(shard_id, SHARD_UNLOADED)

    def shard_states(self) -> dict[str, str]:
        with self._lock:
            return dict(self._states)

    def drain_events(self) -> list[ShardEvent]:
        """Drain all shard events emitted since the last call."""
        out: list[ShardEvent] = []
        while True:
            try:
                out.append(self._events.get_nowait())
            except Empty:
                break
        return out

    def target_shards(self, normalized_query: str) -> list[str]:
        """Shards that can hold matches for an already-normalized query."""
        if self.match_mode == MATCH_PREFIX:
            candidates = self.partitioner.shards_for_prefix(normalized_query)
            return [shard_id for shard_id in candidates if shard_id in self._shard_order]
        return self.manifest.shard_ids()

    def _iter_candidates(self, shard_ids: Iterable[str]) -> Iterator[Candidate]:
        with self._lock:
            shards = [self._ready[shard_id] for shard_id in shard_ids if shard_id in self._ready]
        shards.sort(key=lambda shard: self._shard_order[shard.shard_id])
        for shard in shards:
            order = self._shard_order[shard.shard_id]
            for position, entry in enumerate(shard.entries):
                yield Candidate(entry=entry, shard_id=shard.shard_id, ordinal=(order, position))

    def _is_current(self, generation: int) -> bool:
        with self._lock:
            return generation == self._generation

    def query(self, text: str) -> SearchResponse:
        """Run one query, loading any shards it needs first."""
        normalized = normalize_key(text or "")
        with self._lock:
            self._generation += 1
            generation = self._generation
        if not normalized:
            return SearchResponse(query="", generation=generation)

        targets = self.target_shards(normalized)
        futures = [self._ensure_loading(shard_id) for shard_id in targets]
        if futures:
            wait(futures)
        if not self._is_current(generation):
            logger.debug("query %r superseded while loading shards", normalized)
            return SearchResponse(query=normalized, superseded=True, generation=generation)

        with self._lock:
            last = self._last
            warnings = tuple(self._failures[shard_id] for shard_id in targets if shard_id in self._failures)

        target_set = frozenset(targets)
        if last is not None and normalized.startswith(last.query) and target_set <= last.shard_ids:
            matched = filter_candidates(normalized, last.matched, self.match_mode)
            scanned = last.shard_ids
        else:
            matched = filter_candidates(normalized, self._iter_candidates(targets), self.match_mode)
            scanned = target_set
        ranked = rank_candidates(normalized, matched, self.match_mode, self.limit)

        with self._lock:
            if generation != self._generation:
                return SearchResponse(query=normalized, superseded=True, generation=generation)
            self._last = _QuerySnapshot(query=normalized, shard_ids=scanned, matched=tuple(matched))

        return SearchResponse(
            query=normalized,
            results=tuple(expand_results(ranked)),
            warnings=warnings,
            generation=generation,
        )

    def search(self, text: str) -> list[Result]:
        """Ranked results for ``text``; empty for blank or unmatched input."""
        return list(self.query(text).results)


__all__ = [
    "DEFAULT_LOAD_WORKERS",
    "SHARD_FAILED",
    "SHARD_LOADING",
    "SHARD_READY",
    "SHARD_UNLOADED",
    "SearchResponse",
    "SearchRuntime",
    "ShardEvent",
    "ShardLoadFailure",
]
