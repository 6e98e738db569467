"""Matching, ranking, and result expansion over loaded index entries.

Ranking order is match position, then key length, then key text, then the
entry's original shard position, so shorter and earlier matches come first and
equal keys keep build order.
"""

from __future__ import annotations

import heapq
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from ..index.types import IndexEntry

MATCH_SUBSTRING = "substring"
MATCH_PREFIX = "prefix"
MATCH_MODES = (MATCH_SUBSTRING, MATCH_PREFIX)


@dataclass(frozen=True)
class Candidate:
    """An index entry tagged with where it came from."""

    entry: IndexEntry
    shard_id: str
    ordinal: tuple[int, int]  # (shard order, position within shard)


@dataclass(frozen=True)
class Result:
    """One jump target: a single occurrence of a matching entry."""

    key: str
    display_name: str
    anchor_url: str
    scope_label: str
    shard_id: str


@dataclass(frozen=True)
class ResultGroup:
    """Display row folding every occurrence of one entry."""

    key: str
    display_name: str
    results: tuple[Result, ...]


def match_position(query: str, key: str, mode: str = MATCH_SUBSTRING) -> int | None:
    """Offset of ``query`` inside ``key``, or ``None`` when it does not match."""
    if not query:
        return None
    if mode == MATCH_PREFIX:
        return 0 if key.startswith(query) else None
    idx = key.find(query)
    return idx if idx >= 0 else None


def filter_candidates(query: str, candidates: Iterable[Candidate], mode: str = MATCH_SUBSTRING) -> list[Candidate]:
    """Keep candidates whose key matches ``query``, preserving input order."""
    return [
        candidate
        for candidate in candidates
        if match_position(query, candidate.entry.key, mode) is not None
    ]


def rank_candidates(
    query: str,
    candidates: Iterable[Candidate],
    mode: str = MATCH_SUBSTRING,
    limit: int | None = None,
) -> list[Candidate]:
    """Return matching candidates in rank order, optionally capped at ``limit``."""

    def iter_scored() -> Iterator[tuple[int, int, str, tuple[int, int], Candidate]]:
        for candidate in candidates:
            key = candidate.entry.key
            pos = match_position(query, key, mode)
            if pos is None:
                continue
            yield (pos, len(key), key, candidate.ordinal, candidate)

    def rank(item: tuple[int, int, str, tuple[int, int], Candidate]) -> tuple[int, int, str, tuple[int, int]]:
        return item[:4]

    if limit is not None:
        scored = heapq.nsmallest(max(1, limit), iter_scored(), key=rank)
    else:
        scored = sorted(iter_scored(), key=rank)
    return [item[4] for item in scored]


def expand_results(candidates: Iterable[Candidate]) -> list[Result]:
    """Flatten ranked candidates into one ``Result`` per occurrence."""
    out: list[Result] = []
    for candidate in candidates:
        entry = candidate.entry
        for occurrence in entry.occurrences:
            out.append(
                Result(
                    key=entry.key,
                    display_name=entry.display_name,
                    anchor_url=occurrence.anchor_url,
                    scope_label=occurrence.scope_label,
                    shard_id=candidate.shard_id,
                )
            )
    return out


def group_results(results: Iterable[Result]) -> list[ResultGroup]:
    """Fold consecutive results of the same entry into display rows."""
    groups: list[ResultGroup] = []
    current: list[Result] = []
    for result in results:
        if current and (current[0].key, current[0].shard_id) != (result.key, result.shard_id):
            groups.append(ResultGroup(key=current[0].key, display_name=current[0].display_name, results=tuple(current)))
            current = []
        current.append(result)
    if current:
        groups.append(ResultGroup(key=current[0].key, display_name=current[0].display_name, results=tuple(current)))
    return groups


__all__ = [
    "Candidate",
    "MATCH_MODES",
    "MATCH_PREFIX",
    "MATCH_SUBSTRING",
    "Result",
    "ResultGroup",
    "expand_results",
    "filter_candidates",
    "group_results",
    "match_position",
    "rank_candidates",
]
