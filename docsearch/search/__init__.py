"""Search runtime exports.

Combines shard sources, the lazy-loading query runtime, ranking helpers, and
the latest-request-wins scheduler in one import surface.
"""

from __future__ import annotations

from .matching import (
    MATCH_PREFIX,
    MATCH_SUBSTRING,
    Result,
    ResultGroup,
    group_results,
    match_position,
    rank_candidates,
)
from .runtime import (
    SHARD_FAILED,
    SHARD_LOADING,
    SHARD_READY,
    SHARD_UNLOADED,
    SearchResponse,
    SearchRuntime,
    ShardEvent,
    ShardLoadFailure,
)
from .scheduler import QueryRequest, QueryResult, QueryScheduler
from .sources import DirectoryShardSource, MappingShardSource

__all__ = [
    "DirectoryShardSource",
    "MATCH_PREFIX",
    "MATCH_SUBSTRING",
    "MappingShardSource",
    "QueryRequest",
    "QueryResult",
    "QueryScheduler",
    "Result",
    "ResultGroup",
    "SHARD_FAILED",
    "SHARD_LOADING",
    "SHARD_READY",
    "SHARD_UNLOADED",
    "SearchResponse",
    "SearchRuntime",
    "ShardEvent",
    "ShardLoadFailure",
    "group_results",
    "match_position",
    "rank_candidates",
]
