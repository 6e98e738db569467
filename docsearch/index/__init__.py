"""Index construction: records in, deterministic shards out.

Normalizes symbol names into search keys, merges overloads, partitions keys
into shards, and serializes shards as canonical JSON or Doxygen JS.
"""

from __future__ import annotations

from .builder import BuildResult, build_index, load_records, record_key, write_index
from .doxygen import dumps_searchdata_js, parse_searchdata_js, searchdata_filename
from .normalize import escape_doxygen_key, normalize_key, unescape_doxygen_key
from .partition import SCHEME_ALPHA, SCHEME_HASHED, Partitioner
from .shard_format import dumps_manifest, dumps_shard, loads_manifest, loads_shard
from .types import IndexEntry, IndexManifest, ManifestShard, Occurrence, Shard, SymbolRecord

__all__ = [
    "BuildResult",
    "IndexEntry",
    "IndexManifest",
    "ManifestShard",
    "Occurrence",
    "Partitioner",
    "SCHEME_ALPHA",
    "SCHEME_HASHED",
    "Shard",
    "SymbolRecord",
    "build_index",
    "dumps_manifest",
    "dumps_searchdata_js",
    "dumps_shard",
    "escape_doxygen_key",
    "load_records",
    "loads_manifest",
    "loads_shard",
    "normalize_key",
    "parse_searchdata_js",
    "record_key",
    "searchdata_filename",
    "unescape_doxygen_key",
    "write_index",
]
