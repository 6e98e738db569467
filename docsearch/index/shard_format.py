"""JSON codec for shard files and the index manifest.

Output is canonical (sorted object keys, fixed separators, trailing newline)
so repeated builds of the same input diff byte-for-byte.
"""

from __future__ import annotations

import json

from ..errors import ShardFormatError
from .partition import SCHEME_HASHED, SCHEMES
from .types import IndexEntry, IndexManifest, ManifestShard, Occurrence, Shard

SHARD_FORMAT = "docsearch-shard"
MANIFEST_FORMAT = "docsearch-index"
FORMAT_VERSION = 1
MANIFEST_FILENAME = "index.json"


def shard_filename(shard_id: str) -> str:
    return f"{shard_id}.json"


def _dumps(payload: dict[str, object]) -> str:
    return json.dumps(payload, ensure_ascii=False, sort_keys=True, separators=(",", ":")) + "\n"


def _loads_document(text: str, expected_format: str) -> dict[str, object]:
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ShardFormatError(f"invalid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise ShardFormatError("document must be a JSON object")
    if payload.get("format") != expected_format:
        raise ShardFormatError(f"expected format {expected_format!r}, got {payload.get('format')!r}")
    if payload.get("version") != FORMAT_VERSION:
        raise ShardFormatError(f"unsupported version: {payload.get('version')!r}")
    return payload


def dumps_shard(shard: Shard) -> str:
    entries = [
        [
            entry.key,
            entry.display_name,
            [[occurrence.anchor_url, occurrence.scope_label] for occurrence in entry.occurrences],
        ]
        for entry in shard.entries
    ]
    return _dumps(
        {
            "format": SHARD_FORMAT,
            "version": FORMAT_VERSION,
            "shard": shard.shard_id,
            "entries": entries,
        }
    )


def _parse_entry(raw: object) -> IndexEntry:
    if not isinstance(raw, list) or len(raw) != 3:
        raise ShardFormatError("entry must be a [key, display, occurrences] triple")
    key, display_name, raw_occurrences = raw
    if not isinstance(key, str) or not key or not isinstance(display_name, str):
        raise ShardFormatError("entry key and display name must be strings")
    if not isinstance(raw_occurrences, list) or not raw_occurrences:
        raise ShardFormatError(f"entry {key!r} has no occurrences")

    occurrences: list[Occurrence] = []
    for item in raw_occurrences:
        if (
            not isinstance(item, list)
            or len(item) != 2
            or not all(isinstance(part, str) for part in item)
        ):
            raise ShardFormatError(f"entry {key!r} has a malformed occurrence")
        occurrences.append(Occurrence(anchor_url=item[0], scope_label=item[1]))
    return IndexEntry(key=key, display_name=display_name, occurrences=tuple(occurrences))


def loads_shard(text: str) -> Shard:
    """Parse a shard document, raising ``ShardFormatError`` on any shape mismatch."""
    payload = _loads_document(text, SHARD_FORMAT)
    shard_id = payload.get("shard")
    raw_entries = payload.get("entries")
    if not isinstance(shard_id, str) or not shard_id:
        raise ShardFormatError("shard id must be a non-empty string")
    if not isinstance(raw_entries, list):
        raise ShardFormatError("entries must be a list")

    entries = tuple(_parse_entry(raw) for raw in raw_entries)
    seen: set[str] = set()
    for entry in entries:
        if entry.key in seen:
            raise ShardFormatError(f"duplicate key {entry.key!r} in shard {shard_id!r}")
        seen.add(entry.key)
    return Shard(shard_id=shard_id, entries=entries)


def dumps_manifest(manifest: IndexManifest) -> str:
    return _dumps(
        {
            "format": MANIFEST_FORMAT,
            "version": FORMAT_VERSION,
            "scheme": manifest.scheme,
            "shard_count": manifest.shard_count,
            "shards": [[item.shard_id, item.entry_count] for item in manifest.shards],
        }
    )


def loads_manifest(text: str) -> IndexManifest:
    payload = _loads_document(text, MANIFEST_FORMAT)
    scheme = payload.get("scheme")
    shard_count = payload.get("shard_count")
    raw_shards = payload.get("shards")
    if scheme not in SCHEMES:
        raise ShardFormatError(f"unknown manifest scheme: {scheme!r}")
    if scheme == SCHEME_HASHED:
        if isinstance(shard_count, bool) or not isinstance(shard_count, int) or shard_count <= 0:
            raise ShardFormatError("hashed manifest needs a positive shard_count")
    elif shard_count is not None:
        raise ShardFormatError(f"shard_count must be null for the {scheme!r} scheme")
    if not isinstance(raw_shards, list):
        raise ShardFormatError("manifest shards must be a list")

    shards: list[ManifestShard] = []
    for item in raw_shards:
        if (
            not isinstance(item, list)
            or len(item) != 2
            or not isinstance(item[0], str)
            or isinstance(item[1], bool)
            or not isinstance(item[1], int)
        ):
            raise ShardFormatError("manifest shard rows must be [shard_id, entry_count]")
        shards.append(ManifestShard(shard_id=item[0], entry_count=item[1]))
    return IndexManifest(scheme=scheme, shard_count=shard_count, shards=tuple(shards))


__all__ = [
    "FORMAT_VERSION",
    "MANIFEST_FILENAME",
    "MANIFEST_FORMAT",
    "SHARD_FORMAT",
    "dumps_manifest",
    "dumps_shard",
    "loads_manifest",
    "loads_shard",
    "shard_filename",
]
