"""Index builder: validate, merge, partition, and serialize symbol records.

Records that share a normalized key collapse into one ``IndexEntry`` whose
occurrences are concatenated in input order, so every overload of a name is
one searchable row with several jump targets.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from ..errors import MalformedRecord, ShardFormatError
from .normalize import normalize_key, sort_key
from .partition import Partitioner
from .shard_format import (
    MANIFEST_FILENAME,
    dumps_manifest,
    dumps_shard,
    loads_manifest,
    shard_filename,
)
from .types import IndexEntry, IndexManifest, ManifestShard, Occurrence, Shard, SymbolRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BuildResult:
    """Shards ordered by partition order, the manifest, and lenient-mode rejects."""

    shards: tuple[Shard, ...]
    manifest: IndexManifest
    rejected: tuple[MalformedRecord, ...] = field(default_factory=tuple)

    def shard(self, shard_id: str) -> Shard | None:
        for shard in self.shards:
            if shard.shard_id == shard_id:
                return shard
        return None

    def entry_count(self) -> int:
        return sum(len(shard.entries) for shard in self.shards)


@dataclass
class _PendingEntry:
    first_seen: int
    key: str
    display_name: str
    occurrences: list[Occurrence]


def record_key(record: SymbolRecord) -> str:
    """Search key for ``record``: its raw name when given, else its display name."""
    return normalize_key(record.raw_name or record.display_name)


def validate_record(record: SymbolRecord, index: int | None = None) -> str:
    """Return the record's key or raise ``MalformedRecord``."""
    display_name = record.display_name
    if not isinstance(display_name, str) or not display_name.strip():
        raise MalformedRecord(f"record {index}: missing display name", index=index)

    def reject(reason: str) -> MalformedRecord:
        return MalformedRecord(f"record {index} ({display_name!r}): {reason}", index=index, display_name=display_name)

    if not isinstance(record.raw_name, str):
        raise reject("raw name must be a string")
    if not record.occurrences:
        raise reject("no occurrences")
    for position, occurrence in enumerate(record.occurrences):
        if not isinstance(occurrence.anchor_url, str) or not occurrence.anchor_url:
            raise reject(f"occurrence {position} has no anchor url")
        if not isinstance(occurrence.scope_label, str):
            raise reject(f"occurrence {position} scope label must be a string")
    key = record_key(record)
    if not key:
        raise reject("name has no searchable characters")
    return key


def build_index(
    records: Iterable[SymbolRecord],
    *,
    strict: bool = True,
    partitioner: Partitioner | None = None,
) -> BuildResult:
    """Build deterministic shards from ``records``.

    In strict mode the first malformed record aborts the build. In lenient
    mode malformed records are logged, dropped, and returned in
    ``BuildResult.rejected``.
    """
    partitioner = partitioner or Partitioner()
    pending: dict[str, _PendingEntry] = {}
    rejected: list[MalformedRecord] = []

    for index, record in enumerate(records):
        try:
            key = validate_record(record, index)
        except MalformedRecord as exc:
            if strict:
                raise
            logger.warning("dropping malformed record: %s", exc)
            rejected.append(exc)
            continue

        existing = pending.get(key)
        if existing is None:
            pending[key] = _PendingEntry(
                first_seen=index,
                key=key,
                display_name=record.display_name,
                occurrences=list(record.occurrences),
            )
        else:
            existing.occurrences.extend(record.occurrences)

    by_shard: dict[str, list[_PendingEntry]] = {}
    for item in pending.values():
        by_shard.setdefault(partitioner.shard_for_key(item.key), []).append(item)

    shards: list[Shard] = []
    for shard_id in sorted(by_shard, key=partitioner.order_index):
        items = sorted(by_shard[shard_id], key=lambda item: (sort_key(item.key), item.first_seen))
        entries = tuple(
            IndexEntry(key=item.key, display_name=item.display_name, occurrences=tuple(item.occurrences))
            for item in items
        )
        shards.append(Shard(shard_id=shard_id, entries=entries))

    manifest = IndexManifest(
        scheme=partitioner.scheme,
        shard_count=partitioner.shard_count,
        shards=tuple(ManifestShard(shard_id=shard.shard_id, entry_count=len(shard.entries)) for shard in shards),
    )
    logger.info(
        "built %d entries in %d shards (%d records rejected)",
        sum(len(shard.entries) for shard in shards),
        len(shards),
        len(rejected),
    )
    return BuildResult(shards=tuple(shards), manifest=manifest, rejected=tuple(rejected))


def write_index(result: BuildResult, out_dir: Path) -> list[Path]:
    """Write every shard plus the manifest into ``out_dir``.

    Shard files listed by a previous manifest in the same directory but absent
    from this build are removed, so the directory always holds one build.
    """
    out_dir.mkdir(parents=True, exist_ok=True)
    manifest_path = out_dir / MANIFEST_FILENAME

    previous_ids: list[str] = []
    if manifest_path.exists():
        try:
            previous_ids = loads_manifest(manifest_path.read_text(encoding="utf-8")).shard_ids()
        except (ShardFormatError, UnicodeDecodeError):
            logger.warning("ignoring unreadable previous manifest at %s", manifest_path)

    written: list[Path] = []
    for shard in result.shards:
        path = out_dir / shard_filename(shard.shard_id)
        path.write_text(dumps_shard(shard), encoding="utf-8")
        written.append(path)

    current_ids = set(result.manifest.shard_ids())
    for stale_id in previous_ids:
        if stale_id in current_ids:
            continue
        stale_path = out_dir / shard_filename(stale_id)
        if stale_path.exists():
            logger.debug("removing stale shard %s", stale_path)
            stale_path.unlink()

    manifest_path.write_text(dumps_manifest(result.manifest), encoding="utf-8")
    written.append(manifest_path)
    return written


def record_from_mapping(raw: object) -> SymbolRecord:
    """Coerce one decoded JSON object into a ``SymbolRecord``.

    Missing optional fields default to ``""``. Mistyped values and broken
    occurrences are carried through unchanged so ``validate_record`` rejects
    the whole record instead of indexing part of it.
    """
    if not isinstance(raw, dict):
        return SymbolRecord(raw_name="", display_name="")

    occurrences: list[Occurrence] = []
    raw_occurrences = raw.get("occurrences")
    if isinstance(raw_occurrences, list):
        for item in raw_occurrences:
            if not isinstance(item, dict):
                occurrences.append(Occurrence(anchor_url="", scope_label=""))
                continue
            occurrences.append(
                Occurrence(anchor_url=item.get("anchor_url", ""), scope_label=item.get("scope_label", ""))
            )

    return SymbolRecord(
        raw_name=raw.get("raw_name", ""),
        display_name=raw.get("display_name", ""),
        occurrences=tuple(occurrences),
    )


def load_records(path: Path) -> list[SymbolRecord]:
    """Load a JSON array of symbol-record objects from ``path``."""
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except UnicodeDecodeError as exc:
        raise MalformedRecord(f"{path}: not valid UTF-8: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise MalformedRecord(f"{path}: invalid JSON: {exc}") from exc
    if not isinstance(payload, list):
        raise MalformedRecord(f"{path}: expected a JSON array of records")
    return [record_from_mapping(raw) for raw in payload]


__all__ = [
    "BuildResult",
    "build_index",
    "load_records",
    "record_from_mapping",
    "record_key",
    "validate_record",
    "write_index",
]
