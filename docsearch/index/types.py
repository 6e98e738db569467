"""Index datatypes shared by the builder, shard codecs, and search runtime."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Occurrence:
    """One documented location a symbol name resolves to."""

    anchor_url: str
    scope_label: str


@dataclass(frozen=True)
class SymbolRecord:
    """Raw builder input as produced by an upstream symbol extractor.

    ``raw_name`` may be empty, in which case the search key is derived from
    ``display_name``. ``occurrences`` keeps upstream declaration order.
    """

    raw_name: str
    display_name: str
    occurrences: tuple[Occurrence, ...] = ()


@dataclass(frozen=True)
class IndexEntry:
    """Per-key record holding every occurrence merged under that key."""

    key: str
    display_name: str
    occurrences: tuple[Occurrence, ...]


@dataclass(frozen=True)
class Shard:
    """Independently loadable partition of the index, ordered by key."""

    shard_id: str
    entries: tuple[IndexEntry, ...] = ()

    def keys(self) -> list[str]:
        return [entry.key for entry in self.entries]


@dataclass(frozen=True)
class ManifestShard:
    shard_id: str
    entry_count: int


@dataclass(frozen=True)
class IndexManifest:
    """Top-level description of one build: partition settings and shard list."""

    scheme: str
    shard_count: int | None
    shards: tuple[ManifestShard, ...] = field(default_factory=tuple)

    def shard_ids(self) -> list[str]:
        return [item.shard_id for item in self.shards]


__all__ = [
    "IndexEntry",
    "IndexManifest",
    "ManifestShard",
    "Occurrence",
    "Shard",
    "SymbolRecord",
]
