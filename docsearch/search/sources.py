"""Shard sources the search runtime fetches from.

A source exposes ``manifest()`` returning the ``IndexManifest`` and
``fetch(shard_id)`` returning the raw shard document text. Fetching may block;
the runtime always calls it from a worker thread.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path

from ..errors import ShardFormatError
from ..index.builder import BuildResult
from ..index.partition import SCHEME_ALPHA
from ..index.shard_format import MANIFEST_FILENAME, dumps_shard, loads_manifest, shard_filename
from ..index.types import IndexManifest, ManifestShard


class DirectoryShardSource:
    """Reads ``index.json`` and ``<shard_id>.json`` files from one build directory."""

    def __init__(self, root: Path) -> None:
        self.root = root.resolve()

    def _read(self, name: str) -> str:
        path = self.root / name
        try:
            return path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise ShardFormatError(f"{path}: not valid UTF-8: {exc}") from exc

    def manifest(self) -> IndexManifest:
        return loads_manifest(self._read(MANIFEST_FILENAME))

    def fetch(self, shard_id: str) -> str:
        return self._read(shard_filename(shard_id))


class MappingShardSource:
    """In-memory source over pre-serialized shard documents."""

    def __init__(self, documents: Mapping[str, str], manifest: IndexManifest | None = None) -> None:
        self._documents = dict(documents)
        if manifest is None:
            manifest = IndexManifest(
                scheme=SCHEME_ALPHA,
                shard_count=None,
                shards=tuple(ManifestShard(shard_id=shard_id, entry_count=0) for shard_id in self._documents),
            )
        self._manifest = manifest

    @classmethod
    def from_build(cls, result: BuildResult) -> MappingShardSource:
        documents = {shard.shard_id: dumps_shard(shard) for shard in result.shards}
        return cls(documents, manifest=result.manifest)

    def manifest(self) -> IndexManifest:
        return self._manifest

    def fetch(self, shard_id: str) -> str:
        try:
            return self._documents[shard_id]
        except KeyError:
            raise FileNotFoundError(f"no shard named {shard_id!r}") from None


__all__ = ["DirectoryShardSource", "MappingShardSource"]
