"""Pure shard partitioning over normalized keys.

Two schemes are supported:

* ``alpha``: one shard per leading letter, plus ``digits`` and ``symbols``
  buckets for keys that start with anything else (destructors, ``_`` names).
* ``hashed``: CRC32 of the leading ``HASH_PREFIX_WIDTH`` characters modulo a
  fixed shard count, for symbol tables whose first letters are heavily skewed.

Both are total over non-empty keys and independent of iteration order.
"""

from __future__ import annotations

import string
import zlib
from dataclasses import dataclass

SCHEME_ALPHA = "alpha"
SCHEME_HASHED = "hashed"
SCHEMES = (SCHEME_ALPHA, SCHEME_HASHED)

DIGITS_SHARD = "digits"
SYMBOLS_SHARD = "symbols"
ALPHA_SHARD_IDS: tuple[str, ...] = (*string.ascii_lowercase, DIGITS_SHARD, SYMBOLS_SHARD)

HASH_PREFIX_WIDTH = 2
DEFAULT_HASHED_SHARD_COUNT = 16


@dataclass(frozen=True)
class Partitioner:
    scheme: str = SCHEME_ALPHA
    shard_count: int | None = None

    def __post_init__(self) -> None:
        if self.scheme not in SCHEMES:
            raise ValueError(f"unknown partition scheme: {self.scheme!r}")
        if self.scheme == SCHEME_HASHED:
            if self.shard_count is None:
                object.__setattr__(self, "shard_count", DEFAULT_HASHED_SHARD_COUNT)
            elif self.shard_count <= 0:
                raise ValueError("shard_count must be >= 1")
        elif self.shard_count is not None:
            raise ValueError("shard_count only applies to the hashed scheme")

    def shard_for_key(self, key: str) -> str:
        """Return the one shard id that owns ``key``."""
        if not key:
            raise ValueError("cannot partition an empty key")
        if self.scheme == SCHEME_HASHED:
            assert self.shard_count is not None
            bucket = zlib.crc32(key[:HASH_PREFIX_WIDTH].encode("utf-8")) % self.shard_count
            return _hashed_shard_id(bucket, self.shard_count)
        first = key[0]
        if first in string.ascii_lowercase:
            return first
        if first in string.digits:
            return DIGITS_SHARD
        return SYMBOLS_SHARD

    def all_shard_ids(self) -> list[str]:
        """Every shard id this partitioner can produce, in canonical order."""
        if self.scheme == SCHEME_HASHED:
            assert self.shard_count is not None
            return [_hashed_shard_id(bucket, self.shard_count) for bucket in range(self.shard_count)]
        return list(ALPHA_SHARD_IDS)

    def shards_for_prefix(self, prefix: str) -> list[str]:
        """Shards that may hold keys starting with ``prefix``.

        Narrows to a single shard once ``prefix`` covers the partitioned
        leading characters; shorter prefixes may land anywhere.
        """
        width = HASH_PREFIX_WIDTH if self.scheme == SCHEME_HASHED else 1
        if len(prefix) >= width:
            return [self.shard_for_key(prefix)]
        return self.all_shard_ids()

    def order_index(self, shard_id: str) -> int:
        """Position of ``shard_id`` in canonical order; unknown ids sort last."""
        ids = self.all_shard_ids()
        try:
            return ids.index(shard_id)
        except ValueError:
            return len(ids)


def _hashed_shard_id(bucket: int, shard_count: int) -> str:
    width = max(2, len(str(shard_count - 1)))
    return f"h{bucket:0{width}d}"


__all__ = [
    "ALPHA_SHARD_IDS",
    "DEFAULT_HASHED_SHARD_COUNT",
    "DIGITS_SHARD",
    "HASH_PREFIX_WIDTH",
    "Partitioner",
    "SCHEMES",
    "SCHEME_ALPHA",
    "SCHEME_HASHED",
    "SYMBOLS_SHARD",
]
