"""Search-key normalization and Doxygen key escaping.

``normalize_key`` is the single transform shared by index keys and query text,
so both sides always agree on the key alphabet.
"""

from __future__ import annotations

import re
import unicodedata

KEY_ALPHABET = frozenset("abcdefghijklmnopqrstuvwxyz0123456789_~")

_DOXYGEN_ESCAPE_RE = re.compile(r"_([0-9a-f]{2})")


def normalize_key(text: str) -> str:
    """Return the canonical search key for ``text``.

    Decomposes compatibility characters, case-folds, and drops everything
    outside ``KEY_ALPHABET``. The result may be empty.
    """
    if not text:
        return ""
    folded = unicodedata.normalize("NFKD", text).casefold()
    return "".join(ch for ch in folded if ch in KEY_ALPHABET)


def escape_doxygen_key(key: str) -> str:
    """Escape a key the way Doxygen names ``searchData`` entries.

    Alphanumerics pass through; every other UTF-8 byte (``_`` included)
    becomes ``_XX`` with a lowercase hex pair.
    """
    out: list[str] = []
    for ch in key:
        if ch.isascii() and ch.isalnum():
            out.append(ch.lower())
            continue
        out.extend(f"_{byte:02x}" for byte in ch.encode("utf-8"))
    return "".join(out)


def unescape_doxygen_key(escaped: str) -> str:
    """Invert ``escape_doxygen_key``; malformed byte runs decode with replacement."""
    raw = bytearray()
    pos = 0
    for match in _DOXYGEN_ESCAPE_RE.finditer(escaped):
        raw.extend(escaped[pos : match.start()].encode("utf-8"))
        raw.append(int(match.group(1), 16))
        pos = match.end()
    raw.extend(escaped[pos:].encode("utf-8"))
    return raw.decode("utf-8", errors="replace")


def sort_key(key: str) -> str:
    """Case-insensitive, locale-independent comparator key for shard ordering."""
    return key.casefold()


__all__ = [
    "KEY_ALPHABET",
    "escape_doxygen_key",
    "normalize_key",
    "sort_key",
    "unescape_doxygen_key",
]
