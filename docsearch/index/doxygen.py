"""Read and write Doxygen ``searchData`` JavaScript shards.

Doxygen emits one ``var searchData=[...]`` file per index bucket, where each
row is ``['escaped_key',['Display',['url',flag,'scope'],...]]``. Parsing turns
those rows back into ``SymbolRecord`` objects so an existing HTML tree can be
re-indexed; writing renders a built shard in the same layout.
"""

from __future__ import annotations

import html
import json
import re

from ..errors import ShardFormatError
from .normalize import escape_doxygen_key, unescape_doxygen_key
from .types import Occurrence, Shard, SymbolRecord

_PREFIX_RE = re.compile(r"^\s*var\s+searchData\s*=\s*", re.DOTALL)
_JS_STRING_RE = re.compile(r"'((?:[^'\\]|\\.)*)'", re.DOTALL)
_JS_ESCAPE_RE = re.compile(r"\\(.)", re.DOTALL)


def _js_string_to_json(match: re.Match[str]) -> str:
    return json.dumps(_JS_ESCAPE_RE.sub(r"\1", match.group(1)))


def _text(value: object) -> str:
    return html.unescape(value) if isinstance(value, str) else ""


def parse_searchdata_js(text: str) -> list[SymbolRecord]:
    """Parse one Doxygen ``searchData`` file into symbol records."""
    prefix = _PREFIX_RE.match(text)
    if prefix is None:
        raise ShardFormatError("missing 'var searchData=' prefix")
    body = text[prefix.end() :].strip().rstrip(";").strip()

    try:
        rows = json.loads(_JS_STRING_RE.sub(_js_string_to_json, body))
    except json.JSONDecodeError as exc:
        raise ShardFormatError(f"unparseable searchData array: {exc}") from exc
    if not isinstance(rows, list):
        raise ShardFormatError("searchData must be an array")

    records: list[SymbolRecord] = []
    for row in rows:
        if not isinstance(row, list) or len(row) != 2 or not isinstance(row[1], list) or not row[1]:
            raise ShardFormatError(f"malformed searchData row: {row!r}")
        escaped_key, payload = row
        occurrences: list[Occurrence] = []
        for item in payload[1:]:
            if not isinstance(item, list) or not item or not isinstance(item[0], str):
                raise ShardFormatError(f"malformed occurrence in row {escaped_key!r}")
            scope = item[2] if len(item) > 2 else ""
            occurrences.append(Occurrence(anchor_url=item[0], scope_label=_text(scope)))
        records.append(
            SymbolRecord(
                raw_name=unescape_doxygen_key(escaped_key) if isinstance(escaped_key, str) else "",
                display_name=_text(payload[0]),
                occurrences=tuple(occurrences),
            )
        )
    return records


def _js_quote(value: str, *, entities: bool = True) -> str:
    if entities:
        value = html.escape(value, quote=False)
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def dumps_searchdata_js(shard: Shard) -> str:
    """Render ``shard`` as a Doxygen-compatible ``searchData`` file."""
    rows: list[str] = []
    for entry in shard.entries:
        targets = ",".join(
            f"[{_js_quote(occurrence.anchor_url, entities=False)},1,{_js_quote(occurrence.scope_label)}]"
            for occurrence in entry.occurrences
        )
        rows.append(f"  [{_js_quote(escape_doxygen_key(entry.key))},[{_js_quote(entry.display_name)},{targets}]]")
    return "var searchData=\n[\n" + ",\n".join(rows) + "\n];\n"


def searchdata_filename(shard_id: str) -> str:
    return f"searchdata_{shard_id}.js"


__all__ = ["dumps_searchdata_js", "parse_searchdata_js", "searchdata_filename"]
