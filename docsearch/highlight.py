"""Terminal rendering for shard documents and query results.

Shard JSON is pretty-printed and highlighted with Pygments. Symbol names and
scope labels come from upstream documentation, so control bytes are escaped
before anything reaches the terminal.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterable

from pygments import highlight as pygments_highlight
from pygments.formatters import TerminalFormatter
from pygments.lexers import JsonLexer
from pygments.styles import get_style_by_name
from pygments.util import ClassNotFound

from .search.matching import ResultGroup

_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")

_FORMATTERS: dict[str, TerminalFormatter] = {}
FALLBACK_STYLE = "monokai"


def sanitize_terminal_text(source: str) -> str:
    """Escape terminal control bytes to avoid side effects (bell, cursor moves, etc.)."""
    if _CONTROL_RE.search(source) is None:
        return source

    out: list[str] = []
    for ch in source:
        code = ord(ch)
        if ch in {"\n", "\r", "\t"}:
            out.append(ch)
            continue
        # C0 controls + DEL + C1 controls.
        if code < 32 or code == 127 or 0x80 <= code <= 0x9F:
            out.append(f"\\x{code:02x}")
            continue
        out.append(ch)
    return "".join(out)


def _normalize_style(style: str) -> str:
    try:
        get_style_by_name(style)
    except ClassNotFound:
        return FALLBACK_STYLE
    return style


def _formatter_for_style(style: str) -> TerminalFormatter:
    formatter = _FORMATTERS.get(style)
    if formatter is not None:
        return formatter
    formatter = TerminalFormatter(style=style)
    _FORMATTERS[style] = formatter
    return formatter


def pretty_shard_text(document: str) -> str:
    """Re-indent a compact shard document for reading."""
    return json.dumps(json.loads(document), ensure_ascii=False, indent=2, sort_keys=True) + "\n"


def colorize_json(source: str, style: str = FALLBACK_STYLE, no_color: bool = False) -> str:
    source = sanitize_terminal_text(source)
    if no_color:
        return source
    formatter = _formatter_for_style(_normalize_style(style))
    return pygments_highlight(source, JsonLexer(), formatter)


def format_result_groups(groups: Iterable[ResultGroup]) -> str:
    """Plain-text listing: one row per entry, one indented line per occurrence."""
    lines: list[str] = []
    for group in groups:
        lines.append(sanitize_terminal_text(group.display_name))
        for result in group.results:
            scope = sanitize_terminal_text(result.scope_label) or "-"
            lines.append(f"    {scope}  {sanitize_terminal_text(result.anchor_url)}")
    return "\n".join(lines) + ("\n" if lines else "")


__all__ = [
    "colorize_json",
    "format_result_groups",
    "pretty_shard_text",
    "sanitize_terminal_text",
]
