"""Public package surface for docsearch.

Exports ``main`` for programmatic CLI invocation.
Index construction lives in ``docsearch.index``; querying in ``docsearch.search``.
"""

from __future__ import annotations


def main(*args, **kwargs):
    """Lazily import CLI entrypoint to keep package imports lightweight."""
    from .cli import main as _main

    return _main(*args, **kwargs)

__all__ = ["main"]
