"""Exception types shared by the index builder and the search runtime."""

from __future__ import annotations


class DocsearchError(Exception):
    """Base class for every error raised by docsearch."""


class MalformedRecord(DocsearchError, ValueError):
    """A symbol record is structurally invalid and cannot be indexed."""

    def __init__(self, message: str, *, index: int | None = None, display_name: str = "") -> None:
        super().__init__(message)
        self.index = index
        self.display_name = display_name


class ShardFormatError(DocsearchError, ValueError):
    """A shard or manifest document does not match the expected layout."""


__all__ = ["DocsearchError", "MalformedRecord", "ShardFormatError"]
