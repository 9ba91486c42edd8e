"""
Errors
======
Exceptions raised at the fetch and cache boundaries.

Malformed blocks, unparseable page numbers and degenerate assemblies are
recovered where they occur and are only logged.
"""

from __future__ import annotations

from pathlib import Path
from typing import Union


class ReadingOrderError(Exception):
    """Base class for all errors raised by this package."""


class FetchError(ReadingOrderError):
    """The layout service call for a single page failed."""

    def __init__(self, page_index: int, message: str):
        self.page_index = page_index
        self.message = message
        super().__init__(f"Page {page_index}: {message}")


class CacheIOError(ReadingOrderError):
    """The cache file could not be read or written."""

    def __init__(self, path: Union[str, Path], message: str):
        self.path = str(path)
        self.message = message
        super().__init__(f"{self.path}: {message}")
