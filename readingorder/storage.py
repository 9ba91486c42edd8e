"""
Filesystem Storage Manager
===========================
Manages the on-disk page cache.
The cache directory defaults to cache/ under the project root.

Directory Layout:
    cache/
    └── {document_name}.json   # Raw layout results, keyed by page index

Cache file format:
    {
      "0": {"page_index": 0, "result": {...layout result...}},
      "1": {"page_index": 1, "result": {...}}
    }
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any, Optional, Union

from .errors import CacheIOError
from .models import CacheEntry

logger = logging.getLogger(__name__)

# Project root: one level up from /readingorder/ package
_PROJECT_ROOT = Path(__file__).parent.parent.absolute()

CACHE_DIR = _PROJECT_ROOT / "cache"


def get_cache_dir() -> Path:
    """Cache directory, overridable with READINGORDER_CACHE_DIR."""
    return Path(os.environ.get("READINGORDER_CACHE_DIR", CACHE_DIR))


def get_cache_path(
    document_name: str, cache_dir: Optional[Union[str, Path]] = None
) -> Path:
    """Path of the cache file for a document."""
    base = Path(cache_dir) if cache_dir else get_cache_dir()
    return base / f"{sanitize_name(document_name)}.json"


# ─── Page Cache ───────────────────────────────────────────────────────────────


class PageCache:
    """
    JSON page cache for one document.

    Reads never fail: an unreadable file is reported and treated as empty.
    Merges are serialized with an asyncio.Lock, so concurrent completions
    inside one event loop never lose each other's pages. The file is
    rewritten whole on every merge and never deleted.
    """

    def __init__(
        self,
        document_name: str,
        cache_dir: Optional[Union[str, Path]] = None,
        path: Optional[Union[str, Path]] = None,
    ):
        self.document_name = document_name
        self.path = Path(path) if path else get_cache_path(document_name, cache_dir)
        # One lock per event loop, created inside the running loop
        self._lock: Optional[asyncio.Lock] = None
        self._lock_loop: Optional[asyncio.AbstractEventLoop] = None

    def load(self) -> dict[int, CacheEntry]:
        """
        Read every cached page. Creates an empty cache file on first access.
        """
        if not self.path.exists():
            try:
                self._write_raw({})
            except CacheIOError as e:
                logger.warning(f"Could not create cache file: {e}")
            return {}

        try:
            data = self._read_raw()
        except CacheIOError as e:
            logger.warning(f"Cache unreadable, treating as empty: {e}")
            return {}

        entries: dict[int, CacheEntry] = {}
        for key, value in data.items():
            entry = self._to_entry(key, value)
            if entry is not None:
                entries[entry.page_index] = entry

        logger.info(f"Loaded {len(entries)} cached pages from {self.path}")
        return entries

    async def merge(self, page_index: int, result: dict[str, Any]) -> bool:
        """
        Add one page to the cache file (read-modify-write under the lock).

        Returns:
            True if the page was persisted, False if writing failed.
        """
        async with self._get_lock():
            return await asyncio.to_thread(self._merge_sync, page_index, result)

    def _get_lock(self) -> asyncio.Lock:
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    def _merge_sync(self, page_index: int, result: dict[str, Any]) -> bool:
        data: dict[str, Any] = {}
        if self.path.exists():
            try:
                data = self._read_raw()
            except CacheIOError as e:
                logger.warning(f"Cache unreadable during merge, rewriting: {e}")

        data[str(page_index)] = CacheEntry(
            page_index=page_index, result=result
        ).model_dump()

        try:
            self._write_raw(data)
        except CacheIOError as e:
            logger.warning(f"Failed to persist page {page_index}: {e}")
            return False
        return True

    def _read_raw(self) -> dict[str, Any]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise CacheIOError(self.path, str(e)) from e
        if not isinstance(data, dict):
            raise CacheIOError(self.path, "cache root is not a JSON object")
        return data

    def _write_raw(self, data: dict[str, Any]):
        tmp_path = self.path.with_suffix(".json.tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise CacheIOError(self.path, str(e)) from e

    def _to_entry(self, key: str, value: Any) -> Optional[CacheEntry]:
        try:
            page_index = int(key)
        except ValueError:
            logger.warning(f"Ignoring cache key {key!r} in {self.path}")
            return None
        if page_index < 0:
            logger.warning(f"Ignoring negative cache key {key!r} in {self.path}")
            return None
        # A bare layout result (no envelope) is accepted as well.
        result = value.get("result", value) if isinstance(value, dict) else None
        if not isinstance(result, dict):
            logger.warning(f"Ignoring malformed cache entry for page {key}")
            return None
        return CacheEntry(page_index=page_index, result=result)


# ─── Helpers ──────────────────────────────────────────────────────────────────


def sanitize_name(name: str) -> str:
    """Sanitize a name for filesystem use."""
    return "".join(
        c if c.isalnum() or c in "-_ " else "_"
        for c in name
    ).strip().replace(" ", "_")[:100]
