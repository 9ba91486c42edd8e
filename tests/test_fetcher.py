"""
Test Suite for Batch Fetching and the Page Cache
================================================
Async tests for bounded fetching, failure handling and cache merges.
"""

from __future__ import annotations

import asyncio
import json

import pytest

from readingorder.errors import CacheIOError, FetchError
from readingorder.fetcher import fetch_range
from readingorder.models import FetchState
from readingorder.storage import PageCache, get_cache_path, sanitize_name


def layout_for(page_index: int) -> dict:
    return {"paragraphs": [], "page": page_index}


def write_cache(path, pages: dict[int, dict]):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps({
        str(i): {"page_index": i, "result": result} for i, result in pages.items()
    }), encoding="utf-8")


# ═══════════════════════════════════════════════════════════════════════════════
# PAGE CACHE TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestPageCache:
    """Test the JSON page cache."""

    def test_load_creates_empty_file(self, tmp_path):
        cache = PageCache("book", cache_dir=tmp_path)
        assert cache.load() == {}
        assert cache.path.exists()
        assert json.loads(cache.path.read_text(encoding="utf-8")) == {}

    def test_load_entries(self, tmp_path):
        cache = PageCache("book", cache_dir=tmp_path)
        write_cache(cache.path, {0: layout_for(0), 4: layout_for(4)})
        entries = cache.load()
        assert sorted(entries) == [0, 4]
        assert entries[4].result == layout_for(4)

    def test_corrupt_file_treated_as_empty(self, tmp_path):
        cache = PageCache("book", cache_dir=tmp_path)
        cache.path.write_text("{not json", encoding="utf-8")
        assert cache.load() == {}

    def test_non_object_root_treated_as_empty(self, tmp_path):
        cache = PageCache("book", cache_dir=tmp_path)
        cache.path.write_text("[1, 2, 3]", encoding="utf-8")
        assert cache.load() == {}

    def test_bare_results_and_bad_keys(self, tmp_path):
        cache = PageCache("book", cache_dir=tmp_path)
        cache.path.write_text(json.dumps({
            "3": {"paragraphs": []},
            "abc": {"page_index": 1, "result": {}},
            "5": "garbage",
        }), encoding="utf-8")
        entries = cache.load()
        assert list(entries) == [3]
        assert entries[3].result == {"paragraphs": []}

    def test_negative_key_ignored(self, tmp_path):
        cache = PageCache("book", cache_dir=tmp_path)
        write_cache(cache.path, {-1: layout_for(-1), 0: layout_for(0)})
        assert list(cache.load()) == [0]

    @pytest.mark.asyncio
    async def test_negative_key_does_not_abort_batch(self, tmp_path):
        cache = PageCache("book", cache_dir=tmp_path)
        write_cache(cache.path, {-1: layout_for(-1), 0: layout_for(0)})

        async def fetch_one(i):
            return layout_for(i)

        batch = await fetch_range(0, 2, 1, fetch_one, cache=cache)
        assert batch.succeeded_pages == [0, 1]
        assert batch.jobs[0].cached is True

    def test_cache_built_outside_event_loop(self, tmp_path):
        cache = PageCache("book", cache_dir=tmp_path)

        async def merge_all():
            await asyncio.gather(*(cache.merge(i, layout_for(i)) for i in range(5)))

        asyncio.run(merge_all())
        asyncio.run(merge_all())
        assert sorted(cache.load()) == list(range(5))

    @pytest.mark.asyncio
    async def test_merge_preserves_other_pages(self, tmp_path):
        cache = PageCache("book", cache_dir=tmp_path)
        write_cache(cache.path, {10: layout_for(10)})

        assert await cache.merge(2, layout_for(2)) is True

        data = json.loads(cache.path.read_text(encoding="utf-8"))
        assert sorted(data) == ["10", "2"]
        assert data["10"]["result"] == layout_for(10)
        assert data["2"] == {"page_index": 2, "result": layout_for(2)}

    @pytest.mark.asyncio
    async def test_concurrent_merges_lose_nothing(self, tmp_path):
        cache = PageCache("book", cache_dir=tmp_path)
        await asyncio.gather(*(cache.merge(i, layout_for(i)) for i in range(20)))
        assert sorted(cache.load()) == list(range(20))

    @pytest.mark.asyncio
    async def test_merge_rewrites_corrupt_file(self, tmp_path):
        cache = PageCache("book", cache_dir=tmp_path)
        cache.path.write_text("{not json", encoding="utf-8")
        assert await cache.merge(0, layout_for(0)) is True
        assert sorted(cache.load()) == [0]

    @pytest.mark.asyncio
    async def test_merge_write_failure_reported(self, tmp_path, monkeypatch):
        cache = PageCache("book", cache_dir=tmp_path)

        def fail(self, data):
            raise CacheIOError(self.path, "disk full")

        monkeypatch.setattr(PageCache, "_write_raw", fail)
        assert await cache.merge(0, layout_for(0)) is False

    def test_cache_path_from_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("READINGORDER_CACHE_DIR", str(tmp_path))
        assert get_cache_path("My Book") == tmp_path / "My_Book.json"
        assert PageCache("My Book").path == tmp_path / "My_Book.json"

    def test_sanitize_name(self):
        assert sanitize_name("Der Drache: Teil 1") == "Der_Drache__Teil_1"


# ═══════════════════════════════════════════════════════════════════════════════
# FETCH RANGE TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestFetchRange:
    """Test bounded, cache-backed batch fetching."""

    @pytest.mark.asyncio
    async def test_all_pages_fetched(self):
        async def fetch_one(i):
            return layout_for(i)

        batch = await fetch_range(0, 4, 2, fetch_one)
        assert batch.succeeded_pages == [0, 1, 2, 3]
        assert all(job.state == FetchState.DONE for job in batch.jobs.values())
        assert not any(job.cached for job in batch.jobs.values())

    @pytest.mark.asyncio
    async def test_concurrency_bounded(self):
        active = 0
        peak = 0

        async def fetch_one(i):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return layout_for(i)

        batch = await fetch_range(0, 6, 2, fetch_one)
        assert peak == 2
        assert len(batch.results) == 6

    @pytest.mark.asyncio
    async def test_results_in_completion_order(self):
        async def fetch_one(i):
            await asyncio.sleep(0.05 if i == 0 else 0.001)
            return layout_for(i)

        batch = await fetch_range(0, 2, 2, fetch_one)
        assert [e.page_index for e in batch.results] == [1, 0]

    @pytest.mark.asyncio
    async def test_in_flight_pages_finish_after_failure(self):
        async def fetch_one(i):
            if i == 2:
                await asyncio.sleep(0.1)
                raise FetchError(i, "service unavailable")
            await asyncio.sleep(0.001)
            return layout_for(i)

        batch = await fetch_range(0, 5, 2, fetch_one)

        assert batch.succeeded_pages == [0, 1, 3, 4]
        assert batch.failed_pages == [2]
        assert batch.skipped_pages == []
        assert "service unavailable" in batch.jobs[2].error

    @pytest.mark.asyncio
    async def test_later_pages_skipped_after_failure(self):
        calls = []

        async def fetch_one(i):
            calls.append(i)
            if i == 0:
                raise FetchError(i, "boom")
            return layout_for(i)

        batch = await fetch_range(0, 3, 1, fetch_one)

        assert calls == [0]
        assert batch.results == []
        assert batch.failed_pages == [0]
        assert batch.skipped_pages == [1, 2]

    @pytest.mark.asyncio
    async def test_keep_going_after_failure(self):
        calls = []

        async def fetch_one(i):
            calls.append(i)
            if i == 0:
                raise RuntimeError("boom")
            return layout_for(i)

        batch = await fetch_range(0, 3, 1, fetch_one, stop_on_failure=False)

        assert calls == [0, 1, 2]
        assert batch.succeeded_pages == [1, 2]
        assert batch.failed_pages == [0]

    @pytest.mark.asyncio
    async def test_cached_pages_not_fetched(self, tmp_path):
        cache = PageCache("book", cache_dir=tmp_path)
        write_cache(cache.path, {1: layout_for(1), 10: layout_for(10)})
        calls = []

        async def fetch_one(i):
            calls.append(i)
            return layout_for(i)

        batch = await fetch_range(0, 3, 2, fetch_one, cache=cache)

        assert sorted(calls) == [0, 2]
        assert batch.succeeded_pages == [0, 1, 2]
        assert batch.jobs[1].cached is True
        assert batch.jobs[0].cached is False

        data = json.loads(cache.path.read_text(encoding="utf-8"))
        assert sorted(data, key=int) == ["0", "1", "2", "10"]
        assert data["10"]["result"] == layout_for(10)

    @pytest.mark.asyncio
    async def test_cache_hits_served_after_failure(self, tmp_path):
        cache = PageCache("book", cache_dir=tmp_path)
        write_cache(cache.path, {2: layout_for(2)})

        async def fetch_one(i):
            raise FetchError(i, "boom")

        batch = await fetch_range(0, 3, 1, fetch_one, cache=cache)

        assert batch.failed_pages == [0]
        assert batch.skipped_pages == [1]
        assert batch.succeeded_pages == [2]

    @pytest.mark.asyncio
    async def test_failed_pages_not_cached(self, tmp_path):
        cache = PageCache("book", cache_dir=tmp_path)

        async def fetch_one(i):
            if i == 1:
                raise FetchError(i, "boom")
            return layout_for(i)

        await fetch_range(0, 3, 3, fetch_one, cache=cache)
        assert 1 not in cache.load()

    @pytest.mark.asyncio
    async def test_cache_write_failure_keeps_results(self, tmp_path, monkeypatch):
        cache = PageCache("book", cache_dir=tmp_path)

        def fail(self, data):
            raise CacheIOError(self.path, "read-only")

        monkeypatch.setattr(PageCache, "_write_raw", fail)

        async def fetch_one(i):
            return layout_for(i)

        batch = await fetch_range(0, 2, 2, fetch_one, cache=cache)
        assert batch.succeeded_pages == [0, 1]

    @pytest.mark.asyncio
    async def test_progress_callback(self):
        progress = []

        async def fetch_one(i):
            return layout_for(i)

        await fetch_range(
            0, 3, 1, fetch_one,
            progress_callback=lambda done, total: progress.append((done, total)),
        )
        assert progress == [(1, 3), (2, 3), (3, 3)]

    @pytest.mark.asyncio
    async def test_empty_range(self):
        async def fetch_one(i):
            raise AssertionError("should not be called")

        batch = await fetch_range(5, 5, 2, fetch_one)
        assert batch.results == []
        assert batch.jobs == {}

    @pytest.mark.asyncio
    async def test_invalid_concurrency(self):
        async def fetch_one(i):
            return layout_for(i)

        with pytest.raises(ValueError):
            await fetch_range(0, 3, 0, fetch_one)
