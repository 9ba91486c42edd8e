"""
Batch Page Fetcher
==================
Fetches layout results for a contiguous range of pages with bounded
parallelism, backed by the document's page cache.

    - At most `concurrency_limit` pages are inside a slot at any time;
      waiting pages acquire slots in FIFO order.
    - Cached pages are served without calling the layout service.
    - The first failure stops new service calls; pages already in flight
      finish on their own. A failed page is simply absent from the results.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from .models import BatchResult, CacheEntry, FetchJob, FetchState
from .storage import PageCache

logger = logging.getLogger(__name__)

FetchOne = Callable[[int], Awaitable[dict[str, Any]]]


async def fetch_range(
    start: int,
    end: int,
    concurrency_limit: int,
    fetch_one: FetchOne,
    cache: Optional[PageCache] = None,
    stop_on_failure: bool = True,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> BatchResult:
    """
    Fetch pages [start, end).

    Args:
        start: First page index (0-indexed, inclusive).
        end: Last page index (exclusive).
        concurrency_limit: Maximum number of pages fetched at once.
        fetch_one: Coroutine function page_index -> layout result;
            raises FetchError (or anything else) on failure.
        cache: Optional page cache, read once up front and merged into
            after every successful fetch.
        stop_on_failure: Skip service calls for pages that acquire a slot
            after the first failure.
        progress_callback: Optional callable(finished, total).

    Returns:
        BatchResult with successes in completion order and one FetchJob
        per page index.

    Raises:
        ValueError: If concurrency_limit < 1.
    """
    if concurrency_limit < 1:
        raise ValueError(f"concurrency_limit must be >= 1, got {concurrency_limit}")

    batch = BatchResult(
        jobs={i: FetchJob(page_index=i) for i in range(start, end)}
    )
    total = len(batch.jobs)
    if total == 0:
        return batch

    cached = cache.load() if cache is not None else {}
    semaphore = asyncio.Semaphore(concurrency_limit)
    failed = False
    finished = 0

    logger.info(
        f"Fetching pages {start} to {end - 1} "
        f"({total} pages, concurrency {concurrency_limit})"
    )

    async def run(job: FetchJob):
        nonlocal failed, finished
        fetched: Optional[CacheEntry] = None

        async with semaphore:
            entry = cached.get(job.page_index)
            if entry is not None:
                job.cached = True
                job.state = FetchState.DONE
                batch.results.append(entry)
            elif failed:
                job.state = FetchState.SKIPPED
                logger.debug(f"Skipping page {job.page_index} after earlier failure")
            else:
                job.state = FetchState.RUNNING
                try:
                    result = await fetch_one(job.page_index)
                    fetched = CacheEntry(page_index=job.page_index, result=result)
                except Exception as e:
                    job.state = FetchState.FAILED
                    job.error = str(e)
                    logger.error(f"Failed fetching page {job.page_index}: {e}")
                    if stop_on_failure:
                        failed = True
                else:
                    job.state = FetchState.DONE
                    batch.results.append(fetched)

        if fetched is not None and cache is not None:
            await cache.merge(fetched.page_index, fetched.result)

        finished += 1
        if progress_callback:
            progress_callback(finished, total)

    await asyncio.gather(*(run(job) for job in batch.jobs.values()))

    logger.info(
        f"Fetched {len(batch.results)}/{total} pages "
        f"({len(batch.failed_pages)} failed, {len(batch.skipped_pages)} skipped)"
    )
    return batch
