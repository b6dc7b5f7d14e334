"""Unit tests for bounded batch retrieval."""

from __future__ import annotations

import asyncio

import pytest

from firescan.domain import collection_query
from firescan.exceptions import ResourceExceededError
from firescan.service_layer import BatchFetcher, parallel_execution


@pytest.mark.unit
class TestParallelExecution:
    @pytest.mark.asyncio
    async def test_bounded_concurrency_and_order(self):
        in_flight = 0
        peak = 0

        async def work(item: int) -> int:
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0)
            in_flight -= 1
            return item * 10

        results = await parallel_execution(list(range(7)), 3, work)

        assert results == [0, 10, 20, 30, 40, 50, 60]
        assert peak <= 3

    @pytest.mark.asyncio
    async def test_failure_waits_for_batch_and_stops_later_batches(self):
        finished: list[int] = []

        async def work(item: int) -> int:
            if item == 0:
                raise ConnectionError("lookup failed")
            await asyncio.sleep(0.01)
            finished.append(item)
            return item

        with pytest.raises(ConnectionError):
            await parallel_execution([0, 1, 2, 3], 3, work)

        assert finished == [1, 2]

    @pytest.mark.asyncio
    async def test_empty_input(self):
        async def work(item):  # pragma: no cover - never called
            return item

        assert await parallel_execution([], 5, work) == []

    @pytest.mark.asyncio
    async def test_rejects_zero_limit(self):
        async def work(item):  # pragma: no cover - never called
            return item

        with pytest.raises(ValueError):
            await parallel_execution([1], 0, work)


@pytest.mark.unit
class TestBatchFetcher:
    @pytest.mark.asyncio
    async def test_scan_pages_sequentially_with_cursor(self, users_store):
        fetcher = BatchFetcher(users_store, max_results=100, batch_size=3)

        pages = [page async for page in fetcher.scan(collection_query("users").with_limit(1))]

        assert [len(page) for page in pages] == [3, 3, 2]
        assert [d.id for page in pages for d in page] == sorted(d for d in users_store.documents("users"))

    @pytest.mark.asyncio
    async def test_scan_stops_on_exact_multiple(self, users_store):
        fetcher = BatchFetcher(users_store, max_results=100, batch_size=4)
        users_store.reset_calls()

        pages = [page async for page in fetcher.scan(collection_query("users"))]

        assert [len(page) for page in pages] == [4, 4]
        assert [op for op, _ in users_store.calls] == ["run_query", "run_query", "run_query"]

    @pytest.mark.asyncio
    async def test_fetch_all_applies_page_filter(self, users_store):
        fetcher = BatchFetcher(users_store, max_results=100, batch_size=2)

        documents = await fetcher.fetch_all(
            collection_query("users"),
            page_filter=lambda page: [d for d in page if d.data["city"] == "LA"],
        )

        assert [d.id for d in documents] == ["anna", "jane"]

    @pytest.mark.asyncio
    async def test_ceiling_is_inclusive(self, users_store):
        fetcher = BatchFetcher(users_store, max_results=8, batch_size=3)
        users_store.reset_calls()

        with pytest.raises(ResourceExceededError) as exc_info:
            await fetcher.fetch_all(collection_query("users"))

        assert exc_info.value.count == 8
        assert exc_info.value.ceiling == 8
        assert [op for op, _ in users_store.calls] == ["count"]

    @pytest.mark.asyncio
    async def test_below_ceiling_fetches_everything(self, users_store):
        fetcher = BatchFetcher(users_store, max_results=9, batch_size=3)
        assert len(await fetcher.fetch_all(collection_query("users"))) == 8

    @pytest.mark.asyncio
    async def test_known_count_skips_count_call(self, users_store):
        fetcher = BatchFetcher(users_store, max_results=5, batch_size=3)
        users_store.reset_calls()

        with pytest.raises(ResourceExceededError):
            await fetcher.fetch_all(collection_query("users"), known_count=5)
        assert users_store.calls == []

    @pytest.mark.asyncio
    async def test_fetch_by_ids_skips_missing_and_keeps_order(self, users_store):
        fetcher = BatchFetcher(users_store, max_results=100, batch_size=2)

        documents = await fetcher.fetch_by_ids("users", ["tom", "ghost", "anna", "tom", "bob"])

        assert [d.id for d in documents] == ["tom", "anna", "bob"]

    def test_rejects_invalid_limits(self, users_store):
        with pytest.raises(ValueError):
            BatchFetcher(users_store, max_results=0, batch_size=1)
