"""Bounded retrieval of large result sets from the document store.

Two retrieval shapes are supported:

* cursor-paginated scans, strictly sequential because each page starts after
  the previous page's last document
* point lookups by id, dispatched concurrently in batches of ``batch_size``

``fetch_all`` enforces the server-side ceiling: when the authoritative count
is at or above it, no page is fetched at all.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
import logging
from typing import TypeVar

from firescan.adapters.document_store import AbstractDocumentStore
from firescan.domain.documents import StoredDocument
from firescan.domain.query import Query
from firescan.exceptions import ResourceExceededError


logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

PageFilter = Callable[[list[StoredDocument]], list[StoredDocument]]


async def parallel_execution(
    items: Sequence[T],
    limit: int,
    operation: Callable[[T], Awaitable[R]],
) -> list[R]:
    """Run ``operation`` over ``items`` with at most ``limit`` calls in flight.

    Results keep input order. Every call in a batch is awaited before the
    first failure of that batch is re-raised; later batches do not start.
    """

    if limit < 1:
        msg = f"limit must be >= 1, got {limit}"
        raise ValueError(msg)
    results: list[R] = []
    for start in range(0, len(items), limit):
        batch = items[start : start + limit]
        outcomes = await asyncio.gather(*(operation(item) for item in batch), return_exceptions=True)
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome
        results.extend(outcomes)
    return results


class BatchFetcher:
    """Pulls documents from a store under a hard materialization ceiling."""

    def __init__(self, store: AbstractDocumentStore, *, max_results: int, batch_size: int):
        if max_results < 1 or batch_size < 1:
            msg = "max_results and batch_size must both be >= 1"
            raise ValueError(msg)
        self.store = store
        self.max_results = max_results
        self.batch_size = batch_size

    def ensure_within_ceiling(self, count: int, query: Query | None = None) -> None:
        if count >= self.max_results:
            raise ResourceExceededError(
                count,
                self.max_results,
                query_description=query.describe() if query is not None else "",
            )

    async def scan(self, query: Query) -> AsyncIterator[list[StoredDocument]]:
        """Yield successive pages of ``query`` (offset/limit ignored), unbounded."""

        page_query = query.unbounded().with_limit(self.batch_size)
        cursor: StoredDocument | None = None
        while True:
            page = await self.store.run_query(page_query, start_after=cursor)
            if not page:
                return
            yield page
            if len(page) < self.batch_size:
                return
            cursor = page[-1]

    async def fetch_all(
        self,
        query: Query,
        *,
        known_count: int | None = None,
        page_filter: PageFilter | None = None,
    ) -> list[StoredDocument]:
        """Materialize every document matching ``query``.

        Raises:
            ResourceExceededError: the count is at or above ``max_results``
        """

        count = known_count if known_count is not None else await self.store.count(query.unbounded())
        self.ensure_within_ceiling(count, query)

        documents: list[StoredDocument] = []
        pages = 0
        async for page in self.scan(query):
            pages += 1
            documents.extend(page_filter(page) if page_filter is not None else page)
        logger.debug(
            "Fetched %d documents in %d pages for %s (count=%d)", len(documents), pages, query.describe(), count
        )
        return documents

    async def fetch_by_ids(self, collection: str, ids: Sequence[str]) -> list[StoredDocument]:
        """Existence-checked point lookups; missing ids are skipped, input order kept."""

        unique_ids = list(dict.fromkeys(ids))
        found = await parallel_execution(
            unique_ids, self.batch_size, lambda document_id: self.store.get(collection, document_id)
        )
        documents = [document for document in found if document is not None]
        if len(documents) < len(unique_ids):
            logger.debug(
                "%d of %d ids no longer exist in %s", len(unique_ids) - len(documents), len(unique_ids), collection
            )
        return documents
