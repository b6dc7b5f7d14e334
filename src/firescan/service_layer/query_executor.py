"""Query plan execution: native store queries, hybrid store+memory, keyword merging.

Every strategy decision compares candidate result-set sizes (keyword hits vs.
the store-side count) before retrieving anything, and one ceiling bounds the
number of documents ever materialized in memory. Crossing it raises
``ResourceExceededError`` instead of returning a truncated page.

Branches (recorded on ``QueryResult.strategy``):

* ``native``: a deployed index covers the query, so the store runs it as-is
* ``native-keyword-ids``: covered query, few keyword hits, so hits are fetched by id
* ``native-keyword-scan``: covered query scanned and intersected with the hits
* ``hybrid-keyword-ids``: uncovered query, few keyword hits, fetched by id
* ``hybrid``: store runs the pushable filters; the rest runs in memory
"""

from __future__ import annotations

from collections.abc import Sequence
import logging

from pydantic import BaseModel, ConfigDict, Field, InstanceOf

from firescan.adapters.document_store import AbstractDocumentStore
from firescan.config import DEFAULT_CAPABILITIES, Settings, StoreCapabilities
from firescan.domain.documents import ExecutionStrategy, QueryResult, StoredDocument
from firescan.domain.indexes import IndexDefinition
from firescan.domain.query import Query, SortOrder
from firescan.exceptions import ConfigurationError
from firescan.observability.context import bind_collection
from firescan.observability.metrics import DOCUMENTS_MATERIALIZED, QUERY_COUNT, QUERY_LATENCY, track_latency
from firescan.observability.tracing import create_span
from firescan.planning.analyzer import analyze_query_indexes, has_multiple_inequality_filters
from firescan.planning.matcher import is_index_present
from firescan.planning.residual import apply_filters, paginate, sort_documents
from firescan.planning.splitter import split_query
from firescan.service_layer.batch_fetcher import BatchFetcher
from firescan.service_layer.fulltext_service import FullTextIndex, search_index


logger = logging.getLogger(__name__)


class QueryOptions(BaseModel):
    """Per-call execution options."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    full_text_index: InstanceOf[FullTextIndex] | None = None
    max_server_side_results: int = Field(default=10_000, ge=1)
    batch_size: int = Field(default=500, ge=1)
    suggest: bool = False
    relevance_order: bool = Field(
        default=False,
        description="Order keyword results by relevance instead of the query's sort orders",
    )
    capabilities: StoreCapabilities = DEFAULT_CAPABILITIES

    @classmethod
    def from_settings(cls, settings: Settings, **overrides: object) -> QueryOptions:
        values: dict[str, object] = {
            "max_server_side_results": settings.max_server_side_results,
            "batch_size": settings.batch_size,
        }
        values.update(overrides)
        return cls(**values)


class _Plan:
    """Mutable bookkeeping for one execution."""

    def __init__(self, query: Query, options: QueryOptions, fetcher: BatchFetcher):
        self.query = query
        self.options = options
        self.fetcher = fetcher
        self.materialized = 0

    def count_page(self, page: list[StoredDocument]) -> None:
        self.materialized += len(page)


class QueryPlanExecutor:
    """Chooses and runs the cheapest safe strategy for one query."""

    def __init__(self, store: AbstractDocumentStore):
        self.store = store

    async def run_query(
        self,
        indexes: Sequence[IndexDefinition],
        query: Query,
        keywords: str | None = None,
        options: QueryOptions | None = None,
    ) -> QueryResult:
        """Execute ``query``, optionally restricted to records matching ``keywords``.

        Raises:
            ConfigurationError: keywords without a full-text index, or
                inequality filters on more than one field
            ResourceExceededError: the documents to materialize reach the ceiling
        """

        opts = options or QueryOptions()
        collection = query.collection_path
        bind_collection(collection)
        with (
            create_span(
                "query.run",
                attributes={"query.collection": collection, "query.keywords": bool(keywords)},
            ) as span,
            track_latency(QUERY_LATENCY, collection=collection),
        ):
            try:
                result = await self._execute(indexes, query, keywords, opts)
            except Exception:
                QUERY_COUNT.labels(collection=collection, strategy="none", status="error").inc()
                raise
            span.set_attribute("query.strategy", result.strategy.value)
            span.set_attribute("query.total_count", result.total_count)
        QUERY_COUNT.labels(collection=collection, strategy=result.strategy.value, status="success").inc()
        return result

    async def _execute(
        self,
        indexes: Sequence[IndexDefinition],
        query: Query,
        keywords: str | None,
        opts: QueryOptions,
    ) -> QueryResult:
        hits: list[str] | None = None
        if keywords:
            index = opts.full_text_index
            if index is None:
                msg = "Keywords were supplied but no full-text index was provided"
                raise ConfigurationError(msg)
            if index.collection.strip("/") != query.collection_path.strip("/"):
                msg = (
                    f"Full-text index for '{index.collection}' cannot serve a query on '{query.collection_path}'"
                )
                raise ConfigurationError(msg)
            hits = search_index(index, keywords, suggest=opts.suggest)

        required = analyze_query_indexes(query)
        present = is_index_present(indexes, required)
        multi_inequality = has_multiple_inequality_filters(query, opts.capabilities)
        plan = _Plan(
            query,
            opts,
            BatchFetcher(self.store, max_results=opts.max_server_side_results, batch_size=opts.batch_size),
        )

        if present and not multi_inequality:
            result = await self._run_native(plan, hits)
        else:
            result = await self._run_hybrid(plan, indexes, hits)

        if plan.materialized:
            DOCUMENTS_MATERIALIZED.labels(collection=query.collection_path, strategy=result.strategy.value).inc(
                plan.materialized
            )
        logger.info(
            "Query %s ran %s: %d of %d results (required index %s, present=%s, multi_inequality=%s)",
            query.describe(),
            result.strategy.value,
            len(result.results),
            result.total_count,
            required.describe() if required is not None else "none",
            present,
            multi_inequality,
        )
        return result

    async def _run_native(self, plan: _Plan, hits: list[str] | None) -> QueryResult:
        query = plan.query
        count = await self.store.count(query.unbounded())

        if hits is None:
            page_size = max(count - (query.offset or 0), 0)
            if query.limit is not None:
                page_size = min(page_size, query.limit)
            plan.fetcher.ensure_within_ceiling(page_size, query)
            page = await self.store.run_query(query)
            return QueryResult(results=page, total_count=count, strategy=ExecutionStrategy.NATIVE)

        if len(hits) < count and len(hits) < plan.options.max_server_side_results:
            matched = await self._fetch_hits(plan, hits)
            strategy = ExecutionStrategy.NATIVE_KEYWORD_IDS
        else:
            hit_set = set(hits)

            def keep_hits(page: list[StoredDocument]) -> list[StoredDocument]:
                plan.count_page(page)
                return [document for document in page if document.id in hit_set]

            matched = await plan.fetcher.fetch_all(query, known_count=count, page_filter=keep_hits)
            strategy = ExecutionStrategy.NATIVE_KEYWORD_SCAN

        ordered = self._order(matched, query.sort_orders, hits, plan.options)
        return QueryResult(
            results=paginate(ordered, query.offset, query.limit),
            total_count=len(ordered),
            strategy=strategy,
        )

    async def _run_hybrid(
        self,
        plan: _Plan,
        indexes: Sequence[IndexDefinition],
        hits: list[str] | None,
    ) -> QueryResult:
        query = plan.query
        split = split_query(query, indexes, plan.options.capabilities)
        residual = split.residual
        count = await self.store.count(split.db_query)

        if hits is not None and len(hits) < count and len(hits) < plan.options.max_server_side_results:
            matched = await self._fetch_hits(plan, hits)
            strategy = ExecutionStrategy.HYBRID_KEYWORD_IDS
        else:

            def keep_residual(page: list[StoredDocument]) -> list[StoredDocument]:
                plan.count_page(page)
                return apply_filters(page, residual.filters)

            matched = await plan.fetcher.fetch_all(split.db_query, known_count=count, page_filter=keep_residual)
            if hits is not None:
                hit_set = set(hits)
                matched = [document for document in matched if document.id in hit_set]
            strategy = ExecutionStrategy.HYBRID

        ordered = self._order(matched, residual.sort_orders, hits, plan.options)
        return QueryResult(
            results=paginate(ordered, residual.offset, residual.limit),
            total_count=len(ordered),
            strategy=strategy,
        )

    async def _fetch_hits(self, plan: _Plan, hits: list[str]) -> list[StoredDocument]:
        """Fetch keyword hits by id and keep those the full query still accepts."""

        documents = await plan.fetcher.fetch_by_ids(plan.query.collection_path, hits)
        plan.count_page(documents)
        return apply_filters(documents, plan.query.filters)

    @staticmethod
    def _order(
        documents: list[StoredDocument],
        sort_orders: Sequence[SortOrder],
        hits: list[str] | None,
        options: QueryOptions,
    ) -> list[StoredDocument]:
        if hits is not None and options.relevance_order:
            rank = {document_id: position for position, document_id in enumerate(hits)}
            return sorted(documents, key=lambda document: rank[document.id])
        # Store order: sort orders first, document id as the final tiebreaker
        return sort_documents(sorted(documents, key=lambda document: document.id), sort_orders)
