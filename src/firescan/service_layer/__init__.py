"""Service layer - retrieval, full-text lifecycle and query execution."""

from .batch_fetcher import BatchFetcher, parallel_execution
from .fulltext_service import (
    FullTextIndex,
    FullTextIndexManager,
    document_text,
    extract_field_values,
    search_index,
)
from .query_executor import QueryOptions, QueryPlanExecutor
from .services import (
    build_index,
    configure_observability,
    load_index,
    record_mutation,
    run_query,
    update_index,
)


__all__ = [
    "BatchFetcher",
    "FullTextIndex",
    "FullTextIndexManager",
    "QueryOptions",
    "QueryPlanExecutor",
    "build_index",
    "configure_observability",
    "document_text",
    "extract_field_values",
    "load_index",
    "parallel_execution",
    "record_mutation",
    "run_query",
    "search_index",
    "update_index",
]
