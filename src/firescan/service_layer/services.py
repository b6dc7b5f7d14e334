"""Service layer - caller-facing use cases.

Each use case takes its collaborators explicitly (document store, full-text
manager) so callers decide how stores are constructed and shared.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
import logging
from typing import Any

from firescan.adapters.document_store import AbstractDocumentStore
from firescan.config import Settings, get_settings
from firescan.domain.documents import QueryResult
from firescan.domain.fulltext import FullTextConfig, PendingUpdate
from firescan.domain.indexes import IndexDefinition
from firescan.domain.query import Query
from firescan.observability.logging import configure_log_exporter, configure_logging
from firescan.observability.metrics import configure_metrics_exporter
from firescan.observability.tracing import configure_trace_exporter, init_tracing
from firescan.service_layer.fulltext_service import FullTextIndex, FullTextIndexManager
from firescan.service_layer.query_executor import QueryOptions, QueryPlanExecutor


logger = logging.getLogger(__name__)


def configure_observability(settings: Settings | None = None) -> None:
    """Install logging, tracing and metric export according to ``settings``."""

    settings = settings or get_settings()
    configure_logging(settings.log_level, json_output=settings.log_json)
    collector = settings.observability
    resource_attributes = dict(collector.resource_attributes)
    configure_metrics_exporter(collector, service_name=settings.service_name)
    provider = init_tracing(settings.service_name, resource_attributes)
    configure_trace_exporter(collector, provider)
    configure_log_exporter(collector)
    logger.debug("Observability configured (otlp=%s)", collector.enabled)


async def run_query(
    store: AbstractDocumentStore,
    indexes: Sequence[IndexDefinition],
    query: Query,
    keywords: str | None = None,
    options: QueryOptions | None = None,
) -> QueryResult:
    """Run ``query`` against ``store`` using the deployed ``indexes``.

    Without explicit options, limits come from process settings.
    """

    opts = options or QueryOptions.from_settings(get_settings())
    return await QueryPlanExecutor(store).run_query(indexes, query, keywords, opts)


async def build_index(manager: FullTextIndexManager, collection: str, config: FullTextConfig) -> FullTextIndex:
    return await manager.build(collection, config)


async def load_index(
    manager: FullTextIndexManager,
    collection: str,
    config: FullTextConfig | None = None,
) -> FullTextIndex:
    """Load the persisted index; with ``config``, build it when missing."""

    if config is None:
        return await manager.load(collection)
    return await manager.load_or_build(collection, config)


async def update_index(manager: FullTextIndexManager, collection: str) -> FullTextIndex:
    return await manager.update(collection)


async def record_mutation(
    manager: FullTextIndexManager,
    collection: str,
    record_id: str,
    record_data: Mapping[str, Any] | None,
) -> PendingUpdate:
    return await manager.record_mutation(collection, record_id, record_data)
