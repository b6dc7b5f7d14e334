"""Observability module for OpenTelemetry-aligned tracing, metrics, and logging."""

from firescan.observability.context import bind_collection, get_trace_context, set_trace_context, trace_context
from firescan.observability.logging import (
    JsonFormatter,
    configure_log_exporter,
    configure_logging,
    init_log_exporter,
)
from firescan.observability.metrics import (
    DOCUMENTS_MATERIALIZED,
    FULLTEXT_LATENCY,
    FULLTEXT_OPERATIONS,
    INDEX_DOC_COUNT,
    QUERY_COUNT,
    QUERY_LATENCY,
    configure_metrics_exporter,
    get_metrics,
    get_metrics_content_type,
    init_metrics,
    track_latency,
)
from firescan.observability.tracing import (
    configure_trace_exporter,
    create_span,
    get_tracer,
    init_tracing,
)


__all__ = [
    "DOCUMENTS_MATERIALIZED",
    "FULLTEXT_LATENCY",
    "FULLTEXT_OPERATIONS",
    "INDEX_DOC_COUNT",
    "QUERY_COUNT",
    "QUERY_LATENCY",
    "JsonFormatter",
    "bind_collection",
    "configure_log_exporter",
    "configure_logging",
    "configure_metrics_exporter",
    "configure_trace_exporter",
    "create_span",
    "get_metrics",
    "get_metrics_content_type",
    "get_trace_context",
    "get_tracer",
    "init_log_exporter",
    "init_metrics",
    "init_tracing",
    "set_trace_context",
    "trace_context",
    "track_latency",
]
