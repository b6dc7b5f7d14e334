"""OpenTelemetry spans around query execution and full-text maintenance."""

from __future__ import annotations

from contextlib import contextmanager
import logging
from typing import TYPE_CHECKING, Any

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter as GrpcOTLPSpanExporter
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter as HttpOTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from firescan.config import ObservabilityCollectorConfig
from firescan.observability.context import update_span_id, with_otel_span
from firescan.observability.metrics import OTLP_EXPORT_ERRORS, OTLP_EXPORT_STATUS
from firescan.observability.otlp import build_exporter


if TYPE_CHECKING:
    from collections.abc import Generator

    from opentelemetry.trace import Span, Tracer

logger = logging.getLogger(__name__)

_tracer_holder: dict[str, Tracer | None] = {"tracer": None}


def init_tracing(
    service_name: str = "firescan",
    resource_attributes: dict[str, str] | None = None,
) -> TracerProvider:
    provider = TracerProvider(resource=Resource.create({"service.name": service_name, **(resource_attributes or {})}))
    trace.set_tracer_provider(provider)
    _tracer_holder["tracer"] = trace.get_tracer("firescan")
    logger.debug("Tracing initialized for %s", service_name)
    return provider


def configure_trace_exporter(
    config: ObservabilityCollectorConfig | None,
    provider: TracerProvider | None = None,
) -> None:
    """Attach a batching OTLP span exporter; failures are counted, not raised."""
    if not config or not config.enabled:
        return

    active_provider = provider or trace.get_tracer_provider()
    if not isinstance(active_provider, TracerProvider):
        active_provider = init_tracing(resource_attributes=dict(config.resource_attributes))

    status = OTLP_EXPORT_STATUS.labels(protocol=config.otlp_protocol)
    status.set(0)
    try:
        exporter = build_exporter(config, "traces", grpc_cls=GrpcOTLPSpanExporter, http_cls=HttpOTLPSpanExporter)
    except Exception:
        logger.exception("OTLP span exporter for %s could not be created", config.collector_endpoint)
        OTLP_EXPORT_ERRORS.labels(protocol=config.otlp_protocol).inc()
        return

    active_provider.add_span_processor(BatchSpanProcessor(exporter))
    status.set(1)
    logger.info("Exporting spans over OTLP/%s to %s", config.otlp_protocol, config.collector_endpoint)


def get_tracer() -> Tracer:
    if _tracer_holder["tracer"] is None:
        init_tracing()
    return _tracer_holder["tracer"]  # type: ignore[return-value]


@contextmanager
def create_span(name: str, attributes: dict[str, Any] | None = None) -> Generator[Span, None, None]:
    """Start a span and copy its id into the log context.

    Exceptions leaving the block are recorded on the span and mark it as an
    error before propagating.
    """
    with get_tracer().start_as_current_span(name, attributes=attributes) as span:
        update_span_id(with_otel_span(span)["span_id"])
        yield span
