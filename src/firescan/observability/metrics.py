"""Prometheus metrics for query planning and full-text maintenance, bridged to OTLP."""

from __future__ import annotations

from contextlib import contextmanager
import time
from typing import TYPE_CHECKING, Any

from opentelemetry import metrics as otel_metrics
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import (
    OTLPMetricExporter as GrpcOTLPMetricExporter,
)
from opentelemetry.exporter.otlp.proto.http.metric_exporter import (
    OTLPMetricExporter as HttpOTLPMetricExporter,
)
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest

from firescan.config import ObservabilityCollectorConfig
from firescan.observability.otlp import build_exporter


if TYPE_CHECKING:
    from collections.abc import Generator


_meter_holder: dict[str, Any] = {"meter": None, "provider": None}


def init_metrics(
    service_name: str = "firescan",
    resource_attributes: dict[str, str] | None = None,
    metric_readers: list[PeriodicExportingMetricReader] | None = None,
) -> MeterProvider:
    """Initialize OpenTelemetry metrics (idempotent)."""
    provider = _meter_holder.get("provider")
    if isinstance(provider, MeterProvider):
        return provider

    attributes = {"service.name": service_name}
    if resource_attributes:
        attributes.update(resource_attributes)
    provider = MeterProvider(resource=Resource.create(attributes), metric_readers=metric_readers or [])
    otel_metrics.set_meter_provider(provider)
    _meter_holder["provider"] = provider
    _meter_holder["meter"] = otel_metrics.get_meter(__name__)
    return provider


def configure_metrics_exporter(
    config: ObservabilityCollectorConfig | None,
    *,
    service_name: str = "firescan",
) -> MeterProvider | None:
    """Install a periodic OTLP metric reader. Must run before the first metric is recorded."""
    if not config or not config.enabled:
        return None

    exporter = build_exporter(config, "metrics", grpc_cls=GrpcOTLPMetricExporter, http_cls=HttpOTLPMetricExporter)
    return init_metrics(
        service_name=service_name,
        resource_attributes=dict(config.resource_attributes),
        metric_readers=[PeriodicExportingMetricReader(exporter)],
    )


def _get_meter():
    meter = _meter_holder.get("meter")
    if meter is None:
        init_metrics()
        meter = _meter_holder.get("meter")
    return meter


class _BoundMetric:
    def __init__(self, wrapper: MetricBridge, labels: dict[str, str]) -> None:
        self._wrapper = wrapper
        self._labels = labels

    def inc(self, amount: float = 1.0) -> None:
        self._wrapper.inc(self._labels, amount)

    def observe(self, value: float) -> None:
        self._wrapper.observe(self._labels, value)

    def set(self, value: float) -> None:
        self._wrapper.set(self._labels, value)


class MetricBridge:
    """Record into a Prometheus metric and its OpenTelemetry twin at once."""

    def __init__(
        self,
        prom_metric: Counter | Histogram | Gauge,
        *,
        otel_kind: str,
    ) -> None:
        self._prom_metric = prom_metric
        self._otel_name = prom_metric._name
        self._otel_description = prom_metric._documentation
        self._otel_kind = otel_kind
        self._otel_instrument = None
        self._last_values: dict[tuple[tuple[str, str], ...], float] = {}

    def labels(self, **labels: str) -> _BoundMetric:
        return _BoundMetric(self, labels)

    def _instrument(self):
        if self._otel_instrument is not None:
            return self._otel_instrument
        meter = _get_meter()
        if self._otel_kind == "counter":
            self._otel_instrument = meter.create_counter(self._otel_name, description=self._otel_description)
        elif self._otel_kind == "histogram":
            self._otel_instrument = meter.create_histogram(self._otel_name, description=self._otel_description)
        elif self._otel_kind == "gauge":
            self._otel_instrument = meter.create_up_down_counter(self._otel_name, description=self._otel_description)
        else:
            raise ValueError(f"Unknown metric kind: {self._otel_kind}")
        return self._otel_instrument

    def inc(self, labels: dict[str, str], amount: float) -> None:
        self._prom_metric.labels(**labels).inc(amount)
        self._instrument().add(amount, labels)

    def observe(self, labels: dict[str, str], value: float) -> None:
        self._prom_metric.labels(**labels).observe(value)
        self._instrument().record(value, labels)

    def set(self, labels: dict[str, str], value: float) -> None:
        self._prom_metric.labels(**labels).set(value)
        key = tuple(sorted(labels.items()))
        delta = value - self._last_values.get(key, 0.0)
        if delta:
            self._instrument().add(delta, labels)
        self._last_values[key] = value


QUERY_COUNT = MetricBridge(
    Counter(
        "firescan_queries_total",
        "Queries executed, by collection, strategy and outcome",
        ["collection", "strategy", "status"],
    ),
    otel_kind="counter",
)

QUERY_LATENCY = MetricBridge(
    Histogram(
        "firescan_query_latency_seconds",
        "End-to-end query execution latency",
        ["collection"],
        buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
    ),
    otel_kind="histogram",
)

DOCUMENTS_MATERIALIZED = MetricBridge(
    Counter(
        "firescan_documents_materialized_total",
        "Documents pulled into memory for residual evaluation",
        ["collection", "strategy"],
    ),
    otel_kind="counter",
)

FULLTEXT_OPERATIONS = MetricBridge(
    Counter(
        "firescan_fulltext_operations_total",
        "Full-text index lifecycle operations",
        ["operation", "status"],
    ),
    otel_kind="counter",
)

FULLTEXT_LATENCY = MetricBridge(
    Histogram(
        "firescan_fulltext_latency_seconds",
        "Full-text build/update/search latency",
        ["operation"],
        buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 30.0),
    ),
    otel_kind="histogram",
)

INDEX_DOC_COUNT = MetricBridge(
    Gauge(
        "firescan_fulltext_documents",
        "Documents in the most recently built or updated full-text index",
        ["collection"],
    ),
    otel_kind="gauge",
)

OTLP_EXPORT_ERRORS = MetricBridge(
    Counter(
        "firescan_otlp_export_errors_total",
        "Total OTLP export configuration errors",
        ["protocol"],
    ),
    otel_kind="counter",
)

OTLP_EXPORT_STATUS = MetricBridge(
    Gauge(
        "firescan_otlp_exporter_enabled",
        "OTLP exporter enabled status (1=enabled, 0=disabled)",
        ["protocol"],
    ),
    otel_kind="gauge",
)


@contextmanager
def track_latency(histogram: MetricBridge, **labels: str) -> Generator[None, None, None]:
    """Context manager to track operation latency."""
    start = time.perf_counter()
    try:
        yield
    finally:
        histogram.labels(**labels).observe(time.perf_counter() - start)


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest()


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
