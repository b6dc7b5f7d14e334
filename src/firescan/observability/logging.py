"""Structured JSON logging correlated with the active trace and collection."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
import sys
from typing import Any

from opentelemetry._logs import set_logger_provider
from opentelemetry.exporter.otlp.proto.grpc._log_exporter import OTLPLogExporter as GrpcOTLPLogExporter
from opentelemetry.exporter.otlp.proto.http._log_exporter import OTLPLogExporter as HttpOTLPLogExporter
from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
from opentelemetry.sdk.resources import Resource
import orjson

from firescan.config import ObservabilityCollectorConfig
from firescan.observability.context import get_trace_context
from firescan.observability.otlp import build_exporter


# Attributes every LogRecord carries; anything else came from ``extra=``
_STANDARD_RECORD_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}

_PLAIN_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _level(name: str) -> int:
    return getattr(logging, name.upper(), logging.INFO)


class JsonFormatter(logging.Formatter):
    """One JSON object per record: trace ids, bound collection, and ``extra`` fields."""

    REDACT_KEYS = frozenset({"password", "token", "api_key", "secret", "authorization", "credentials"})

    def format(self, record: logging.LogRecord) -> str:
        ctx = get_trace_context()
        entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "component": record.name.rpartition(".")[2],
            "message": record.getMessage(),
            "trace_id": ctx.get("trace_id", ""),
            "span_id": ctx.get("span_id", ""),
        }
        if collection := ctx.get("collection"):
            entry["collection"] = collection
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        entry.update(
            (key, "[REDACTED]" if key.lower() in self.REDACT_KEYS else value)
            for key, value in record.__dict__.items()
            if key not in _STANDARD_RECORD_ATTRS and not key.startswith("_")
        )
        return orjson.dumps(entry, default=self._json_default).decode("utf-8")

    @staticmethod
    def _json_default(value: Any) -> Any:
        # Index field sets and filter values are the common non-JSON extras
        if isinstance(value, (set, frozenset)):
            try:
                return sorted(value)
            except TypeError:
                return list(value)
        return str(value)


def configure_logging(
    level: str = "INFO",
    json_output: bool = True,
    *,
    logger_levels: dict[str, str] | None = None,
) -> None:
    """Replace the root handlers with one stdout handler.

    Args:
        level: Root log level name
        json_output: Use ``JsonFormatter`` instead of a plain text line
        logger_levels: Per-logger overrides, e.g. ``{"firescan.planning": "DEBUG"}``
    """
    root = logging.getLogger()
    root.setLevel(_level(level))
    for existing in root.handlers[:]:
        root.removeHandler(existing)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter() if json_output else logging.Formatter(_PLAIN_FORMAT))
    root.addHandler(handler)

    for logger_name, logger_level in (logger_levels or {}).items():
        logging.getLogger(logger_name).setLevel(_level(logger_level))


_logger_holder: dict[str, object] = {"provider": None, "handler_added": False}


def init_log_exporter(
    service_name: str = "firescan",
    resource_attributes: dict[str, str] | None = None,
) -> LoggerProvider:
    provider = LoggerProvider(resource=Resource.create({"service.name": service_name, **(resource_attributes or {})}))
    set_logger_provider(provider)
    _logger_holder["provider"] = provider
    return provider


def configure_log_exporter(
    config: ObservabilityCollectorConfig | None,
    provider: LoggerProvider | None = None,
) -> None:
    """Also ship root-logger records to the OTLP collector (installed once per process)."""
    if not config or not config.enabled or _logger_holder.get("handler_added"):
        return

    active_provider = provider or _logger_holder.get("provider")
    if not isinstance(active_provider, LoggerProvider):
        active_provider = init_log_exporter(resource_attributes=dict(config.resource_attributes))

    exporter = build_exporter(config, "logs", grpc_cls=GrpcOTLPLogExporter, http_cls=HttpOTLPLogExporter)
    active_provider.add_log_record_processor(BatchLogRecordProcessor(exporter))
    logging.getLogger().addHandler(LoggingHandler(level=logging.INFO, logger_provider=active_provider))
    _logger_holder["handler_added"] = True
