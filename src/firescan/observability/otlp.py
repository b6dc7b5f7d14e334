"""OTLP exporter construction shared by traces, metrics and logs."""

from __future__ import annotations

from typing import Any, Literal

from firescan.config import ObservabilityCollectorConfig


Signal = Literal["traces", "metrics", "logs"]


def signal_endpoint(config: ObservabilityCollectorConfig, signal: Signal) -> str:
    """Collector endpoint for ``signal``.

    An HTTP endpoint configured for traces (``.../v1/traces``) is rewritten to
    the matching ``/v1/<signal>`` path; gRPC endpoints serve every signal.
    """
    endpoint = config.collector_endpoint
    if config.otlp_protocol == "http" and endpoint.endswith("/v1/traces"):
        return endpoint.removesuffix("/v1/traces") + f"/v1/{signal}"
    return endpoint


def build_exporter(
    config: ObservabilityCollectorConfig,
    signal: Signal,
    *,
    grpc_cls: type,
    http_cls: type,
) -> Any:
    kwargs: dict[str, Any] = {
        "endpoint": signal_endpoint(config, signal),
        "headers": config.headers,
        "timeout": config.timeout_seconds,
    }
    if config.otlp_protocol == "grpc":
        return grpc_cls(insecure=config.grpc_insecure, **kwargs)
    return http_cls(**kwargs)
