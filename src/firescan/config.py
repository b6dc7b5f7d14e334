"""Centralized configuration for firescan using Pydantic Settings."""

from functools import lru_cache
from typing import Annotated, Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from firescan.domain.query import FilterOperator


class StoreCapabilities(BaseModel):
    """Query capability facts of the backing document store.

    These limits are store-specific, so they are supplied as data rather than
    hard-coded into the planner.
    """

    model_config = {"extra": "forbid", "frozen": True}

    max_inequality_fields: Annotated[
        int,
        Field(
            ge=1,
            description="Distinct fields that may carry inequality-class filters in one store query",
        ),
    ] = 1

    max_membership_filters: Annotated[
        int,
        Field(
            ge=0,
            description="Set-membership filters ('in', 'array-contains-any') that may be pushed per store query",
        ),
    ] = 1

    membership_operators: Annotated[
        frozenset[FilterOperator],
        Field(description="Operators counted against max_membership_filters"),
    ] = frozenset({FilterOperator.IN, FilterOperator.ARRAY_CONTAINS_ANY})

    multi_inequality_operators: Annotated[
        frozenset[FilterOperator],
        Field(
            description=(
                "Operators counted when deciding whether the store can execute a query server-side at all"
            ),
        ),
    ] = frozenset(
        {
            FilterOperator.LESS_THAN,
            FilterOperator.LESS_THAN_OR_EQUAL,
            FilterOperator.GREATER_THAN,
            FilterOperator.GREATER_THAN_OR_EQUAL,
            FilterOperator.NOT_EQUAL,
            FilterOperator.NOT_IN,
            FilterOperator.IN,
            FilterOperator.ARRAY_CONTAINS_ANY,
        }
    )


DEFAULT_CAPABILITIES = StoreCapabilities()


class ObservabilityCollectorConfig(BaseModel):
    """Configuration for OTLP trace/log export."""

    model_config = {"extra": "forbid"}

    enabled: Annotated[bool, Field(description="Enable OTLP export to an external collector")] = False

    otlp_protocol: Annotated[Literal["http", "grpc"], Field(description="OTLP transport protocol")] = "grpc"

    collector_endpoint: Annotated[
        str,
        Field(
            description="OTLP collector endpoint (HTTP uses /v1/traces)",
            examples=["http://localhost:4317", "http://localhost:4318/v1/traces"],
        ),
    ] = "http://localhost:4317"

    headers: Annotated[dict[str, str], Field(description="Optional headers to include with OTLP requests")] = Field(
        default_factory=dict
    )

    timeout_seconds: Annotated[int, Field(ge=1, le=60, description="OTLP exporter timeout in seconds")] = 10

    grpc_insecure: Annotated[bool, Field(description="Allow insecure gRPC (plaintext) connections")] = True

    resource_attributes: Annotated[
        dict[str, str],
        Field(description="Additional OpenTelemetry resource attributes"),
    ] = Field(default_factory=dict)


class Settings(BaseSettings):
    """Typed configuration loaded from ``FIRESCAN_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="FIRESCAN_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
        env_nested_delimiter="__",
    )

    # Execution limits
    max_server_side_results: int = Field(
        default=10_000,
        ge=1,
        description="Ceiling on documents materialized in memory; counts at or above it fail loudly",
    )
    batch_size: int = Field(default=500, ge=1, description="Page size for scans and per-id lookup batches")
    deletion_concurrency: int = Field(
        default=50, ge=1, description="Concurrent update-log deletions after a full-text update"
    )

    # Full-text persistence namespaces
    updates_collection: str = Field(
        default="firescan__full_text_updates",
        min_length=1,
        description="Reserved collection holding pending full-text updates",
    )
    index_blob_prefix: str = Field(
        default="firescan__full_text_indexes",
        min_length=1,
        description="Blob key prefix for persisted full-text snapshots",
    )

    # Logging
    log_level: str = Field(default="info", description="Logging level")
    log_json: bool = Field(default=True, description="Emit structured JSON logs")

    service_name: str = Field(default="firescan", description="Service name reported to telemetry backends")
    observability: ObservabilityCollectorConfig = Field(
        default_factory=ObservabilityCollectorConfig,
        description="OTLP export settings (e.g. FIRESCAN_OBSERVABILITY__ENABLED=true)",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return process-wide settings (cached after first load)."""

    return Settings()
