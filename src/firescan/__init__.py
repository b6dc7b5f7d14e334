"""firescan - index-aware query planning with hybrid execution and full-text search."""

from firescan.config import DEFAULT_CAPABILITIES, Settings, StoreCapabilities, get_settings
from firescan.domain import (
    Direction,
    ExecutionStrategy,
    Filter,
    FilterOperator,
    FullTextConfig,
    IndexDefinition,
    Query,
    QueryResult,
    SortOrder,
    StoredDocument,
    TokenizeMode,
    collection_query,
    load_index_definitions,
)
from firescan.exceptions import (
    ConfigurationError,
    FirescanError,
    NotFoundError,
    ResourceExceededError,
    UnsupportedOperatorError,
)
from firescan.service_layer import (
    FullTextIndex,
    FullTextIndexManager,
    QueryOptions,
    QueryPlanExecutor,
    build_index,
    load_index,
    record_mutation,
    run_query,
    update_index,
)


__version__ = "0.1.0"

__all__ = [
    "DEFAULT_CAPABILITIES",
    "ConfigurationError",
    "Direction",
    "ExecutionStrategy",
    "Filter",
    "FilterOperator",
    "FirescanError",
    "FullTextConfig",
    "FullTextIndex",
    "FullTextIndexManager",
    "IndexDefinition",
    "NotFoundError",
    "Query",
    "QueryOptions",
    "QueryPlanExecutor",
    "QueryResult",
    "ResourceExceededError",
    "Settings",
    "SortOrder",
    "StoreCapabilities",
    "StoredDocument",
    "TokenizeMode",
    "UnsupportedOperatorError",
    "build_index",
    "collection_query",
    "get_settings",
    "load_index",
    "load_index_definitions",
    "record_mutation",
    "run_query",
    "update_index",
]
