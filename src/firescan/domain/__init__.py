"""Domain layer - immutable value objects with no infrastructure dependencies.

This layer contains:
- The abstract Query value (filters, sort orders, pagination)
- Composite index definitions
- Full-text configuration, snapshots, and pending updates
- Stored documents and result pages
"""

from firescan.domain.documents import ExecutionStrategy, QueryResult, StoredDocument
from firescan.domain.fulltext import FullTextConfig, FullTextIndexSnapshot, PendingUpdate, TokenizeMode
from firescan.domain.indexes import IndexDefinition, IndexField, QueryScope, load_index_definitions
from firescan.domain.query import (
    EQUALITY_OPERATORS,
    INEQUALITY_OPERATORS,
    QUERY_VERSION,
    Direction,
    Filter,
    FilterOperator,
    Query,
    SortOrder,
    collection_query,
)


__all__ = [
    "EQUALITY_OPERATORS",
    "INEQUALITY_OPERATORS",
    "QUERY_VERSION",
    "Direction",
    "ExecutionStrategy",
    "Filter",
    "FilterOperator",
    "FullTextConfig",
    "FullTextIndexSnapshot",
    "IndexDefinition",
    "IndexField",
    "PendingUpdate",
    "Query",
    "QueryResult",
    "QueryScope",
    "SortOrder",
    "StoredDocument",
    "TokenizeMode",
    "collection_query",
    "load_index_definitions",
]
