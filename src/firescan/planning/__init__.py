"""Pure query planning: index analysis, index matching, splitting, residual evaluation.

Nothing in this package performs I/O.
"""

from firescan.planning.analyzer import analyze_query_indexes, has_multiple_inequality_filters, inequality_fields
from firescan.planning.matcher import is_index_present
from firescan.planning.residual import (
    apply_filters,
    apply_residual,
    get_field_value,
    matches_filter,
    paginate,
    sort_documents,
)
from firescan.planning.splitter import ResidualQuery, SplitQuery, filters_covered, split_query


__all__ = [
    "ResidualQuery",
    "SplitQuery",
    "analyze_query_indexes",
    "apply_filters",
    "apply_residual",
    "filters_covered",
    "get_field_value",
    "has_multiple_inequality_filters",
    "inequality_fields",
    "is_index_present",
    "matches_filter",
    "paginate",
    "sort_documents",
    "split_query",
]
