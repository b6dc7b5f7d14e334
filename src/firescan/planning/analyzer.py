"""Derive the composite index a query needs from its structured form.

The store can serve a query with one composite index at most, so analysis
yields zero or one definition. Field order follows the store's rules:

1. Equality-class filter fields, in filter order (ascending)
2. The single inequality-class field, if any (ascending)
3. Remaining sort fields, in their requested direction
"""

from __future__ import annotations

import logging

from firescan.config import DEFAULT_CAPABILITIES, StoreCapabilities
from firescan.domain.indexes import IndexDefinition, IndexField
from firescan.domain.query import Direction, Query
from firescan.exceptions import ConfigurationError


logger = logging.getLogger(__name__)


def inequality_fields(query: Query) -> list[str]:
    """Distinct field paths carrying inequality-class filters, in filter order."""

    fields: list[str] = []
    for query_filter in query.filters:
        if query_filter.operator.is_inequality and query_filter.field_path not in fields:
            fields.append(query_filter.field_path)
    return fields


def analyze_query_indexes(query: Query) -> IndexDefinition | None:
    """Return the composite index ``query`` requires, or None when single-field indexes suffice.

    Raises:
        ConfigurationError: inequality filters span more than one field.
    """

    if len(query.filters) <= 1 and not query.sort_orders:
        return None

    inequality = inequality_fields(query)
    if len(inequality) > 1:
        msg = f"Cannot have inequality filters on different fields: {inequality[0]} and {inequality[1]}"
        raise ConfigurationError(msg)

    index_fields: list[IndexField] = []
    seen: set[str] = set()

    def add(field_path: str, direction: Direction) -> None:
        if field_path in seen:
            return
        seen.add(field_path)
        index_fields.append(IndexField(field_path=field_path, direction=direction))

    for query_filter in query.filters:
        if query_filter.operator.is_equality:
            add(query_filter.field_path, Direction.ASCENDING)

    if inequality:
        add(inequality[0], Direction.ASCENDING)

    for order in query.sort_orders:
        add(order.field_path, order.direction)

    if len(index_fields) < 2:
        return None

    required = IndexDefinition(fields=tuple(index_fields), collection_group=query.collection_id)
    logger.debug("Query %s requires index %s", query.describe(), required.field_paths)
    return required


def has_multiple_inequality_filters(query: Query, capabilities: StoreCapabilities = DEFAULT_CAPABILITIES) -> bool:
    """True when the store cannot execute ``query`` server-side regardless of indexing.

    Counts distinct fields whose operators appear in the capability table's
    ``multi_inequality_operators`` (set-membership operators included).
    """

    fields = {f.field_path for f in query.filters if f.operator in capabilities.multi_inequality_operators}
    return len(fields) > capabilities.max_inequality_fields
