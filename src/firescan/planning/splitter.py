"""Partition a query into a store-executable part and an in-memory residual."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
import logging

from firescan.config import DEFAULT_CAPABILITIES, StoreCapabilities
from firescan.domain.indexes import IndexDefinition
from firescan.domain.query import Filter, Query, SortOrder
from firescan.exceptions import ConfigurationError
from firescan.planning.analyzer import analyze_query_indexes, has_multiple_inequality_filters
from firescan.planning.matcher import is_index_present


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResidualQuery:
    """Work left for the in-memory stage after the store query returns."""

    filters: tuple[Filter, ...] = ()
    sort_orders: tuple[SortOrder, ...] = ()
    offset: int | None = None
    limit: int | None = None

    @property
    def has_filters(self) -> bool:
        return bool(self.filters)


@dataclass(frozen=True)
class SplitQuery:
    """Result of splitting: ``db_query`` carries no ordering or pagination."""

    db_query: Query
    residual: ResidualQuery
    filters_covered: bool


def filters_covered(
    query: Query,
    available: Sequence[IndexDefinition],
    capabilities: StoreCapabilities = DEFAULT_CAPABILITIES,
) -> bool:
    """True when a deployed index lets the store evaluate every filter of ``query``."""

    if has_multiple_inequality_filters(query, capabilities):
        return False
    filter_only = query.model_copy(update={"sort_orders": (), "limit": None, "offset": None})
    try:
        required = analyze_query_indexes(filter_only)
    except ConfigurationError:
        return False
    return is_index_present(available, required)


def split_query(
    query: Query,
    available: Sequence[IndexDefinition],
    capabilities: StoreCapabilities = DEFAULT_CAPABILITIES,
) -> SplitQuery:
    """Split ``query`` for hybrid execution.

    Covered filters are all pushed; otherwise only equality-class filters are.
    Either way, set-membership filters beyond the store's per-query limit stay
    residual. Sort orders, offset and limit are always residual because
    partial server-side ordering without full index coverage cannot be trusted.
    """

    covered = filters_covered(query, available, capabilities)
    pushed: list[Filter] = []
    residual_filters: list[Filter] = []
    membership_pushed = 0

    for query_filter in query.filters:
        push = covered or query_filter.operator.is_equality
        if push and query_filter.operator in capabilities.membership_operators:
            if membership_pushed >= capabilities.max_membership_filters:
                push = False
            else:
                membership_pushed += 1
        if push:
            pushed.append(query_filter)
        else:
            residual_filters.append(query_filter)

    db_query = Query(collection_path=query.collection_path, filters=tuple(pushed))
    residual = ResidualQuery(
        filters=tuple(residual_filters),
        sort_orders=query.sort_orders,
        offset=query.offset,
        limit=query.limit,
    )
    logger.debug(
        "Split %s -> store: %d filters, residual: %d filters / %d sort orders (covered=%s)",
        query.describe(),
        len(pushed),
        len(residual_filters),
        len(query.sort_orders),
        covered,
    )
    return SplitQuery(db_query=db_query, residual=residual, filters_covered=covered)
