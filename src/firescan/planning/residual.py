"""In-memory evaluation of the residual part of a query.

Filter semantics replicate the document store:

* a missing field never matches
* range operators only match values of the same type class
* ``!=`` and ``not-in`` also exclude null values
* ``array-contains``: filter value is an element of the field array
* ``in``: field value is an element of the filter set
* ``array-contains-any``: field array and filter set intersect

Ordering uses the store's cross-type ordering:
missing < null < booleans < numbers < timestamps < strings < bytes < other < arrays < maps
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from firescan.domain.documents import StoredDocument
from firescan.domain.query import Direction, Filter, FilterOperator, SortOrder
from firescan.exceptions import UnsupportedOperatorError


if TYPE_CHECKING:
    from firescan.planning.splitter import ResidualQuery


MISSING: Any = object()

_RANK_MISSING = 0
_RANK_NULL = 1
_RANK_BOOLEAN = 2
_RANK_NUMBER = 3
_RANK_TIMESTAMP = 4
_RANK_STRING = 5
_RANK_BYTES = 6
_RANK_OTHER = 7
_RANK_ARRAY = 8
_RANK_MAP = 9


def get_field_value(data: Any, field_path: str, default: Any = MISSING) -> Any:
    """Resolve a dotted ``field_path`` inside nested maps."""

    current = data
    for segment in field_path.split("."):
        if not isinstance(current, dict) or segment not in current:
            return default
        current = current[segment]
    return current


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def order_key(value: Any) -> tuple[Any, ...]:
    """Total-order key consistent with the store's value ordering."""

    if value is MISSING:
        return (_RANK_MISSING,)
    if value is None:
        return (_RANK_NULL, 0)
    if isinstance(value, bool):
        return (_RANK_BOOLEAN, value)
    if isinstance(value, (int, float)):
        return (_RANK_NUMBER, value)
    if isinstance(value, datetime):
        return (_RANK_TIMESTAMP, _as_utc(value))
    if isinstance(value, str):
        return (_RANK_STRING, value)
    if isinstance(value, (bytes, bytearray)):
        return (_RANK_BYTES, bytes(value))
    if isinstance(value, (list, tuple)):
        return (_RANK_ARRAY, tuple(order_key(item) for item in value))
    if isinstance(value, dict):
        return (_RANK_MAP, tuple(sorted((str(k), order_key(v)) for k, v in value.items())))
    return (_RANK_OTHER, str(value))


def _equals(left: Any, right: Any) -> bool:
    return order_key(left) == order_key(right)


def _same_type_compare(value: Any, target: Any, predicate: Callable[[tuple, tuple], bool]) -> bool:
    value_key = order_key(value)
    target_key = order_key(target)
    if value_key[0] != target_key[0] or value_key[0] == _RANK_NULL:
        return False
    return predicate(value_key, target_key)


def _eval_equal(value: Any, target: Any) -> bool:
    return _equals(value, target)


def _eval_not_equal(value: Any, target: Any) -> bool:
    return value is not None and not _equals(value, target)


def _eval_less_than(value: Any, target: Any) -> bool:
    return _same_type_compare(value, target, lambda a, b: a < b)


def _eval_less_than_or_equal(value: Any, target: Any) -> bool:
    return _same_type_compare(value, target, lambda a, b: a <= b)


def _eval_greater_than(value: Any, target: Any) -> bool:
    return _same_type_compare(value, target, lambda a, b: a > b)


def _eval_greater_than_or_equal(value: Any, target: Any) -> bool:
    return _same_type_compare(value, target, lambda a, b: a >= b)


def _eval_in(value: Any, target: Any) -> bool:
    return any(_equals(value, candidate) for candidate in target)


def _eval_not_in(value: Any, target: Any) -> bool:
    return value is not None and not _eval_in(value, target)


def _eval_array_contains(value: Any, target: Any) -> bool:
    return isinstance(value, list) and any(_equals(element, target) for element in value)


def _eval_array_contains_any(value: Any, target: Any) -> bool:
    if not isinstance(value, list):
        return False
    return any(_equals(element, candidate) for element in value for candidate in target)


_EVALUATORS: dict[FilterOperator, Callable[[Any, Any], bool]] = {
    FilterOperator.EQUAL: _eval_equal,
    FilterOperator.NOT_EQUAL: _eval_not_equal,
    FilterOperator.LESS_THAN: _eval_less_than,
    FilterOperator.LESS_THAN_OR_EQUAL: _eval_less_than_or_equal,
    FilterOperator.GREATER_THAN: _eval_greater_than,
    FilterOperator.GREATER_THAN_OR_EQUAL: _eval_greater_than_or_equal,
    FilterOperator.IN: _eval_in,
    FilterOperator.NOT_IN: _eval_not_in,
    FilterOperator.ARRAY_CONTAINS: _eval_array_contains,
    FilterOperator.ARRAY_CONTAINS_ANY: _eval_array_contains_any,
}


def matches_filter(data: dict[str, Any], query_filter: Filter) -> bool:
    """Evaluate one filter against raw document data."""

    evaluator = _EVALUATORS.get(query_filter.operator)
    if evaluator is None:
        raise UnsupportedOperatorError(query_filter.operator)
    value = get_field_value(data, query_filter.field_path)
    if value is MISSING:
        return False
    return evaluator(value, query_filter.value)


def matches_all(data: dict[str, Any], filters: Iterable[Filter]) -> bool:
    return all(matches_filter(data, query_filter) for query_filter in filters)


def apply_filters(documents: Iterable[StoredDocument], filters: Sequence[Filter]) -> list[StoredDocument]:
    if not filters:
        return list(documents)
    return [doc for doc in documents if matches_all(doc.data, filters)]


def sort_documents(documents: Iterable[StoredDocument], sort_orders: Sequence[SortOrder]) -> list[StoredDocument]:
    """Stable multi-key sort; earlier sort orders take precedence."""

    ordered = list(documents)
    # Successive stable sorts from the least significant key
    for order in reversed(sort_orders):
        ordered.sort(
            key=lambda doc, path=order.field_path: order_key(get_field_value(doc.data, path)),
            reverse=order.direction is Direction.DESCENDING,
        )
    return ordered


def paginate(documents: Sequence[StoredDocument], offset: int | None, limit: int | None) -> list[StoredDocument]:
    """Offset first, then limit."""

    start = offset or 0
    window = documents[start:]
    if limit is not None:
        window = window[:limit]
    return list(window)


def apply_residual(documents: Iterable[StoredDocument], residual: ResidualQuery) -> tuple[list[StoredDocument], int]:
    """Filter, sort and paginate ``documents``; also return the pre-pagination size."""

    matched = sort_documents(apply_filters(documents, residual.filters), residual.sort_orders)
    return paginate(matched, residual.offset, residual.limit), len(matched)
