"""Abstract query value owned by firescan.

Store-native query builders are converted into these value objects by an
external adapter; everything downstream (analysis, splitting, residual
evaluation) works on this representation only.

Following the value-object pattern:
- Values are immutable (frozen=True)
- Every "mutation" helper returns a new Query
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


QUERY_VERSION = 1


class FilterOperator(str, Enum):
    """Filter operator vocabulary understood by the document store."""

    EQUAL = "=="
    LESS_THAN = "<"
    LESS_THAN_OR_EQUAL = "<="
    GREATER_THAN = ">"
    GREATER_THAN_OR_EQUAL = ">="
    NOT_EQUAL = "!="
    IN = "in"
    NOT_IN = "not-in"
    ARRAY_CONTAINS = "array-contains"
    ARRAY_CONTAINS_ANY = "array-contains-any"

    @property
    def is_equality(self) -> bool:
        return self in EQUALITY_OPERATORS

    @property
    def is_inequality(self) -> bool:
        return self in INEQUALITY_OPERATORS

    @property
    def expects_list(self) -> bool:
        return self in LIST_VALUE_OPERATORS


EQUALITY_OPERATORS = frozenset(
    {
        FilterOperator.EQUAL,
        FilterOperator.ARRAY_CONTAINS,
        FilterOperator.IN,
        FilterOperator.ARRAY_CONTAINS_ANY,
    }
)

INEQUALITY_OPERATORS = frozenset(
    {
        FilterOperator.LESS_THAN,
        FilterOperator.LESS_THAN_OR_EQUAL,
        FilterOperator.GREATER_THAN,
        FilterOperator.GREATER_THAN_OR_EQUAL,
        FilterOperator.NOT_EQUAL,
        FilterOperator.NOT_IN,
    }
)

LIST_VALUE_OPERATORS = frozenset(
    {
        FilterOperator.IN,
        FilterOperator.NOT_IN,
        FilterOperator.ARRAY_CONTAINS_ANY,
    }
)


class Direction(str, Enum):
    """Sort / index direction."""

    ASCENDING = "ascending"
    DESCENDING = "descending"

    @classmethod
    def parse(cls, value: object) -> Direction:
        """Accept ``asc``/``desc`` shorthands and the store's upper-case names."""

        if isinstance(value, Direction):
            return value
        normalized = str(value).strip().lower()
        if normalized in ("asc", "ascending"):
            return cls.ASCENDING
        if normalized in ("desc", "descending"):
            return cls.DESCENDING
        msg = f"Unknown sort direction: {value!r}"
        raise ValueError(msg)


class Filter(BaseModel):
    """Single ``field_path <operator> value`` predicate."""

    model_config = ConfigDict(frozen=True)

    field_path: str = Field(min_length=1)
    operator: FilterOperator
    value: Any = None

    @field_validator("value", mode="before")
    @classmethod
    def _normalize_collection_value(cls, value: Any) -> Any:
        if isinstance(value, (tuple, set, frozenset)):
            return list(value)
        return value

    @model_validator(mode="after")
    def _require_list_for_membership(self) -> Filter:
        if self.operator.expects_list and not isinstance(self.value, list):
            msg = f"Operator '{self.operator.value}' on '{self.field_path}' requires a list value"
            raise ValueError(msg)
        return self

    def describe(self) -> str:
        return f"{self.field_path} {self.operator.value} {self.value!r}"


class SortOrder(BaseModel):
    """Requested ordering on one field."""

    model_config = ConfigDict(frozen=True)

    field_path: str = Field(min_length=1)
    direction: Direction = Direction.ASCENDING

    @field_validator("direction", mode="before")
    @classmethod
    def _parse_direction(cls, value: object) -> Direction:
        return Direction.parse(value)


class Query(BaseModel):
    """Immutable, versioned description of one collection query.

    ``filters`` is semantically an unordered set (conjunction); its tuple
    order is only used to keep index field derivation deterministic.
    ``sort_orders`` is ordered.
    """

    model_config = ConfigDict(frozen=True)

    version: Literal[1] = QUERY_VERSION
    collection_path: str = Field(min_length=1)
    filters: tuple[Filter, ...] = ()
    sort_orders: tuple[SortOrder, ...] = ()
    limit: int | None = Field(default=None, ge=0)
    offset: int | None = Field(default=None, ge=0)

    @property
    def collection_id(self) -> str:
        """Last segment of the collection path (the store's collection group)."""
        return self.collection_path.strip("/").split("/")[-1]

    def where(self, field_path: str, operator: FilterOperator | str, value: Any) -> Query:
        new_filter = Filter(field_path=field_path, operator=FilterOperator(operator), value=value)
        return self.model_copy(update={"filters": (*self.filters, new_filter)})

    def order_by(self, field_path: str, direction: Direction | str = Direction.ASCENDING) -> Query:
        order = SortOrder(field_path=field_path, direction=Direction.parse(direction))
        return self.model_copy(update={"sort_orders": (*self.sort_orders, order)})

    def with_limit(self, limit: int | None) -> Query:
        if limit is not None and limit < 0:
            raise ValueError("limit must be >= 0")
        return self.model_copy(update={"limit": limit})

    def with_offset(self, offset: int | None) -> Query:
        if offset is not None and offset < 0:
            raise ValueError("offset must be >= 0")
        return self.model_copy(update={"offset": offset})

    def unbounded(self) -> Query:
        """Same filters and ordering without offset/limit (used for counting)."""
        return self.model_copy(update={"limit": None, "offset": None})

    def describe(self) -> str:
        parts = [self.collection_path]
        parts.extend(f"where {f.describe()}" for f in self.filters)
        parts.extend(f"order by {o.field_path} {o.direction.value}" for o in self.sort_orders)
        if self.offset:
            parts.append(f"offset {self.offset}")
        if self.limit is not None:
            parts.append(f"limit {self.limit}")
        return " ".join(parts)


def collection_query(collection_path: str) -> Query:
    """Start an unfiltered query over ``collection_path``."""

    return Query(collection_path=collection_path)
