"""Composite index definitions.

Index definitions are read-only inputs describing what is deployed on the
store. They round-trip the store's index JSON shape::

    {
      "collectionGroup": "users",
      "queryScope": "COLLECTION",
      "fields": [
        {"fieldPath": "city", "order": "ASCENDING"},
        {"fieldPath": "age", "order": "ASCENDING"}
      ]
    }
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from firescan.domain.query import Direction


class QueryScope(str, Enum):
    COLLECTION = "COLLECTION"
    COLLECTION_GROUP = "COLLECTION_GROUP"


class IndexField(BaseModel):
    """One (field path, direction) pair inside a composite index."""

    model_config = ConfigDict(frozen=True)

    field_path: str = Field(min_length=1)
    direction: Direction = Direction.ASCENDING

    @field_validator("direction", mode="before")
    @classmethod
    def _parse_direction(cls, value: object) -> Direction:
        return Direction.parse(value)


class IndexDefinition(BaseModel):
    """Ordered composite index. Field order is significant.

    Single-field indexes are assumed to always exist on the store, so a
    definition is only meaningful with two or more fields.
    """

    model_config = ConfigDict(frozen=True)

    fields: tuple[IndexField, ...]
    collection_group: str | None = None
    query_scope: QueryScope = QueryScope.COLLECTION

    @model_validator(mode="after")
    def _reject_duplicate_fields(self) -> IndexDefinition:
        seen: set[str] = set()
        for index_field in self.fields:
            if index_field.field_path in seen:
                msg = f"Duplicate field '{index_field.field_path}' in index definition"
                raise ValueError(msg)
            seen.add(index_field.field_path)
        return self

    @property
    def signature(self) -> tuple[tuple[str, Direction], ...]:
        return tuple((f.field_path, f.direction) for f in self.fields)

    @property
    def field_paths(self) -> tuple[str, ...]:
        return tuple(f.field_path for f in self.fields)

    def describe(self) -> str:
        return ", ".join(f"{f.field_path} {f.direction.value}" for f in self.fields)

    @classmethod
    def of(cls, *fields: str | tuple[str, Direction | str], collection_group: str | None = None) -> IndexDefinition:
        """Shorthand: ``IndexDefinition.of("city", ("age", "desc"))``."""

        parsed: list[IndexField] = []
        for entry in fields:
            if isinstance(entry, str):
                parsed.append(IndexField(field_path=entry))
            else:
                path, direction = entry
                parsed.append(IndexField(field_path=path, direction=Direction.parse(direction)))
        return cls(fields=tuple(parsed), collection_group=collection_group)

    def to_store_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "queryScope": self.query_scope.value,
            "fields": [
                {"fieldPath": f.field_path, "order": f.direction.value.upper()} for f in self.fields
            ],
        }
        if self.collection_group:
            payload["collectionGroup"] = self.collection_group
        return payload

    @classmethod
    def from_store_dict(cls, data: Mapping[str, Any]) -> IndexDefinition:
        fields = tuple(
            IndexField(field_path=entry["fieldPath"], direction=entry.get("order", "ASCENDING"))
            for entry in data.get("fields") or []
        )
        return cls(
            fields=fields,
            collection_group=data.get("collectionGroup"),
            query_scope=QueryScope(data.get("queryScope", QueryScope.COLLECTION.value)),
        )


def load_index_definitions(payload: Mapping[str, Any] | Iterable[Mapping[str, Any]]) -> list[IndexDefinition]:
    """Parse an index deployment file payload (``{"indexes": [...]}``) or a bare list.

    Entries that only configure array membership (``arrayConfig``) carry no
    ``order`` and are not composite ordering indexes; they are skipped.
    """

    entries = payload.get("indexes", []) if isinstance(payload, Mapping) else payload
    definitions: list[IndexDefinition] = []
    for entry in entries:
        fields = entry.get("fields") or []
        if any("arrayConfig" in f for f in fields):
            continue
        definitions.append(IndexDefinition.from_store_dict(entry))
    return definitions
