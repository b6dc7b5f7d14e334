"""Domain models for the external full-text index lifecycle."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class TokenizeMode(str, Enum):
    """How indexed terms are matched against query terms."""

    STRICT = "strict"  # whole term
    FORWARD = "forward"  # term prefix
    REVERSE = "reverse"  # term prefix or suffix
    FULL = "full"  # any substring


class FullTextConfig(BaseModel):
    """Which document fields feed the token index, and how they are tokenized."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    fields: tuple[str, ...] = Field(min_length=1)
    tokenize_mode: TokenizeMode = TokenizeMode.STRICT
    analyzer: str = "simple"


class FullTextIndexSnapshot(BaseModel):
    """Persisted, self-describing serialization of one collection's token index.

    A snapshot reflects one point-in-time collection scan plus any pending
    updates folded in since. It is never mutated in place; ``update`` produces
    a replacement.
    """

    model_config = ConfigDict(frozen=True)

    collection: str = Field(min_length=1)
    config: FullTextConfig
    exported_state: dict[str, Any]
    build_timestamp: datetime
    updated_at: datetime | None = None

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class PendingUpdate(BaseModel):
    """One queued record mutation awaiting reconciliation.

    ``record_data`` of ``None`` is a tombstone. Stored in the update log with
    camelCase keys (``recordId``, ``recordCollection``, ``recordData``).
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    record_id: str = Field(min_length=1)
    record_collection: str = Field(min_length=1)
    record_data: dict[str, Any] | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_tombstone(self) -> bool:
        return self.record_data is None

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)
