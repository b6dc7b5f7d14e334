"""Documents returned by the store and result pages returned to callers."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class StoredDocument(BaseModel):
    """A document snapshot read from the store: identity plus field data."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    data: dict[str, Any] = Field(default_factory=dict)


class ExecutionStrategy(str, Enum):
    """Which branch of the execution planner produced a result."""

    NATIVE = "native"
    NATIVE_KEYWORD_SCAN = "native-keyword-scan"
    NATIVE_KEYWORD_IDS = "native-keyword-ids"
    HYBRID = "hybrid"
    HYBRID_KEYWORD_IDS = "hybrid-keyword-ids"


class QueryResult(BaseModel):
    """One result page plus the size of the matched set before pagination."""

    model_config = ConfigDict(frozen=True)

    results: list[StoredDocument]
    total_count: int = Field(ge=0)
    strategy: ExecutionStrategy

    @property
    def ids(self) -> list[str]:
        return [doc.id for doc in self.results]
