"""Compare a required composite index against the deployed set."""

from __future__ import annotations

from collections.abc import Iterable

from firescan.domain.indexes import IndexDefinition


def _same_collection(available: IndexDefinition, required: IndexDefinition) -> bool:
    if available.collection_group is None or required.collection_group is None:
        return True
    return available.collection_group == required.collection_group


def is_index_present(available: Iterable[IndexDefinition], required: IndexDefinition | None) -> bool:
    """True when no index is required or an exact (field, direction) match is deployed.

    No partial credit: a deployed index with extra fields, fewer fields, a
    different order, or a different direction does not satisfy the requirement.
    """

    if required is None:
        return True
    signature = required.signature
    return any(
        candidate.signature == signature and _same_collection(candidate, required) for candidate in available
    )
