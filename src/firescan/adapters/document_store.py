"""Document store collaborator: abstract interface plus an in-memory implementation."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
import copy
import logging
from typing import Any

from firescan.domain.documents import StoredDocument
from firescan.domain.query import Query
from firescan.planning.residual import apply_filters, paginate, sort_documents


logger = logging.getLogger(__name__)


class AbstractDocumentStore(ABC):
    """Queryable store of documents grouped by collection path."""

    @abstractmethod
    async def run_query(self, query: Query, start_after: StoredDocument | None = None) -> list[StoredDocument]:
        """Execute ``query`` and return matching documents.

        Results are ordered by the query's sort orders, then document id.
        ``start_after`` resumes immediately after that document in that order;
        offset and limit apply after the cursor.
        """
        raise NotImplementedError

    @abstractmethod
    async def count(self, query: Query) -> int:
        """Authoritative number of documents matching ``query`` (ignoring offset/limit)."""
        raise NotImplementedError

    @abstractmethod
    async def get(self, collection: str, document_id: str) -> StoredDocument | None:
        """Point lookup; ``None`` when the document does not exist."""
        raise NotImplementedError

    @abstractmethod
    async def set(self, collection: str, document_id: str, data: Mapping[str, Any]) -> None:
        """Create or overwrite one document."""
        raise NotImplementedError

    @abstractmethod
    async def delete(self, collection: str, document_id: str) -> bool:
        """Delete one document.

        Returns:
            True if the document was deleted, False if not found
        """
        raise NotImplementedError


class InMemoryDocumentStore(AbstractDocumentStore):
    """Dictionary-backed store for tests and local tooling.

    Filtering and ordering reuse the residual evaluator, so in-memory results
    follow the same operator semantics as the hybrid execution path. Every
    call is recorded in ``calls`` as ``(operation, detail)`` so tests can
    assert which retrieval strategy ran.
    """

    def __init__(self, collections: Mapping[str, Mapping[str, Mapping[str, Any]]] | None = None):
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self.calls: list[tuple[str, str]] = []
        for collection, documents in (collections or {}).items():
            for document_id, data in documents.items():
                self._collections.setdefault(_normalize(collection), {})[document_id] = copy.deepcopy(dict(data))

    def documents(self, collection: str) -> dict[str, dict[str, Any]]:
        """Raw view of one collection (copied)."""
        return copy.deepcopy(self._collections.get(_normalize(collection), {}))

    def reset_calls(self) -> None:
        self.calls.clear()

    async def run_query(self, query: Query, start_after: StoredDocument | None = None) -> list[StoredDocument]:
        self.calls.append(("run_query", query.describe()))
        ordered = self._ordered_matches(query)
        if start_after is not None:
            ordered = _after_cursor(ordered, start_after, query)
        return paginate(ordered, query.offset, query.limit)

    async def count(self, query: Query) -> int:
        self.calls.append(("count", query.describe()))
        return len(self._ordered_matches(query.unbounded()))

    async def get(self, collection: str, document_id: str) -> StoredDocument | None:
        self.calls.append(("get", f"{collection}/{document_id}"))
        data = self._collections.get(_normalize(collection), {}).get(document_id)
        if data is None:
            return None
        return StoredDocument(id=document_id, data=copy.deepcopy(data))

    async def set(self, collection: str, document_id: str, data: Mapping[str, Any]) -> None:
        self.calls.append(("set", f"{collection}/{document_id}"))
        self._collections.setdefault(_normalize(collection), {})[document_id] = copy.deepcopy(dict(data))

    async def delete(self, collection: str, document_id: str) -> bool:
        self.calls.append(("delete", f"{collection}/{document_id}"))
        documents = self._collections.get(_normalize(collection))
        if documents is None or document_id not in documents:
            return False
        del documents[document_id]
        return True

    def _ordered_matches(self, query: Query) -> list[StoredDocument]:
        documents = self._collections.get(_normalize(query.collection_path), {})
        snapshot = [
            StoredDocument(id=document_id, data=copy.deepcopy(data)) for document_id, data in sorted(documents.items())
        ]
        return sort_documents(apply_filters(snapshot, query.filters), query.sort_orders)


def _normalize(collection: str) -> str:
    return collection.strip("/")


def _after_cursor(ordered: list[StoredDocument], cursor: StoredDocument, query: Query) -> list[StoredDocument]:
    for position, document in enumerate(ordered):
        if document.id == cursor.id:
            return ordered[position + 1 :]
    # Cursor document no longer matches: place it by its field values
    placed = sort_documents(sorted([*ordered, cursor], key=lambda doc: doc.id), query.sort_orders)
    position = next(i for i, document in enumerate(placed) if document is cursor)
    return placed[position + 1 :]
