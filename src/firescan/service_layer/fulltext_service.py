"""Full-text index lifecycle: build, persist, load, reconcile pending updates, search.

A collection's index moves through ``absent -> building -> ready`` and
``ready -> updating -> ready``. The in-memory index is an explicit
``FullTextIndex`` handle owned by the caller; the manager itself keeps no
state beyond its collaborators.

Consistency window: ``build`` never reads the update log, so writes landing
while its scan is in progress may be missing from the snapshot until the
next mutation of the same record is reconciled by ``update``.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
import logging
from typing import Any
from urllib.parse import quote

import orjson

from firescan.adapters.blob_store import AbstractBlobStore, snapshot_blob_key
from firescan.adapters.document_store import AbstractDocumentStore
from firescan.config import Settings, get_settings
from firescan.domain.documents import StoredDocument
from firescan.domain.fulltext import FullTextConfig, FullTextIndexSnapshot, PendingUpdate
from firescan.domain.query import FilterOperator, collection_query
from firescan.exceptions import NotFoundError
from firescan.observability.context import bind_collection
from firescan.observability.metrics import FULLTEXT_LATENCY, FULLTEXT_OPERATIONS, INDEX_DOC_COUNT, track_latency
from firescan.observability.tracing import create_span
from firescan.search.text_index import KeywordIndex, SearchOptions
from firescan.service_layer.batch_fetcher import BatchFetcher, parallel_execution


logger = logging.getLogger(__name__)


def extract_field_values(data: Any, field_path: str) -> list[str]:
    """Resolve a dotted ``field_path`` to the text values it denotes.

    Arrays are transparent: an array of scalars yields every element and an
    array of maps resolves the rest of the path inside each element.
    Missing and null values yield nothing.
    """

    values: list[str] = []
    _collect(data, field_path.split("."), values)
    return values


def _collect(current: Any, segments: Sequence[str], out: list[str]) -> None:
    if current is None:
        return
    if isinstance(current, list):
        for item in current:
            _collect(item, segments, out)
        return
    if not segments:
        if not isinstance(current, dict):
            out.append(_render(current))
        return
    if isinstance(current, dict):
        _collect(current.get(segments[0]), segments[1:], out)


def _render(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def document_text(data: Mapping[str, Any], fields: Sequence[str]) -> str:
    """Concatenate every configured field's values into one indexable string."""

    return " ".join(value for field_path in fields for value in extract_field_values(data, field_path))


@dataclass
class FullTextIndex:
    """Ready, in-memory full-text index for one collection."""

    collection: str
    config: FullTextConfig
    engine: KeywordIndex
    build_timestamp: datetime
    updated_at: datetime | None = None

    def __len__(self) -> int:
        return len(self.engine)

    def contains(self, record_id: str) -> bool:
        return self.engine.contains(record_id)

    def search(self, keywords: str, *, limit: int | None = None, offset: int = 0, suggest: bool = False) -> list[str]:
        return self.engine.search(keywords, SearchOptions(limit=limit, offset=offset, suggest=suggest))

    def to_snapshot(self) -> FullTextIndexSnapshot:
        return FullTextIndexSnapshot(
            collection=self.collection,
            config=self.config,
            exported_state=self.engine.export(),
            build_timestamp=self.build_timestamp,
            updated_at=self.updated_at,
        )

    @classmethod
    def from_snapshot(cls, snapshot: FullTextIndexSnapshot) -> FullTextIndex:
        engine = KeywordIndex(tokenize=snapshot.config.tokenize_mode, analyzer=snapshot.config.analyzer)
        engine.import_state(snapshot.exported_state)
        return cls(
            collection=snapshot.collection,
            config=snapshot.config,
            engine=engine,
            build_timestamp=snapshot.build_timestamp,
            updated_at=snapshot.updated_at,
        )


def encode_snapshot(snapshot: FullTextIndexSnapshot) -> bytes:
    return orjson.dumps(snapshot.to_payload())


def decode_snapshot(payload: bytes) -> FullTextIndexSnapshot:
    return FullTextIndexSnapshot.model_validate(orjson.loads(payload))


def search_index(
    index: FullTextIndex,
    keywords: str,
    *,
    limit: int | None = None,
    offset: int = 0,
    suggest: bool = False,
) -> list[str]:
    """Ordered ids of indexed records matching ``keywords``."""

    with track_latency(FULLTEXT_LATENCY, operation="search"):
        hits = index.search(keywords, limit=limit, offset=offset, suggest=suggest)
    FULLTEXT_OPERATIONS.labels(operation="search", status="success").inc()
    logger.debug("Keyword search %r on %s returned %d ids", keywords, index.collection, len(hits))
    return hits


@contextmanager
def _instrumented(operation: str, collection: str) -> Iterator[None]:
    bind_collection(collection)
    with (
        create_span(f"fulltext.{operation}", attributes={"fulltext.collection": collection}),
        track_latency(FULLTEXT_LATENCY, operation=operation),
    ):
        try:
            yield
        except Exception:
            FULLTEXT_OPERATIONS.labels(operation=operation, status="error").inc()
            raise
    FULLTEXT_OPERATIONS.labels(operation=operation, status="success").inc()


class FullTextIndexManager:
    """Builds, persists and reconciles full-text snapshots."""

    def __init__(
        self,
        store: AbstractDocumentStore,
        blob_store: AbstractBlobStore,
        *,
        settings: Settings | None = None,
    ):
        self.settings = settings or get_settings()
        self.store = store
        self.blob_store = blob_store
        self.fetcher = BatchFetcher(
            store,
            max_results=self.settings.max_server_side_results,
            batch_size=self.settings.batch_size,
        )

    def blob_key(self, collection: str) -> str:
        return snapshot_blob_key(collection, self.settings.index_blob_prefix)

    @staticmethod
    def update_log_id(collection: str, record_id: str) -> str:
        """Update-log document id for ``(collection, record_id)``.

        ``_`` is escaped in the collection part so the first ``_`` always
        separates the two halves.
        """
        escaped = quote(collection.strip("/"), safe="").replace("_", "%5F")
        return f"{escaped}_{record_id}"

    async def build(self, collection: str, config: FullTextConfig) -> FullTextIndex:
        """Scan ``collection`` into a fresh index and persist its snapshot."""

        with _instrumented("build", collection):
            build_timestamp = datetime.now(timezone.utc)
            engine = KeywordIndex(tokenize=config.tokenize_mode, analyzer=config.analyzer)
            async for page in self.fetcher.scan(collection_query(collection)):
                for document in page:
                    engine.update(document.id, document_text(document.data, config.fields))
            index = FullTextIndex(
                collection=collection,
                config=config,
                engine=engine,
                build_timestamp=build_timestamp,
            )
            await self._persist(index)
        logger.info("Built full-text index for %s with %d documents", collection, len(index))
        return index

    async def load(self, collection: str) -> FullTextIndex:
        """Load the persisted snapshot for ``collection``.

        Raises:
            NotFoundError: no snapshot has been built yet
        """

        with _instrumented("load", collection):
            payload = await self.blob_store.download(self.blob_key(collection))
            if payload is None:
                msg = f"No full-text index snapshot for collection '{collection}'"
                raise NotFoundError(msg)
            index = FullTextIndex.from_snapshot(decode_snapshot(payload))
        logger.debug("Loaded full-text index for %s (%d documents)", collection, len(index))
        return index

    async def load_or_build(self, collection: str, config: FullTextConfig) -> FullTextIndex:
        """Load the snapshot, building it when absent or built with a different config."""

        try:
            index = await self.load(collection)
        except NotFoundError:
            logger.info("No full-text snapshot for %s; building", collection)
            return await self.build(collection, config)
        if index.config != config:
            logger.info("Full-text config for %s changed; rebuilding", collection)
            return await self.build(collection, config)
        return index

    async def update(self, collection: str) -> FullTextIndex:
        """Fold pending updates into the persisted snapshot, then consume them.

        Callers must serialize ``update`` per collection; concurrent runs can
        lose one another's snapshot write.
        """

        with _instrumented("update", collection):
            index = await self.load(collection)
            pending = await self.pending_updates(collection)
            if not pending:
                logger.debug("No pending full-text updates for %s", collection)
                return index

            for _, entry in pending:
                if entry.is_tombstone:
                    index.engine.remove(entry.record_id)
                else:
                    index.engine.update(entry.record_id, document_text(entry.record_data or {}, index.config.fields))
            index.updated_at = datetime.now(timezone.utc)
            await self._persist(index)
            deleted = await self._consume(pending)
        logger.info(
            "Applied %d pending updates to %s (%d consumed, %d documents indexed)",
            len(pending),
            collection,
            deleted,
            len(index),
        )
        return index

    async def record_mutation(
        self,
        collection: str,
        record_id: str,
        record_data: Mapping[str, Any] | None,
    ) -> PendingUpdate:
        """Queue one record mutation; ``None`` data marks a deletion. Last write wins."""

        entry = PendingUpdate(
            record_id=record_id,
            record_collection=collection,
            record_data=dict(record_data) if record_data is not None else None,
        )
        await self.store.set(
            self.settings.updates_collection, self.update_log_id(collection, record_id), entry.to_record()
        )
        return entry

    async def pending_updates(self, collection: str) -> list[tuple[str, PendingUpdate]]:
        """Update-log entries for ``collection`` as ``(log id, entry)``, oldest first."""

        query = collection_query(self.settings.updates_collection).where(
            "recordCollection", FilterOperator.EQUAL, collection
        )
        entries: list[tuple[str, PendingUpdate]] = []
        async for page in self.fetcher.scan(query):
            entries.extend((document.id, PendingUpdate.model_validate(document.data)) for document in page)
        entries.sort(key=lambda item: item[1].timestamp)
        return entries

    def search(
        self,
        index: FullTextIndex,
        keywords: str,
        *,
        limit: int | None = None,
        offset: int = 0,
        suggest: bool = False,
    ) -> list[str]:
        return search_index(index, keywords, limit=limit, offset=offset, suggest=suggest)

    async def _persist(self, index: FullTextIndex) -> None:
        await self.blob_store.save(self.blob_key(index.collection), encode_snapshot(index.to_snapshot()))
        INDEX_DOC_COUNT.labels(collection=index.collection).set(len(index))

    async def _consume(self, pending: Sequence[tuple[str, PendingUpdate]]) -> int:
        """Delete consumed log entries whose timestamp is unchanged. Best effort."""

        async def consume_one(item: tuple[str, PendingUpdate]) -> bool:
            log_id, entry = item
            try:
                current = await self.store.get(self.settings.updates_collection, log_id)
                if current is None or not _same_entry(current, entry):
                    return False
                return await self.store.delete(self.settings.updates_collection, log_id)
            except Exception as exc:
                logger.warning("Failed to delete consumed update %s; retrying next cycle: %s", log_id, exc)
                return False

        results = await parallel_execution(list(pending), self.settings.deletion_concurrency, consume_one)
        return sum(results)


def _same_entry(document: StoredDocument, entry: PendingUpdate) -> bool:
    stored = PendingUpdate.model_validate(document.data)
    return stored.timestamp == entry.timestamp
