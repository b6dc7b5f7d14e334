"""Blob storage for persisted full-text snapshots."""

from __future__ import annotations

from abc import ABC, abstractmethod
import logging
from pathlib import Path
from urllib.parse import quote
from uuid import uuid4

import anyio
from anyio import to_thread


logger = logging.getLogger(__name__)

DEFAULT_INDEX_PREFIX = "firescan__full_text_indexes"


def snapshot_blob_key(collection: str, prefix: str = DEFAULT_INDEX_PREFIX) -> str:
    """Deterministic blob key for a collection's snapshot.

    The collection path is percent-encoded (``/`` included), so nested
    collection paths map to a single flat object name.
    """

    return f"{prefix}/{quote(collection.strip('/'), safe='')}.json"


class AbstractBlobStore(ABC):
    """Key -> bytes storage."""

    @abstractmethod
    async def save(self, key: str, payload: bytes) -> None:
        raise NotImplementedError

    @abstractmethod
    async def download(self, key: str) -> bytes | None:
        """Return stored bytes, or ``None`` when ``key`` does not exist."""
        raise NotImplementedError

    @abstractmethod
    async def delete(self, key: str) -> bool:
        raise NotImplementedError


class FileSystemBlobStore(AbstractBlobStore):
    """Blob store rooted at a local directory; writes are atomic renames."""

    def __init__(self, base_dir: Path):
        self.base_dir = base_dir.expanduser().resolve(strict=False)
        self.base_dir.mkdir(parents=True, exist_ok=True)

    async def save(self, key: str, payload: bytes) -> None:
        path = self._path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(f"{path.name}.{uuid4().hex}.tmp")
        async with await anyio.open_file(tmp_path, "wb") as fp:
            await fp.write(payload)
        await to_thread.run_sync(_safe_move, tmp_path, path)
        logger.debug("Saved blob %s (%d bytes)", key, len(payload))

    async def download(self, key: str) -> bytes | None:
        path = self._path_for(key)
        try:
            async with await anyio.open_file(path, "rb") as fp:
                return await fp.read()
        except FileNotFoundError:
            return None

    async def delete(self, key: str) -> bool:
        path = self._path_for(key)
        try:
            await to_thread.run_sync(path.unlink)
        except FileNotFoundError:
            return False
        return True

    def _path_for(self, key: str) -> Path:
        path = (self.base_dir / key).resolve(strict=False)
        if not path.is_relative_to(self.base_dir):
            msg = f"Blob key escapes the storage root: {key!r}"
            raise ValueError(msg)
        return path


class InMemoryBlobStore(AbstractBlobStore):
    """In-memory blob store for testing."""

    def __init__(self) -> None:
        self.blobs: dict[str, bytes] = {}

    async def save(self, key: str, payload: bytes) -> None:
        self.blobs[key] = bytes(payload)

    async def download(self, key: str) -> bytes | None:
        return self.blobs.get(key)

    async def delete(self, key: str) -> bool:
        return self.blobs.pop(key, None) is not None


def _safe_move(src: Path, dest: Path) -> None:
    src.replace(dest)
