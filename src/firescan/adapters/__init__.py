"""Adapters layer - store collaborators behind abstract interfaces."""

from .blob_store import (
    AbstractBlobStore,
    FileSystemBlobStore,
    InMemoryBlobStore,
    snapshot_blob_key,
)
from .document_store import AbstractDocumentStore, InMemoryDocumentStore


__all__ = [
    "AbstractBlobStore",
    "AbstractDocumentStore",
    "FileSystemBlobStore",
    "InMemoryBlobStore",
    "InMemoryDocumentStore",
    "snapshot_blob_key",
]
