"""Shared test fixtures and configuration."""

from __future__ import annotations

import os

import pytest

from firescan.adapters import InMemoryBlobStore, InMemoryDocumentStore
from firescan.config import Settings, get_settings
from firescan.domain import FullTextConfig
from firescan.service_layer import FullTextIndexManager


# Sample users mirrored from the live scenarios (name, age, city)
USERS = {
    "john": {"name": "John", "age": 25, "city": "NYC"},
    "jane": {"name": "Jane", "age": 30, "city": "LA"},
    "mike": {"name": "Mike", "age": 21, "city": "NYC"},
    "sara": {"name": "Sara", "age": 40, "city": "Chicago"},
    "tom": {"name": "Tom", "age": 35, "city": "NYC"},
    "anna": {"name": "Anna", "age": 28, "city": "LA"},
    "bob": {"name": "Bob", "age": 22, "city": "Chicago"},
    "alice": {"name": "Alice", "age": 65, "city": "NYC"},
}


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Drop FIRESCAN_* variables and the cached settings before each test."""
    for key in list(os.environ):
        if key.upper().startswith("FIRESCAN_"):
            monkeypatch.delenv(key, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, batch_size=3, max_server_side_results=100, deletion_concurrency=2)


@pytest.fixture
def users_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore({"users": USERS})


@pytest.fixture
def blob_store() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def manager(users_store, blob_store, settings) -> FullTextIndexManager:
    return FullTextIndexManager(users_store, blob_store, settings=settings)


@pytest.fixture
def name_config() -> FullTextConfig:
    return FullTextConfig(fields=("name", "city"))
