"""Keyword search engine backing full-text snapshots."""

from firescan.search.analyzers import available_analyzers, get_analyzer
from firescan.search.text_index import IndexStateError, KeywordIndex, SearchOptions


__all__ = [
    "IndexStateError",
    "KeywordIndex",
    "SearchOptions",
    "available_analyzers",
    "get_analyzer",
]
