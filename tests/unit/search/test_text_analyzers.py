"""Unit tests for analyzer pipelines and BM25 helpers."""

from __future__ import annotations

import pytest

from firescan.search.analyzers import (
    AnalyzerPipeline,
    KeywordAnalyzer,
    LowercaseFilter,
    RegexTokenizer,
    StopFilter,
    available_analyzers,
    get_analyzer,
)
from firescan.search.stats import bm25, calculate_idf


@pytest.mark.unit
class TestAnalyzers:
    def test_simple_lowercases_and_folds_accents(self):
        tokens = get_analyzer("simple")("Crème Brûlée, NYC")
        assert [t.text for t in tokens] == ["creme", "brulee", "nyc"]

    def test_english_drops_stopwords_and_stems(self):
        tokens = get_analyzer("english")("The engineers are running")
        assert [t.text for t in tokens] == ["engineer", "runn"]

    def test_positions_renumbered_after_filtering(self):
        pipeline = AnalyzerPipeline(RegexTokenizer(), [LowercaseFilter(), StopFilter()])
        tokens = pipeline("the quick fox")
        assert [(t.text, t.position) for t in tokens] == [("quick", 0), ("fox", 1)]

    def test_keyword_analyzer_single_token(self):
        assert [t.text for t in KeywordAnalyzer()("  New York  ")] == ["new york"]
        assert KeywordAnalyzer()("   ") == []

    def test_registry(self):
        assert {"simple", "english", "english-nostem", "keyword"} <= set(available_analyzers())
        assert get_analyzer(None) is not None
        with pytest.raises(ValueError, match="Unknown analyzer"):
            get_analyzer("klingon")


@pytest.mark.unit
class TestStats:
    def test_rarer_terms_score_higher(self):
        assert calculate_idf(doc_freq=1, total_docs=10) > calculate_idf(doc_freq=5, total_docs=10) > 0

    def test_idf_of_empty_corpus(self):
        assert calculate_idf(doc_freq=0, total_docs=0) == 0.0

    def test_bm25_respects_term_frequency_and_length(self):
        assert bm25(tf=3, doc_length=10, avg_doc_length=10) > bm25(tf=1, doc_length=10, avg_doc_length=10)
        assert bm25(tf=1, doc_length=5, avg_doc_length=10) > bm25(tf=1, doc_length=20, avg_doc_length=10)
        assert bm25(tf=0, doc_length=5, avg_doc_length=10) == 0.0
