"""In-memory keyword index with BM25 ranking and portable export.

``KeywordIndex`` is the text index engine behind every full-text snapshot:

* ``add`` / ``update`` / ``remove`` / ``contains`` maintain postings per document
* ``search`` returns document ids ordered by score, ties broken by id, so the
  same index state and query always produce the same list
* ``export`` / ``import_state`` round-trip the full state through plain JSON
  types (per-document term frequencies); postings and length statistics are
  rebuilt on import
"""

from __future__ import annotations

from collections import Counter, defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
import logging
from typing import Any

from firescan.domain.fulltext import TokenizeMode
from firescan.search.analyzers import get_analyzer
from firescan.search.stats import bm25, calculate_idf


logger = logging.getLogger(__name__)

EXPORT_FORMAT_VERSION = 1

# Partial (prefix/suffix/substring) matches are discounted to prefer exact terms
_PARTIAL_MATCH_DISCOUNT = 0.8


class IndexStateError(ValueError):
    """Raised for invalid index operations or malformed exported state."""


@dataclass(frozen=True)
class SearchOptions:
    """Options accepted by ``KeywordIndex.search``.

    ``limit=None`` returns every hit. ``suggest`` relaxes the default
    all-terms-must-match rule and ranks partial matches after full ones.
    """

    limit: int | None = 100
    offset: int = 0
    suggest: bool = False


class KeywordIndex:
    """Inverted index over (document id -> text)."""

    def __init__(
        self,
        *,
        tokenize: TokenizeMode | str = TokenizeMode.STRICT,
        analyzer: str = "simple",
        k1: float = 1.2,
        b: float = 0.75,
    ) -> None:
        self.tokenize = TokenizeMode(tokenize)
        self.analyzer_name = analyzer
        self.k1 = k1
        self.b = b
        self._analyzer = get_analyzer(analyzer)
        self._postings: dict[str, dict[str, int]] = defaultdict(dict)
        self._doc_terms: dict[str, dict[str, int]] = {}
        self._doc_lengths: dict[str, int] = {}
        self._total_length = 0

    def __len__(self) -> int:
        return len(self._doc_terms)

    @property
    def doc_ids(self) -> list[str]:
        return list(self._doc_terms)

    def contains(self, doc_id: str) -> bool:
        return doc_id in self._doc_terms

    def add(self, doc_id: str, text: str) -> None:
        if doc_id in self._doc_terms:
            msg = f"Document '{doc_id}' is already indexed; use update()"
            raise IndexStateError(msg)
        self._insert(doc_id, self._term_frequencies(text))

    def update(self, doc_id: str, text: str) -> None:
        """Replace the indexed text of ``doc_id`` (adds it when absent)."""

        self.remove(doc_id)
        self._insert(doc_id, self._term_frequencies(text))

    def remove(self, doc_id: str) -> bool:
        terms = self._doc_terms.pop(doc_id, None)
        if terms is None:
            return False
        for term in terms:
            postings = self._postings.get(term)
            if postings is None:
                continue
            postings.pop(doc_id, None)
            if not postings:
                del self._postings[term]
        self._total_length -= self._doc_lengths.pop(doc_id, 0)
        return True

    def search(self, query: str, options: SearchOptions | None = None) -> list[str]:
        """Return ids of documents matching ``query``, best first."""

        opts = options or SearchOptions()
        terms = list(dict.fromkeys(token.text for token in self._analyzer(query)))
        if not terms or not self._doc_terms:
            return []

        total_docs = len(self._doc_terms)
        avg_length = self._total_length / total_docs
        scores: dict[str, float] = defaultdict(float)
        matched_terms: Counter[str] = Counter()

        for term in terms:
            best_per_doc: dict[str, float] = {}
            for indexed_term, weight in self._expand(term):
                postings = self._postings[indexed_term]
                idf = calculate_idf(len(postings), total_docs)
                for doc_id, tf in postings.items():
                    score = weight * idf * bm25(tf, self._doc_lengths[doc_id], avg_length, k1=self.k1, b=self.b)
                    if score > best_per_doc.get(doc_id, 0.0):
                        best_per_doc[doc_id] = score
            for doc_id, score in best_per_doc.items():
                scores[doc_id] += score
                matched_terms[doc_id] += 1

        if opts.suggest:
            candidates: Iterable[str] = scores
        else:
            candidates = (doc_id for doc_id in scores if matched_terms[doc_id] == len(terms))

        ranked = sorted(candidates, key=lambda doc_id: (-matched_terms[doc_id], -scores[doc_id], doc_id))
        start = max(opts.offset, 0)
        end = None if opts.limit is None else start + opts.limit
        return ranked[start:end]

    def export(self) -> dict[str, Any]:
        """Serialize to JSON-compatible primitives."""

        return {
            "version": EXPORT_FORMAT_VERSION,
            "tokenize": self.tokenize.value,
            "analyzer": self.analyzer_name,
            "documents": {doc_id: dict(terms) for doc_id, terms in self._doc_terms.items()},
        }

    def import_state(self, state: Mapping[str, Any]) -> None:
        """Replace this index's contents with a previously exported state."""

        version = state.get("version")
        if version != EXPORT_FORMAT_VERSION:
            msg = f"Unsupported keyword index export version: {version!r}"
            raise IndexStateError(msg)
        tokenize = TokenizeMode(state.get("tokenize", self.tokenize.value))
        analyzer = str(state.get("analyzer", self.analyzer_name))
        if tokenize is not self.tokenize or analyzer != self.analyzer_name:
            self.tokenize = tokenize
            self.analyzer_name = analyzer
            self._analyzer = get_analyzer(analyzer)

        self._postings = defaultdict(dict)
        self._doc_terms = {}
        self._doc_lengths = {}
        self._total_length = 0
        for doc_id, terms in (state.get("documents") or {}).items():
            self._insert(str(doc_id), {str(term): int(tf) for term, tf in terms.items()})
        logger.debug("Imported keyword index with %d documents", len(self._doc_terms))

    @classmethod
    def from_export(cls, state: Mapping[str, Any]) -> KeywordIndex:
        index = cls(
            tokenize=state.get("tokenize", TokenizeMode.STRICT.value),
            analyzer=state.get("analyzer", "simple"),
        )
        index.import_state(state)
        return index

    def _term_frequencies(self, text: str) -> dict[str, int]:
        return dict(Counter(token.text for token in self._analyzer(text)))

    def _insert(self, doc_id: str, terms: dict[str, int]) -> None:
        self._doc_terms[doc_id] = terms
        length = sum(terms.values())
        self._doc_lengths[doc_id] = length
        self._total_length += length
        for term, tf in terms.items():
            self._postings[term][doc_id] = tf

    def _expand(self, term: str) -> list[tuple[str, float]]:
        """Indexed terms matching ``term`` under the tokenize mode, with weights."""

        expansions: list[tuple[str, float]] = []
        if term in self._postings:
            expansions.append((term, 1.0))
        if self.tokenize is TokenizeMode.STRICT:
            return expansions

        for indexed_term in self._postings:
            if indexed_term == term:
                continue
            if self.tokenize is TokenizeMode.FORWARD:
                hit = indexed_term.startswith(term)
            elif self.tokenize is TokenizeMode.REVERSE:
                hit = indexed_term.startswith(term) or indexed_term.endswith(term)
            else:
                hit = term in indexed_term
            if hit:
                expansions.append((indexed_term, _PARTIAL_MATCH_DISCOUNT))
        return expansions
