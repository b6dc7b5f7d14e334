"""Analyzer utilities for the full-text token index.

Analyzers are composable tokenizer/filter pipelines that turn extracted
document text (and query keywords) into normalized terms. The same analyzer
must be used at index and query time, which is why the analyzer name travels
inside every snapshot's config.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass
import re
from typing import Protocol
import unicodedata


@dataclass
class Token:
    """Represents a token emitted by analyzers."""

    text: str
    position: int


class Analyzer(Protocol):
    """Protocol implemented by analyzers."""

    def __call__(self, text: str) -> list[Token]:  # pragma: no cover - interface definition
        ...


class Tokenizer(Protocol):
    def __call__(self, text: str) -> Iterator[Token]:  # pragma: no cover - interface definition
        ...


class TokenFilter(Protocol):
    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:  # pragma: no cover - interface definition
        ...


class RegexTokenizer:
    """Regex-based tokenizer that yields word tokens."""

    def __init__(self, pattern: str = r"\w+", flags: int = re.UNICODE) -> None:
        self.pattern = re.compile(pattern, flags)

    def __call__(self, text: str) -> Iterator[Token]:
        for position, match in enumerate(self.pattern.finditer(text)):
            yield Token(text=match.group(0), position=position)


class LowercaseFilter:
    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:
        for token in tokens:
            token.text = token.text.lower()
            yield token


class AccentFoldFilter:
    """Strip combining marks so ``José`` and ``jose`` index to the same term."""

    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:
        for token in tokens:
            if token.text.isascii():
                yield token
                continue
            decomposed = unicodedata.normalize("NFKD", token.text)
            token.text = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
            yield token


DEFAULT_STOPWORDS = (
    "a",
    "an",
    "and",
    "are",
    "as",
    "at",
    "be",
    "but",
    "by",
    "for",
    "if",
    "in",
    "into",
    "is",
    "it",
    "no",
    "not",
    "of",
    "on",
    "or",
    "such",
    "that",
    "the",
    "their",
    "then",
    "there",
    "these",
    "they",
    "this",
    "to",
    "was",
    "will",
    "with",
)


class StopFilter:
    """Removes stopwords from the stream."""

    def __init__(self, stopwords: Sequence[str] | None = None) -> None:
        vocab = stopwords if stopwords is not None else DEFAULT_STOPWORDS
        self.stopwords = {word.lower() for word in vocab}

    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:
        for token in tokens:
            if token.text not in self.stopwords:
                yield token


_SIMPLE_SUFFIXES: tuple[str, ...] = ("ingly", "edly", "ing", "ed", "ly", "es", "s")


class SuffixStemFilter:
    """Strips common English inflection suffixes, keeping stems of 3+ characters."""

    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:
        for token in tokens:
            token.text = _strip_suffix(token.text)
            yield token


def _strip_suffix(word: str) -> str:
    for suffix in _SIMPLE_SUFFIXES:
        if word.endswith(suffix) and len(word) - len(suffix) >= 3:
            return word[: -len(suffix)]
    return word


class AnalyzerPipeline:
    """Composable analyzer pipeline (tokenizer + filters)."""

    def __init__(self, tokenizer: Tokenizer, filters: Sequence[TokenFilter] | None = None) -> None:
        self.tokenizer = tokenizer
        self.filters = list(filters or [])

    def __call__(self, text: str) -> list[Token]:
        stream: Iterable[Token] = self.tokenizer(text)
        for token_filter in self.filters:
            stream = token_filter(stream)
        tokens = [token for token in stream if token.text]
        for idx, token in enumerate(tokens):  # normalize positions post-filtering
            token.position = idx
        return tokens


class KeywordAnalyzer:
    """Analyzer that treats the entire (lowercased) input as a single token."""

    def __call__(self, text: str) -> list[Token]:
        normalized = text.strip().lower()
        if not normalized:
            return []
        return [Token(text=normalized, position=0)]


_ANALYZER_FACTORIES: dict[str, Callable[[], Analyzer]] = {
    "simple": lambda: AnalyzerPipeline(RegexTokenizer(), [LowercaseFilter(), AccentFoldFilter()]),
    "english": lambda: AnalyzerPipeline(
        RegexTokenizer(), [LowercaseFilter(), AccentFoldFilter(), StopFilter(), SuffixStemFilter()]
    ),
    "english-nostem": lambda: AnalyzerPipeline(
        RegexTokenizer(), [LowercaseFilter(), AccentFoldFilter(), StopFilter()]
    ),
    "keyword": lambda: KeywordAnalyzer(),
}


def available_analyzers() -> list[str]:
    return sorted(_ANALYZER_FACTORIES)


def get_analyzer(name: str | None) -> Analyzer:
    """Return analyzer by name, defaulting to the simple analyzer."""

    if name is None:
        return _ANALYZER_FACTORIES["simple"]()
    normalized = name.lower()
    if normalized not in _ANALYZER_FACTORIES:
        msg = f"Unknown analyzer '{name}'. Available: {available_analyzers()}"
        raise ValueError(msg)
    return _ANALYZER_FACTORIES[normalized]()
