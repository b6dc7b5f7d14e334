"""Statistical helpers for BM25 style scoring.

The functions here stay independent of the token index layout so they can
be unit tested on their own.
"""

from __future__ import annotations

import math


def calculate_idf(doc_freq: int, total_docs: int, *, floor: float = 1e-6) -> float:
    """Return inverse document frequency with small-sample smoothing.

    The floor keeps scores positive even when a term appears in most
    documents of a small collection.
    """

    if total_docs <= 0:
        return 0.0
    df = max(0, min(doc_freq, total_docs))
    ratio = max((total_docs - df + 0.5) / (df + 0.5), floor)
    return max(math.log(ratio + floor) + 1.0, floor)


def bm25(tf: int, doc_length: int, avg_doc_length: float, *, k1: float = 1.2, b: float = 0.75) -> float:
    """Compute the BM25 term weight without IDF.

    The dl/avgdl ratio is capped at 4x so one very long record does not
    bury its matches.
    """

    if tf <= 0:
        return 0.0
    max_length_ratio = 4.0
    normalized_length = min(doc_length / max(avg_doc_length, 1e-9), max_length_ratio)
    denominator = tf + k1 * (1 - b + b * normalized_length)
    return (tf * (k1 + 1)) / denominator
