"""Cosine-similarity ranking of candidate vectors against a query vector.

A brute-force linear scan: every candidate is scored, those below the
relevance threshold are discarded, and the rest are sorted by score.
"""

import math
from collections.abc import Sequence
from typing import TypeVar

T = TypeVar("T")

DEFAULT_LIMIT = 5
MAX_LIMIT = 20
RELEVANCE_THRESHOLD = 0.4


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Return the cosine of the angle between *a* and *b*.

    Only the first ``min(len(a), len(b))`` components are compared, so
    vectors from models with different dimensions still yield a score.
    Empty and zero-norm vectors score ``0.0``.
    """
    length = min(len(a), len(b))
    if length == 0:
        return 0.0

    dot = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for i in range(length):
        av = a[i]
        bv = b[i]
        dot += av * bv
        norm_a += av * av
        norm_b += bv * bv

    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return dot / (math.sqrt(norm_a) * math.sqrt(norm_b))


def clamp_limit(
    limit: int | None,
    default: int = DEFAULT_LIMIT,
    maximum: int = MAX_LIMIT,
) -> int:
    """Clamp a requested result count into ``[1, maximum]``."""
    raw = default if limit is None else limit
    return min(max(raw, 1), maximum)


def rank(
    query_vector: Sequence[float],
    candidates: Sequence[tuple[T, Sequence[float]]],
    limit: int = DEFAULT_LIMIT,
    threshold: float = RELEVANCE_THRESHOLD,
) -> list[tuple[T, float]]:
    """Score, filter and order ``(item, vector)`` candidates.

    Returns at most *limit* ``(item, score)`` pairs, best first, each with
    ``score >= threshold``.  Equal scores keep their input order.
    """
    scored: list[tuple[T, float]] = []
    for item, vector in candidates:
        score = cosine_similarity(query_vector, vector)
        if score >= threshold:
            scored.append((item, score))

    # list.sort is stable, which keeps ties in candidate order.
    scored.sort(key=lambda pair: pair[1], reverse=True)
    return scored[:max(limit, 0)]
