"""Semantic post search.

Ranks feed posts against a query by embedding cosine similarity and falls
back to Wikipedia when nothing in the app is relevant enough.
"""

from .answers import build_fallback_answer, build_local_answer
from .cache import CacheKey, ResultCache
from .fallback import WikipediaSource, extract_keywords
from .ranker import clamp_limit, cosine_similarity, rank
from .refresh import EmbeddingRefresher, is_embedding_current
from .service import SearchService

__all__ = [
    "CacheKey",
    "EmbeddingRefresher",
    "ResultCache",
    "SearchService",
    "WikipediaSource",
    "build_fallback_answer",
    "build_local_answer",
    "clamp_limit",
    "cosine_similarity",
    "extract_keywords",
    "is_embedding_current",
    "rank",
]
