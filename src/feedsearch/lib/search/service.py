"""Search orchestration.

Pipeline for one request:

1. Normalise the query (trim + lowercase).  An empty query goes straight to
   the fallback.
2. Look up the result cache by (query, limit, include_answer).
3. Embed the query.  This is the only fatal step.
4. Fetch the most recent posts and resolve their embeddings.
5. Rank by cosine similarity against the relevance threshold.
6. Build a ``local`` result from ranked posts, otherwise a ``fallback``
   result from Wikipedia, optionally with a templated answer.
7. Cache and return.
"""

import logging
import re

from ...errors import EmbeddingUnavailable
from ...models import (
    ExternalResults,
    FallbackSearchResult,
    LocalResultItem,
    LocalSearchResult,
    SearchResult,
    SuggestionSource,
    Suggestions,
)
from ..embeddings import EmbeddingProvider
from .answers import MAX_ANSWER_POSTS, AnswerPost, build_fallback_answer, build_local_answer
from .cache import CacheKey, ResultCache
from .fallback import DEFAULT_EXTERNAL_LIMIT, extract_keywords
from .ranker import DEFAULT_LIMIT, MAX_LIMIT, RELEVANCE_THRESHOLD, clamp_limit, rank
from .refresh import DEFAULT_EMBED_CONCURRENCY, EmbeddingRefresher

logger = logging.getLogger(__name__)

DEFAULT_CANDIDATE_LIMIT = 200
FALLBACK_MESSAGE = "No relevant posts found in the app."
TITLE_MAX_CHARS = 60
EXCERPT_MAX_CHARS = 140


def normalize_query(query: str) -> str:
    return query.strip().lower()


def post_title(text: str) -> str:
    """First line of the post, shortened to ``TITLE_MAX_CHARS``."""
    trimmed = text.strip()
    if not trimmed:
        return "Untitled post"
    first_line = re.split(r"\r?\n", trimmed)[0]
    if len(first_line) > TITLE_MAX_CHARS:
        return f"{first_line[:TITLE_MAX_CHARS]}..."
    return first_line


def post_excerpt(text: str) -> str:
    trimmed = text.strip()
    if len(trimmed) <= EXCERPT_MAX_CHARS:
        return trimmed
    return f"{trimmed[:EXCERPT_MAX_CHARS]}..."


class SearchService:
    """Semantic post search with a Wikipedia fallback.

    Parameters
    ----------
    provider:
        Embedding provider for the query and for stale posts.
    store:
        Post store exposing ``fetch_recent_posts`` and ``save_embedding``.
    external:
        Fallback source exposing ``name``, ``search_url(query)`` and an async
        ``search(query, limit)`` that never raises.
    cache:
        Result cache shared by all requests.
    """

    def __init__(
        self,
        provider: EmbeddingProvider,
        store,
        external,
        cache: ResultCache,
        *,
        threshold: float = RELEVANCE_THRESHOLD,
        default_limit: int = DEFAULT_LIMIT,
        max_limit: int = MAX_LIMIT,
        candidate_limit: int = DEFAULT_CANDIDATE_LIMIT,
        embed_concurrency: int = DEFAULT_EMBED_CONCURRENCY,
    ):
        self.provider = provider
        self.store = store
        self.external = external
        self.cache = cache
        self.threshold = threshold
        self.default_limit = default_limit
        self.max_limit = max_limit
        self.candidate_limit = candidate_limit
        self.refresher = EmbeddingRefresher(provider, store, concurrency=embed_concurrency)

    async def search(
        self,
        query: str,
        limit: int | None = None,
        include_answer: bool = False,
    ) -> SearchResult:
        """Run one search and return either a local or a fallback result.

        Raises
        ------
        EmbeddingUnavailable
            If the query itself cannot be embedded.
        PostStoreError
            If candidate posts cannot be read.
        """
        normalized = normalize_query(query)
        if not normalized:
            return await self._build_fallback(query, include_answer)

        safe_limit = clamp_limit(limit, self.default_limit, self.max_limit)
        key = CacheKey(normalized, safe_limit, include_answer)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        query_vector = await self._embed_query(normalized)

        posts = await self.store.fetch_recent_posts(self.candidate_limit)
        if not posts:
            logger.info("No candidate posts available for search")
        candidates = await self.refresher.resolve(posts)
        ranked = rank(query_vector, candidates, safe_limit, self.threshold)

        if ranked:
            result = self._build_local(query, ranked, include_answer)
        else:
            result = await self._build_fallback(query, include_answer)

        self.cache.set(key, result)
        return result

    async def _embed_query(self, normalized: str) -> list[float]:
        try:
            return await self.provider.embed(normalized)
        except EmbeddingUnavailable:
            raise
        except Exception as exc:
            raise EmbeddingUnavailable(f"Query embedding failed: {exc}") from exc

    def _build_local(self, query: str, ranked, include_answer: bool) -> LocalSearchResult:
        items = [
            LocalResultItem(
                post_id=post.id,
                title=post_title(post.text),
                excerpt=post_excerpt(post.text),
                score=score,
            )
            for post, score in ranked
        ]
        result = LocalSearchResult(results=items, threshold=self.threshold)

        if include_answer:
            answer_posts = [
                AnswerPost(post_id=post.id, title=post_title(post.text), text=post.text, score=score)
                for post, score in ranked[:MAX_ANSWER_POSTS]
            ]
            result.answer = build_local_answer(query, answer_posts)
        return result

    async def _build_fallback(self, query: str, include_answer: bool) -> FallbackSearchResult:
        keywords = extract_keywords(query)
        search_terms = " ".join(keywords) if keywords else query
        external = await self.external.search(query, DEFAULT_EXTERNAL_LIMIT)

        result = FallbackSearchResult(
            message=FALLBACK_MESSAGE,
            suggestions=Suggestions(
                keywords=keywords,
                sources=[
                    SuggestionSource(
                        name=self.external.name,
                        query_url=self.external.search_url(search_terms),
                    )
                ],
            ),
            external=ExternalResults(wikipedia=external),
        )
        if include_answer:
            result.answer = build_fallback_answer(query, external)
        return result

    async def aclose(self) -> None:
        """Wait for background embedding write-backs."""
        await self.refresher.drain()
