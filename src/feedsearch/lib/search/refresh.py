"""Reuse or regenerate the cached embeddings of candidate posts.

A post's stored vector is reused when it was produced by the provider's
current model after the post's last edit.  Everything else is re-embedded
concurrently and written back to the post store in the background; the
search request only waits for the vectors, never for the writes.
"""

import asyncio
import logging
from datetime import datetime, timezone

from ...errors import CacheWriteFailed, CandidateEmbeddingFailed
from ...models import Post
from ..embeddings import EmbeddingProvider

logger = logging.getLogger(__name__)

DEFAULT_EMBED_CONCURRENCY = 8


def is_embedding_current(post: Post, model_name: str) -> bool:
    """Return True if *post* carries a reusable embedding for *model_name*."""
    if not post.embedding:
        return False
    if post.embedding_model != model_name:
        return False
    if post.embedding_updated_at is None:
        return False
    if post.updated_at is None:
        return True
    return post.embedding_updated_at >= post.updated_at


class EmbeddingRefresher:
    """Resolves one vector per candidate post, refreshing stale ones.

    Parameters
    ----------
    provider:
        Embedding provider used for posts without a current vector.
    store:
        Object with an async ``save_embedding(post_id, embedding,
        model_name, updated_at)`` method (normally a ``PostStore``).
    concurrency:
        Maximum number of embedding calls in flight for one request.
    """

    def __init__(self, provider: EmbeddingProvider, store, concurrency: int = DEFAULT_EMBED_CONCURRENCY):
        self.provider = provider
        self.store = store
        self.concurrency = max(1, concurrency)
        self.failed_embeddings = 0
        self.failed_writes = 0
        self._pending_writes: set[asyncio.Task] = set()

    async def resolve(self, posts: list[Post]) -> list[tuple[Post, list[float]]]:
        """Return ``(post, vector)`` pairs in the same order as *posts*.

        Posts with blank text and posts whose embedding failed are left out.
        """
        model_name = self.provider.model_name
        semaphore = asyncio.Semaphore(self.concurrency)

        async def vector_for(post: Post) -> list[float] | None:
            if is_embedding_current(post, model_name):
                return post.embedding
            async with semaphore:
                return await self._refresh(post, model_name)

        eligible = [post for post in posts if post.text and post.text.strip()]
        vectors = await asyncio.gather(*(vector_for(post) for post in eligible))

        return [
            (post, vector)
            for post, vector in zip(eligible, vectors)
            if vector is not None
        ]

    async def _refresh(self, post: Post, model_name: str) -> list[float] | None:
        try:
            vector = await self.provider.embed(post.text)
        except Exception as exc:
            self.failed_embeddings += 1
            failure = CandidateEmbeddingFailed(post.id, str(exc) or type(exc).__name__)
            logger.warning("%s; dropping candidate", failure, extra={"post_id": post.id})
            return None

        task = asyncio.create_task(
            self._write_back(post.id, vector, model_name, datetime.now(timezone.utc))
        )
        self._pending_writes.add(task)
        task.add_done_callback(self._pending_writes.discard)
        return vector

    async def _write_back(
        self,
        post_id: str,
        vector: list[float],
        model_name: str,
        updated_at: datetime,
    ) -> None:
        try:
            await self.store.save_embedding(post_id, vector, model_name, updated_at)
        except Exception as exc:
            self.failed_writes += 1
            failure = CacheWriteFailed(post_id, str(exc) or type(exc).__name__)
            logger.warning("%s", failure, extra={"post_id": post_id})

    async def drain(self) -> None:
        """Wait for every in-flight embedding write-back to finish."""
        while self._pending_writes:
            await asyncio.gather(*list(self._pending_writes))
