"""Elasticsearch-backed access to feed posts.

The search pipeline only reads posts and backfills their embedding fields;
creating, editing and deleting posts belongs to the feed API.
"""

import logging
from datetime import datetime

from elastic_transport import ObjectApiResponse
from pydantic import ValidationError

from ..errors import PostStoreError
from ..models import Post

logger = logging.getLogger(__name__)

POST_SOURCE_FIELDS = [
    "text",
    "embedding",
    "embedding_model",
    "embedding_updated_at",
    "created_at",
    "updated_at",
]


def unwrap_es_response(resp) -> dict:
    """Unwrap an Elasticsearch response, handling both ObjectApiResponse and dict.

    Raises ``PostStoreError`` if the response type is unexpected.
    """
    if isinstance(resp, ObjectApiResponse):
        return resp.body
    if isinstance(resp, dict):
        return resp
    logger.error("Unexpected Elasticsearch response type: %s", type(resp))
    raise PostStoreError(f"Unexpected Elasticsearch response type: {type(resp)}")


def post_from_hit(hit: dict) -> Post | None:
    """Convert a search hit into a :class:`Post`.

    Returns ``None`` for hits without an id or with fields that do not
    validate, so one bad document does not fail the whole search.
    """
    post_id = hit.get("_id")
    if not post_id:
        return None
    src = hit.get("_source") or {}
    embedding = src.get("embedding")
    try:
        return Post(
            id=str(post_id),
            text=src.get("text") or "",
            embedding=embedding if isinstance(embedding, list) and embedding else None,
            embedding_model=src.get("embedding_model") or None,
            embedding_updated_at=src.get("embedding_updated_at"),
            created_at=src.get("created_at"),
            updated_at=src.get("updated_at"),
        )
    except ValidationError as exc:
        logger.warning("Skipping malformed post %s: %s", post_id, exc)
        return None


class PostStore:
    """Reads candidate posts and persists refreshed embeddings."""

    def __init__(self, es, index: str = "posts"):
        self.es = es
        self.index = index

    async def fetch_recent_posts(self, limit: int) -> list[Post]:
        """Return up to *limit* posts, most recently created first."""
        resp = await self.es.search(
            index=self.index,
            query={"match_all": {}},
            size=limit,
            sort=[{"created_at": "desc"}],
            _source=POST_SOURCE_FIELDS,
        )
        data = unwrap_es_response(resp)

        posts: list[Post] = []
        for hit in data.get("hits", {}).get("hits", []):
            post = post_from_hit(hit)
            if post is not None:
                posts.append(post)
        return posts

    async def save_embedding(
        self,
        post_id: str,
        embedding: list[float],
        model_name: str,
        updated_at: datetime,
    ) -> None:
        """Write a freshly computed embedding onto the post document."""
        await self.es.update(
            index=self.index,
            id=post_id,
            doc={
                "embedding": embedding,
                "embedding_model": model_name,
                "embedding_updated_at": updated_at.isoformat(),
            },
        )
