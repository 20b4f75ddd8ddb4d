"""Exceptions raised (or logged) by the search pipeline.

Only :class:`EmbeddingUnavailable` and :class:`PostStoreError` abort a
search; the others describe degraded paths that are logged and absorbed so
the caller still receives a complete response.
"""


class SearchError(Exception):
    """Base class for every search pipeline failure."""


class EmbeddingUnavailable(SearchError):
    """The embedding provider could not load its model or embed the text."""


class CandidateEmbeddingFailed(SearchError):
    """A single candidate post could not be embedded and was dropped."""

    def __init__(self, post_id: str, reason: str):
        super().__init__(f"Embedding failed for post {post_id}: {reason}")
        self.post_id = post_id
        self.reason = reason


class CacheWriteFailed(SearchError):
    """Persisting a refreshed embedding back to the post store failed."""

    def __init__(self, post_id: str, reason: str):
        super().__init__(f"Embedding write-back failed for post {post_id}: {reason}")
        self.post_id = post_id
        self.reason = reason


class ExternalLookupFailed(SearchError):
    """The external fallback source was unreachable or returned bad data."""


class PostStoreError(SearchError):
    """The post store returned an unexpected response."""
