"""Runtime configuration read from environment variables.

Values come from the process environment or a local ``.env`` file.  Every
knob has a default so the service boots with no configuration beyond
``API_KEY``.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_EMBEDDING_MODEL = "sentence-transformers/all-MiniLM-L6-v2"


class SearchSettings(BaseSettings):
    """Tunables for the search service and its collaborators."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
        populate_by_name=True,
    )

    elasticsearch_url: str = Field("http://localhost:9200", validation_alias="ELASTICSEARCH_URL")
    elasticsearch_api_key: str | None = Field(None, validation_alias="ELASTICSEARCH_API_KEY")
    posts_index: str = Field("posts", validation_alias="POSTS_INDEX")

    embedding_model: str = Field(DEFAULT_EMBEDDING_MODEL, validation_alias="EMBEDDING_MODEL")

    relevance_threshold: float = Field(
        0.4, ge=-1.0, le=1.0, validation_alias="SEARCH_RELEVANCE_THRESHOLD"
    )
    default_limit: int = Field(5, ge=1, validation_alias="SEARCH_DEFAULT_LIMIT")
    max_limit: int = Field(20, ge=1, validation_alias="SEARCH_MAX_LIMIT")
    # Most-recent posts scanned per query.  A cost ceiling, not a
    # completeness guarantee.
    candidate_limit: int = Field(200, ge=1, validation_alias="SEARCH_CANDIDATE_LIMIT")
    embed_concurrency: int = Field(8, ge=1, validation_alias="SEARCH_EMBED_CONCURRENCY")

    cache_ttl_seconds: float = Field(600.0, gt=0, validation_alias="SEARCH_CACHE_TTL_SECONDS")
    cache_max_entries: int = Field(1000, ge=1, validation_alias="SEARCH_CACHE_MAX_ENTRIES")

    wikipedia_base_url: str = Field("https://en.wikipedia.org", validation_alias="WIKIPEDIA_BASE_URL")
    wikipedia_timeout_seconds: float = Field(
        5.0, gt=0, validation_alias="WIKIPEDIA_TIMEOUT_SECONDS"
    )

    rate_limit: int = Field(10, ge=1, validation_alias="SEARCH_RATE_LIMIT")
    rate_window_seconds: float = Field(60.0, gt=0, validation_alias="SEARCH_RATE_WINDOW_SECONDS")
