from datetime import datetime, timezone
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Stored posts
# ---------------------------------------------------------------------------

class Post(BaseModel):
    """A feed post as read from the post store."""

    id: str = Field(..., description="Post identifier (document _id)")
    text: str = Field("", description="Free-text body of the post")
    embedding: list[float] | None = Field(
        None, description="Cached embedding vector, if one was computed"
    )
    embedding_model: str | None = Field(
        None, description="Name of the model that produced the cached embedding"
    )
    embedding_updated_at: datetime | None = Field(
        None, description="When the cached embedding was computed"
    )
    created_at: datetime | None = None
    updated_at: datetime | None = Field(
        None, description="Last content modification of the post"
    )

    @field_validator("embedding_updated_at", "created_at", "updated_at")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


# ---------------------------------------------------------------------------
# Search request / response
# ---------------------------------------------------------------------------

class SearchRequest(BaseModel):
    """Body of ``POST /ai/search``."""

    model_config = ConfigDict(populate_by_name=True)

    query: str = Field(..., description="Free-text search query")
    limit: int | None = Field(
        None, description="Maximum number of results (clamped to 1-20, default 5)"
    )
    include_answer: bool = Field(
        False,
        alias="includeAnswer",
        description="When true, attach a templated summary answer",
    )


class AnswerSource(BaseModel):
    name: str
    url: str


class Answer(BaseModel):
    """Templated summary of the evidence behind a search result."""

    summary: str
    confidence: float = Field(..., ge=0.2, le=0.95)
    sources: list[AnswerSource] = Field(default_factory=list)


class LocalResultItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    post_id: str = Field(..., alias="postId")
    title: str
    excerpt: str
    score: float


class LocalSearchResult(BaseModel):
    """Posts in the app matched the query."""

    mode: Literal["local"] = "local"
    results: list[LocalResultItem]
    threshold: float
    answer: Answer | None = None


class SuggestionSource(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    query_url: str = Field(..., alias="queryUrl")


class Suggestions(BaseModel):
    keywords: list[str] = Field(default_factory=list)
    sources: list[SuggestionSource] = Field(default_factory=list)


class ExternalSnippet(BaseModel):
    title: str
    snippet: str
    url: str


class ExternalResults(BaseModel):
    wikipedia: list[ExternalSnippet] = Field(default_factory=list)


class FallbackSearchResult(BaseModel):
    """No post cleared the relevance threshold; external evidence instead."""

    mode: Literal["fallback"] = "fallback"
    message: str
    suggestions: Suggestions
    external: ExternalResults
    answer: Answer | None = None


SearchResult = Annotated[
    Union[LocalSearchResult, FallbackSearchResult],
    Field(discriminator="mode"),
]
