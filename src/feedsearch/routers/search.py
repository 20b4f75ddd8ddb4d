"""Search router – semantic post search over HTTP.

POST /ai/search
    Rank posts against a free-text query, or fall back to Wikipedia.

POST /ai/query
    Legacy alias of ``/ai/search``.

GET /ai/health
    Report the embedding model in use.
"""

import logging
from typing import Union

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel

from ..models import FallbackSearchResult, LocalSearchResult, SearchRequest, SearchResult
from ..security import verify_api_key

router = APIRouter(prefix="/ai", tags=["search"], dependencies=[Depends(verify_api_key)])

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 3


class SearchHealthResponse(BaseModel):
    ok: bool
    provider: str
    model: str


async def enforce_rate_limit(request: Request) -> None:
    """Apply the application-scoped rate limiter, if one is installed."""
    limiter = getattr(request.app.state, "rate_limiter", None)
    if limiter is not None:
        await limiter(request)


async def _run_search(request: Request, payload: SearchRequest) -> SearchResult:
    query = payload.query.strip()
    if len(query) < MIN_QUERY_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"query must be at least {MIN_QUERY_LENGTH} characters",
        )

    service = request.app.state.search_service
    try:
        return await service.search(query, payload.limit, payload.include_answer)
    except Exception as exc:
        logger.exception("Search failed", extra={"query": query})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Search failed",
        ) from exc


@router.post(
    "/search",
    response_model=Union[LocalSearchResult, FallbackSearchResult],
    response_model_exclude_none=True,
    dependencies=[Depends(enforce_rate_limit)],
)
async def search_posts(request: Request, payload: SearchRequest) -> SearchResult:
    """Search posts by meaning.

    Returns ``mode="local"`` with ranked posts when at least one post clears
    the relevance threshold, otherwise ``mode="fallback"`` with keyword
    suggestions and Wikipedia snippets.
    """
    return await _run_search(request, payload)


@router.post(
    "/query",
    response_model=Union[LocalSearchResult, FallbackSearchResult],
    response_model_exclude_none=True,
    dependencies=[Depends(enforce_rate_limit)],
)
async def query_posts(request: Request, payload: SearchRequest) -> SearchResult:
    """Legacy alias of ``POST /ai/search``."""
    return await _run_search(request, payload)


@router.get("/health", response_model=SearchHealthResponse)
async def search_health(request: Request) -> SearchHealthResponse:
    service = request.app.state.search_service
    return SearchHealthResponse(ok=True, provider="local", model=service.provider.model_name)
