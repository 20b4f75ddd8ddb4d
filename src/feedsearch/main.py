import logging
import os
from contextlib import asynccontextmanager

import httpx
from elasticsearch import AsyncElasticsearch
from fastapi import FastAPI

from .config import SearchSettings
from .lib.embeddings import SentenceTransformerProvider
from .lib.posts import PostStore
from .lib.search import ResultCache, SearchService, WikipediaSource
from .ratelimit import RateLimiter
from .routers import health, search

logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO").upper())

logger = logging.getLogger(__name__)


def build_search_service(settings: SearchSettings, es, http_client: httpx.AsyncClient) -> SearchService:
    """Wire the search pipeline from its collaborators."""
    return SearchService(
        provider=SentenceTransformerProvider(settings.embedding_model),
        store=PostStore(es, index=settings.posts_index),
        external=WikipediaSource(
            http_client,
            base_url=settings.wikipedia_base_url,
            timeout=settings.wikipedia_timeout_seconds,
        ),
        cache=ResultCache(
            ttl_seconds=settings.cache_ttl_seconds,
            max_entries=settings.cache_max_entries,
        ),
        threshold=settings.relevance_threshold,
        default_limit=settings.default_limit,
        max_limit=settings.max_limit,
        candidate_limit=settings.candidate_limit,
        embed_concurrency=settings.embed_concurrency,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: SearchSettings = app.state.settings
    es = AsyncElasticsearch(
        settings.elasticsearch_url,
        api_key=settings.elasticsearch_api_key,
    )
    http_client = httpx.AsyncClient()
    service = build_search_service(settings, es, http_client)

    app.state.es = es
    app.state.search_service = service
    logger.info(
        "Search service ready (model=%s, index=%s)",
        settings.embedding_model,
        settings.posts_index,
    )
    try:
        yield
    finally:
        await service.aclose()
        await http_client.aclose()
        await es.close()


settings = SearchSettings()

app = FastAPI(
    title="Feed Search API",
    description="Semantic search over feed posts with a Wikipedia fallback",
    version="0.1.0",
    lifespan=lifespan,
)
app.state.settings = settings
app.state.rate_limiter = RateLimiter(settings.rate_limit, settings.rate_window_seconds)

app.include_router(health.router)
app.include_router(search.router)
