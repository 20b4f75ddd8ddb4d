"""External fallback used when no post is relevant enough.

Provides keyword extraction for search suggestions and a small Wikipedia
full-text search client.  The client never raises: any transport or payload
problem is logged and reported as "no external results".
"""

import logging
import re
from urllib.parse import quote

import httpx

from ...errors import ExternalLookupFailed
from ...models import ExternalSnippet

logger = logging.getLogger(__name__)

WIKIPEDIA_BASE_URL = "https://en.wikipedia.org"
DEFAULT_EXTERNAL_LIMIT = 3
MAX_KEYWORDS = 10
USER_AGENT = "feedsearch/0.1 (semantic post search fallback)"

STOPWORDS = frozenset({
    "the", "and", "for", "with", "that", "this", "from", "are", "was",
    "were", "you", "your", "about", "what", "when", "where", "which", "who",
    "why", "how", "but", "not", "can", "could", "should", "would", "into",
    "our", "out", "use", "using",
})

_NON_ALNUM = re.compile(r"[^\w\s]|_")
_HTML_TAG = re.compile(r"<[^>]*>")


def extract_keywords(text: str, limit: int = MAX_KEYWORDS) -> list[str]:
    """Return up to *limit* distinct keywords of *text* in first-seen order.

    Tokens of two characters or fewer and common stopwords are dropped.
    """
    cleaned = _NON_ALNUM.sub(" ", text.lower())
    keywords: list[str] = []
    seen: set[str] = set()
    for token in cleaned.split():
        if len(token) <= 2 or token in STOPWORDS or token in seen:
            continue
        seen.add(token)
        keywords.append(token)
        if len(keywords) >= limit:
            break
    return keywords


def strip_html(text: str) -> str:
    return _HTML_TAG.sub("", text)


def _encode_component(value: str) -> str:
    # Same escaping as JavaScript's encodeURIComponent (spaces become %20).
    return quote(value, safe="!~*'()")


def build_wikipedia_search_url(query: str, base_url: str = WIKIPEDIA_BASE_URL) -> str:
    """Link to Wikipedia's own search results page for *query*."""
    return f"{base_url}/wiki/Special:Search?search={_encode_component(query)}"


def build_wikipedia_article_url(title: str, base_url: str = WIKIPEDIA_BASE_URL) -> str:
    return f"{base_url}/wiki/{_encode_component(title)}"


class WikipediaSource:
    """Wikipedia full-text search through the MediaWiki REST API.

    ``client`` is an ``httpx.AsyncClient`` owned by the caller; tests pass
    one backed by ``httpx.MockTransport``.
    """

    name = "Wikipedia"

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str = WIKIPEDIA_BASE_URL,
        timeout: float = 5.0,
    ):
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def search_url(self, query: str) -> str:
        return build_wikipedia_search_url(query, self.base_url)

    async def search(self, query: str, limit: int = DEFAULT_EXTERNAL_LIMIT) -> list[ExternalSnippet]:
        """Return up to *limit* article snippets for *query*, or ``[]`` on failure."""
        try:
            return await self._search(query, limit)
        except ExternalLookupFailed as exc:
            logger.warning("Wikipedia lookup failed: %s", exc, extra={"query": query})
            return []

    async def _search(self, query: str, limit: int) -> list[ExternalSnippet]:
        try:
            resp = await self.client.get(
                f"{self.base_url}/w/rest.php/v1/search/page",
                params={"q": query, "limit": limit},
                headers={"User-Agent": USER_AGENT},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPError as exc:
            raise ExternalLookupFailed(f"request error: {exc}") from exc
        except ValueError as exc:
            raise ExternalLookupFailed("response was not valid JSON") from exc

        if not isinstance(data, dict):
            raise ExternalLookupFailed(f"unexpected payload type {type(data).__name__}")
        pages = data.get("pages") or []
        if not isinstance(pages, list):
            raise ExternalLookupFailed("'pages' is not a list")

        snippets: list[ExternalSnippet] = []
        for page in pages[:limit]:
            if not isinstance(page, dict):
                continue
            title = str(page.get("title") or "").strip()
            if not title:
                continue
            snippets.append(
                ExternalSnippet(
                    title=title,
                    snippet=strip_html(str(page.get("excerpt") or "")),
                    url=build_wikipedia_article_url(title, self.base_url),
                )
            )
        return snippets
