"""Async client for the news backend.

Each public method returns a fetch operation: a zero-argument coroutine
function that performs one GET request. Fetch operations are what
DataStateMachine.bind() consumes, so widgets never build URLs themselves.
"""

import logging
from typing import Any

import httpx

from newsdesk.config import Settings, get_settings
from newsdesk.data_state import FetchOperation

logger = logging.getLogger(__name__)


class NewsAPIClient:
    """Client for the news site's REST API."""

    def __init__(
        self,
        base_url: str | None = None,
        client: httpx.AsyncClient | None = None,
        settings: Settings | None = None,
    ):
        """Initialize the API client.

        Args:
            base_url: Base URL of the API server. If not provided, uses
                NEWSDESK_API_BASE_URL or defaults to http://localhost:5000.
            client: Shared HTTP client. Created lazily when omitted.
            settings: Settings override, mainly for tests.
        """
        settings = settings or get_settings()
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.timeout = settings.request_timeout_seconds
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "NewsAPIClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def endpoint(self, path: str, params: dict[str, Any] | None = None) -> FetchOperation:
        """Build a fetch operation for an arbitrary API path.

        Args:
            path: Path below the base URL, e.g. "/api/articles".
            params: Query parameters. Entries whose value is None are dropped.

        Returns:
            Coroutine function performing the GET request.
        """
        url = f"{self.base_url}/{path.lstrip('/')}"
        query = {key: value for key, value in (params or {}).items() if value is not None}

        async def fetch() -> httpx.Response:
            logger.debug(f"GET {url} {query}")
            return await self._get_client().get(url, params=query)

        return fetch

    def articles(self, category: str | None = None, search: str | None = None) -> FetchOperation:
        """Published articles, optionally filtered by category slug or search text."""
        return self.endpoint("/api/articles", {"category": category, "search": search})

    def featured_articles(self, limit: int | None = None) -> FetchOperation:
        return self.endpoint("/api/articles/featured", {"limit": limit})

    def breaking_news(self, limit: int | None = None) -> FetchOperation:
        return self.endpoint("/api/articles/breaking", {"limit": limit})

    def popular_articles(self, limit: int | None = None) -> FetchOperation:
        return self.endpoint("/api/articles/popular", {"limit": limit})

    def category_articles(self, slug: str, limit: int | None = None) -> FetchOperation:
        return self.endpoint(f"/api/articles/category/{slug}", {"limit": limit})

    def related_articles(
        self, article_id: int, category_id: int, limit: int | None = None
    ) -> FetchOperation:
        """Articles related to one article.

        Args:
            article_id: Article to find relatives of.
            category_id: Category of that article. The server requires it.
            limit: Maximum number of results.
        """
        return self.endpoint(
            f"/api/articles/related/{article_id}",
            {"categoryId": category_id, "limit": limit},
        )

    def article(self, article_id: int) -> FetchOperation:
        return self.endpoint(f"/api/articles/{article_id}")

    def article_by_slug(self, slug: str) -> FetchOperation:
        return self.endpoint(f"/api/articles/slug/{slug}")

    def article_comments(self, article_id: int) -> FetchOperation:
        return self.endpoint(f"/api/articles/{article_id}/comments")

    def categories(self) -> FetchOperation:
        return self.endpoint("/api/categories")

    def top_commenters(self) -> FetchOperation:
        return self.endpoint("/api/users/top-commenters")
