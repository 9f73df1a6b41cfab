"""
Search API Service - Google Custom Search

Returns the top N organic results for a query. Unlike page crawling,
search failures are raised so the caller can tell the user whether the
problem is configuration or the upstream API.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import httpx

from buddy_ai.agents.errors import ConfigurationError, UpstreamServiceError
from buddy_ai.config import settings

logger = logging.getLogger(__name__)


# ============================================================================
# Search Result Model
# ============================================================================

@dataclass
class SearchResult:
    """One organic search result, optionally enriched with page text"""
    title: str
    link: str
    snippet: str
    domain: str
    rank: int
    extracted_text: Optional[str] = None
    extracted_length: Optional[int] = None

    @classmethod
    def from_google(cls, item: Dict[str, Any], rank: int) -> "SearchResult":
        """Create from a Custom Search API item"""
        link = item.get("link", "")
        return cls(
            title=item.get("title", "") or link,
            link=link,
            snippet=item.get("snippet", "") or "",
            domain=item.get("displayLink") or (urlparse(link).netloc if link else ""),
            rank=rank,
        )

    @property
    def best_text(self) -> str:
        """Extracted page text when available, else the snippet"""
        return self.extracted_text or self.snippet


# ============================================================================
# Google Custom Search
# ============================================================================

class GoogleSearchClient:
    """
    Google Custom Search JSON API client

    Requires an API key and a Programmable Search Engine id.
    """

    BASE_URL = "https://www.googleapis.com/customsearch/v1"

    def __init__(
        self,
        api_key: Optional[str] = None,
        engine_id: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 15.0,
    ):
        self.api_key = api_key if api_key is not None else settings.GOOGLE_API_KEY
        self.engine_id = engine_id if engine_id is not None else settings.GOOGLE_SEARCH_ENGINE_ID
        self.http_client = http_client
        self.timeout = timeout
        if not self.is_configured:
            logger.warning("[SEARCH] Google search not configured. Set GOOGLE_API_KEY and GOOGLE_SEARCH_ENGINE_ID in .env")

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.engine_id)

    async def search(self, query: str, num_results: int = 5) -> List[SearchResult]:
        """
        Search Google

        Args:
            query: Search query
            num_results: Number of results to return (max 10)

        Returns:
            List of SearchResult objects ranked from 1

        Raises:
            ConfigurationError: API key or engine id missing
            UpstreamServiceError: API returned an error or was unreachable
        """
        if not self.is_configured:
            raise ConfigurationError("Google Custom Search API key or search engine id is missing")

        params = {
            "key": self.api_key,
            "cx": self.engine_id,
            "q": query,
            "num": max(1, min(num_results, 10)),
        }

        logger.info(f"[SEARCH] Searching: '{query}'")
        try:
            if self.http_client is None:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(self.BASE_URL, params=params)
            else:
                response = await self.http_client.get(self.BASE_URL, params=params, timeout=self.timeout)
        except httpx.HTTPError as e:
            raise UpstreamServiceError("search", str(e)) from e

        if response.status_code != 200:
            logger.error(f"[SEARCH] API error: {response.status_code} - {response.text[:200]}")
            raise UpstreamServiceError(
                "search",
                f"Google Custom Search returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        items = response.json().get("items", []) or []
        results = [
            SearchResult.from_google(item, rank=i + 1)
            for i, item in enumerate(items[:num_results])
        ]
        logger.info(f"[SEARCH] Found {len(results)} results")
        return results
