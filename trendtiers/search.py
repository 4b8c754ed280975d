"""Minimal SerpAPI client built on the Python standard library."""
from __future__ import annotations

import json
import logging
from typing import List, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

LOGGER = logging.getLogger(__name__)

SEARCH_URL = "https://serpapi.com/search.json"
USER_AGENT = "TrendTiers.com Image Fetcher 1.0"
DEFAULT_TIMEOUT = 15


class SearchError(RuntimeError):
    """Raised when the search API cannot return a usable response."""


class SearchUnavailable(SearchError):
    """Raised when no API key is configured."""


class SearchClient:
    """Thin wrapper around the SerpAPI web and image endpoints."""

    def __init__(self, api_key: Optional[str], *, timeout: int = DEFAULT_TIMEOUT) -> None:
        self.api_key = (api_key or "").strip() or None
        self.timeout = timeout

    @property
    def available(self) -> bool:
        return self.api_key is not None

    def _request(self, params: dict) -> dict:
        if not self.api_key:
            raise SearchUnavailable("SERPAPI_KEY is not configured")
        query = urlencode({**params, "api_key": self.api_key})
        request = Request(
            f"{SEARCH_URL}?{query}",
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
            method="GET",
        )
        try:
            with urlopen(request, timeout=self.timeout) as response:
                body = response.read().decode("utf-8")
        except HTTPError as exc:
            detail = exc.read().decode("utf-8", "ignore")
            raise SearchError(f"SerpAPI error {exc.code}: {detail[:200]}") from exc
        except (URLError, OSError) as exc:
            raise SearchError(f"SerpAPI network error: {exc}") from exc
        try:
            data = json.loads(body)
        except json.JSONDecodeError as exc:
            raise SearchError(f"Invalid SerpAPI response: {body[:200]}") from exc
        if not isinstance(data, dict):
            raise SearchError("Unexpected SerpAPI payload")
        if data.get("error"):
            raise SearchError(f"SerpAPI reported: {data['error']}")
        return data

    def web_search(self, query: str) -> dict:
        """Run a Google web search and return the decoded payload."""

        LOGGER.debug("SerpAPI web search: %s", query)
        return self._request({"engine": "google", "q": query})

    def image_search(self, query: str, *, limit: int = 20) -> List[dict]:
        """Run a Google Images search and return the raw ``images_results`` list."""

        LOGGER.debug("SerpAPI image search: %s", query)
        data = self._request(
            {
                "engine": "google_images",
                "q": f"{query} product",
                "safe": "active",
                "num": limit,
                "ijn": "0",
            }
        )
        results = data.get("images_results")
        if not isinstance(results, list):
            return []
        return [item for item in results if isinstance(item, dict)]
