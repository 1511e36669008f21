"""Web search tool with a three-step fallback chain.

1. The network relay (DuckDuckGo via HttpRelay by default).
2. Public SearXNG-style JSON endpoints, tried in order with a short timeout.
3. A single synthetic result linking to a manual search.

Searching never fails the turn: the worst case is step 3, reported as done.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote_plus

import httpx

from ..errors import RelayError
from ..models import SearchResult, ToolCall
from ..relay import NetworkRelay
from ..tool import BaseTool

logger = logging.getLogger(__name__)

MANUAL_SEARCH_URL = "https://www.bing.com/search?q={query}"

# Result pages of search engines are not content and are dropped.
_SEARCH_PAGE_MARKERS = ("bing.com/search", "google.com/search", "/search?")


def is_search_page(url: str) -> bool:
    return any(marker in url for marker in _SEARCH_PAGE_MARKERS)


def format_results(results: list[SearchResult]) -> str:
    if not results:
        return "No results found"
    return "\n\n".join(
        f"{i}. {r.title}\n   {r.url}\n   {r.snippet}" for i, r in enumerate(results, 1)
    )


class WebSearchTool(BaseTool):
    """Searches the web for current information on a topic."""

    name = "web_search"
    description = "Search the web for up-to-date information"
    params = {"query": "short, precise search keywords"}

    def __init__(
        self,
        relay: NetworkRelay | None = None,
        endpoints: list[str] | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 5.0,
        max_results: int = 5,
        snippet_chars: int = 150,
    ):
        self.relay = relay
        self.endpoints = list(endpoints or [])
        self._client = client
        self.timeout = timeout
        self.max_results = max_results
        self.snippet_chars = snippet_chars

    async def run(self, call: ToolCall) -> str:
        return format_results(await self.search(call.arguments.query))

    async def search(self, query: str) -> list[SearchResult]:
        results = await self._search_relay(query)
        if results:
            return results

        results = await self._search_endpoints(query)
        if results:
            return results

        return [
            SearchResult(
                title=f"Search: {query}",
                url=MANUAL_SEARCH_URL.format(query=quote_plus(query)),
                snippet="Could not fetch search results. Open the link to search manually.",
            )
        ]

    async def _search_relay(self, query: str) -> list[SearchResult]:
        if self.relay is None:
            return []
        try:
            results = await self.relay.search(query)
        except RelayError as e:
            logger.warning("Relay search failed for %r: %s", query, e)
            return []
        return [
            r.model_copy(update={"snippet": r.snippet[: self.snippet_chars]})
            for r in results
            if r.url and not is_search_page(r.url)
        ][: self.max_results]

    async def _search_endpoints(self, query: str) -> list[SearchResult]:
        if not self.endpoints:
            return []
        if self._client is not None:
            return await self._query_endpoints(self._client, query)
        async with httpx.AsyncClient(follow_redirects=True) as client:
            return await self._query_endpoints(client, query)

    async def _query_endpoints(
        self, client: httpx.AsyncClient, query: str
    ) -> list[SearchResult]:
        for endpoint in self.endpoints:
            try:
                resp = await client.get(
                    endpoint,
                    params={"q": query, "format": "json"},
                    headers={"Accept": "application/json"},
                    timeout=self.timeout,
                )
                resp.raise_for_status()
                results = self._parse_endpoint_results(resp.json(), query)
            except (httpx.HTTPError, ValueError, TypeError) as e:
                logger.warning("Search endpoint %s failed: %s", endpoint, e)
                continue
            if results:
                return results
        return []

    def _parse_endpoint_results(self, data: Any, query: str) -> list[SearchResult]:
        if not isinstance(data, dict) or not isinstance(data.get("results"), list):
            return []
        results = []
        for item in data["results"][: self.max_results]:
            if not isinstance(item, dict):
                continue
            url = _text(item.get("url"))
            if not url or is_search_page(url):
                continue
            snippet = _text(item.get("content")) or _text(item.get("snippet"))
            results.append(
                SearchResult(
                    title=_text(item.get("title")) or query,
                    url=url,
                    snippet=snippet[: self.snippet_chars],
                )
            )
        return results


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""
