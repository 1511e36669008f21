"""Network relay: the component that performs cross-origin requests for tools.

`NetworkRelay` is the interface the tools depend on. `HttpRelay` implements it
with httpx: search scrapes DuckDuckGo's HTML endpoint (no API key needed) and
fetch extracts readable text from a page.
"""

from __future__ import annotations

import html as html_module
import logging
import re
from abc import ABC, abstractmethod
from urllib.parse import unquote

import httpx

from .errors import RelayError
from .models import SearchResult

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
DUCKDUCKGO_HTML_URL = "https://html.duckduckgo.com/html/"

_RESULT_LINK_RE = re.compile(
    r'<a[^>]*class="result__a"[^>]*href="([^"]+)"[^>]*>(.*?)</a>', re.DOTALL
)
_RESULT_SNIPPET_RE = re.compile(
    r'<a[^>]*class="result__snippet"[^>]*>(.*?)</a>', re.DOTALL
)
_UDDG_RE = re.compile(r"uddg=([^&]+)")
_TITLE_RE = re.compile(r"<title[^>]*>([^<]+)</title>", re.IGNORECASE)
_META_DESC_RE = re.compile(
    r"""<meta[^>]*name=["']description["'][^>]*content=["']([^"']+)["']""",
    re.IGNORECASE,
)


class NetworkRelay(ABC):
    """Privileged collaborator that reaches the network on the tools' behalf.

    Implementations raise RelayError when they cannot serve a request.
    """

    @abstractmethod
    async def search(self, query: str) -> list[SearchResult]:
        ...

    @abstractmethod
    async def fetch_url(self, url: str) -> str:
        ...


class HttpRelay(NetworkRelay):
    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        max_results: int = 5,
        snippet_chars: int = 150,
        fetch_timeout: float = 15.0,
        fetch_max_chars: int = 8000,
    ):
        self._client = client
        self.max_results = max_results
        self.snippet_chars = snippet_chars
        self.fetch_timeout = fetch_timeout
        self.fetch_max_chars = fetch_max_chars

    async def search(self, query: str) -> list[SearchResult]:
        page = await self._get(
            DUCKDUCKGO_HTML_URL,
            params={"q": query},
            headers={"User-Agent": USER_AGENT, "Accept": "text/html"},
        )
        results = self._parse_results(page)
        logger.debug("DuckDuckGo returned %d results for %r", len(results), query)
        return results

    async def fetch_url(self, url: str) -> str:
        page = await self._get(
            url,
            headers={
                "User-Agent": USER_AGENT,
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            },
        )
        title_match = _TITLE_RE.search(page)
        title = html_module.unescape(title_match.group(1)).strip() if title_match else ""
        desc_match = _META_DESC_RE.search(page)
        description = html_module.unescape(desc_match.group(1)).strip() if desc_match else ""
        content = extract_readable(page)[: self.fetch_max_chars]

        lines = [f"Title: {title}"]
        if description:
            lines.append(f"Description: {description}")
        lines.append("")
        lines.append(f"Content:\n{content}")
        return "\n".join(lines)

    async def _get(self, url: str, **kwargs) -> str:
        try:
            if self._client is not None:
                response = await self._client.get(url, timeout=self.fetch_timeout, **kwargs)
            else:
                async with httpx.AsyncClient(follow_redirects=True) as client:
                    response = await client.get(url, timeout=self.fetch_timeout, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise RelayError(f"HTTP {e.response.status_code} from {url}") from e
        except httpx.HTTPError as e:
            raise RelayError(f"Could not reach {url}: {e}") from e
        return response.text

    def _parse_results(self, page: str) -> list[SearchResult]:
        links: list[tuple[str, str]] = []
        for href, title in _RESULT_LINK_RE.findall(page):
            url = html_module.unescape(href)
            if url.startswith("//duckduckgo.com/l/?"):
                uddg = _UDDG_RE.search(url)
                if uddg:
                    url = unquote(uddg.group(1))
            if url.startswith("http") and "duckduckgo.com" not in url:
                links.append((url, _strip_html(title)))
            if len(links) >= self.max_results:
                break

        snippets = [
            _strip_html(s)[: self.snippet_chars]
            for s in _RESULT_SNIPPET_RE.findall(page)[: self.max_results]
        ]
        return [
            SearchResult(
                title=title,
                url=url,
                snippet=snippets[i] if i < len(snippets) else "",
            )
            for i, (url, title) in enumerate(links)
        ]


def extract_readable(html: str) -> str:
    """Extract readable text from HTML using stdlib."""
    text = re.sub(
        r"<(script|style|noscript|nav|header|footer|aside)[^>]*>.*?</\1>",
        "",
        html,
        flags=re.DOTALL | re.IGNORECASE,
    )
    text = re.sub(r"<!--.*?-->", "", text, flags=re.DOTALL)
    text = re.sub(r"<[^>]+>", " ", text)
    text = html_module.unescape(text)
    return re.sub(r"\s+", " ", text).strip()


def _strip_html(text: str) -> str:
    return html_module.unescape(re.sub(r"<[^>]+>", "", text)).strip()
