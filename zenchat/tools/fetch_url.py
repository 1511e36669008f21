"""Fetch tool: page content through the network relay.

A failed fetch is routine, so every failure comes back as a placeholder the
model can keep reasoning with, never as an error.
"""

from __future__ import annotations

import logging

from ..errors import RelayError
from ..models import ToolCall
from ..relay import NetworkRelay
from ..tool import BaseTool

logger = logging.getLogger(__name__)


class FetchUrlTool(BaseTool):
    name = "fetch_url"
    description = "Fetch the text content of a web page"
    params = {"url": "a concrete page URL taken from search results"}

    def __init__(self, relay: NetworkRelay | None = None):
        self.relay = relay

    async def run(self, call: ToolCall) -> str:
        url = call.arguments.url
        if self.relay is None:
            return (
                f"[Link] {url}\n\nPage fetching is not available here. "
                "Open the link to read the full content."
            )
        try:
            content = await self.relay.fetch_url(url)
        except RelayError as e:
            logger.warning("Fetch failed for %s: %s", url, e)
            return f"[Link] {url}\nFetch failed ({e}). Open the link directly."
        return content or f"[Link] {url}\nNo content could be retrieved. Open the link directly."
