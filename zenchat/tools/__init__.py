"""Built-in tools the model can call."""

from .fetch_url import FetchUrlTool
from .web_search import WebSearchTool

__all__ = ["FetchUrlTool", "WebSearchTool"]
