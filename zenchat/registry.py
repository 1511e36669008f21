"""Tool registry: name -> tool lookup and the catalogue shown to the model.

The catalogue is plain prompt text, not a schema the model is held to. The
extractor validates whatever the model writes back.
"""

from __future__ import annotations

from .tool import BaseTool

TOOL_USAGE_RULES = """\
### Rules
1. web_search returns several results, each with a title, URL and snippet.
2. For details, pick a concrete page URL from the results and call fetch_url on it.
3. Never call fetch_url on a search engine results page (bing.com/search, google.com/search).
4. Keep search queries short, e.g. "2024 holiday schedule", not a full sentence.
5. Snippets are usually enough to answer; do not fetch a page every time."""


class ToolRegistry:
    """In-memory registry of the tools available to the orchestrator."""

    def __init__(self, tools: list[BaseTool] | None = None) -> None:
        self._tools: dict[str, BaseTool] = {}
        for tool in tools or []:
            self.add(tool)

    def add(self, tool: BaseTool) -> None:
        """Register a tool instance, replacing any tool with the same name."""
        self._tools[tool.name] = tool

    def remove(self, name: str) -> None:
        self._tools.pop(name, None)

    def get(self, name: str) -> BaseTool | None:
        return self._tools.get(name)

    def list(self) -> list[BaseTool]:
        return list(self._tools.values())

    def list_ids(self) -> list[str]:
        return list(self._tools.keys())

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def describe(self) -> str:
        """Catalogue text for the system instruction. Empty when no tools are registered."""
        if not self._tools:
            return ""
        lines = [
            "## Available tools",
            "",
            "You can call a tool by writing a block in exactly this format:",
            "```tool",
            '{"name": "tool_name", "arguments": {"param": "value"}}',
            "```",
            "",
            "### Tools",
        ]
        for tool in self._tools.values():
            params = ", ".join(f"{p} ({hint})" for p, hint in tool.params.items())
            lines.append(f"- **{tool.name}**: {tool.description}. Parameters: {params}")
        lines.append("")
        lines.append(TOOL_USAGE_RULES)
        return "\n".join(lines)
