from __future__ import annotations

from abc import ABC, abstractmethod

from .models import ToolCall


class BaseTool(ABC):
    """Base class for all tools the model can call.

    Subclass this, set name, description and params, implement run().
    `params` maps each argument name to the hint shown to the model.
    """

    name: str = "base"
    description: str = ""
    params: dict[str, str] = {}

    @abstractmethod
    async def run(self, call: ToolCall) -> str:
        """Perform the action and return the text fed back to the model.

        Routine failures (network down, page unreachable) should be returned
        as explanatory text. Raise only when the tool itself is broken.
        """
        ...
