from __future__ import annotations

import logging

from .errors import UnknownToolError
from .models import ToolCall, ToolStatus
from .registry import ToolRegistry

logger = logging.getLogger(__name__)


class ToolExecutor:
    """Runs one tool call to a terminal status. Never raises.

    Tools report routine failures as text (status done). Only a missing tool or
    an exception escaping the tool ends in status error, with the exception
    message as the result.
    """

    def __init__(self, registry: ToolRegistry, max_result_chars: int = 5000):
        self.registry = registry
        self.max_result_chars = max_result_chars

    async def execute(self, call: ToolCall) -> ToolCall:
        """Advance `call` in place to done or error and return it."""
        if call.is_terminal:
            return call
        if call.status == ToolStatus.PENDING:
            call.mark_running()

        try:
            tool = self.registry.get(call.name)
            if tool is None:
                raise UnknownToolError(call.name)
            result = await tool.run(call)
        except Exception as e:
            logger.warning("Tool %s failed: %s", call.name, e)
            call.fail(str(e) or "execution failed")
        else:
            call.finish((result or "no output")[: self.max_result_chars])
        return call
