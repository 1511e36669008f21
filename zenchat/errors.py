"""Exception hierarchy for zenchat."""

from __future__ import annotations


class ZenChatError(Exception):
    """Base class for every error raised by zenchat."""


class ModelRequestError(ZenChatError):
    """The model endpoint could not be reached or answered with a failure."""


class RelayError(ZenChatError):
    """The network relay failed to search or fetch."""


class UnknownToolError(ZenChatError):
    """No tool is registered under the requested name."""

    def __init__(self, name: str):
        super().__init__(f"Unknown tool: {name}")
        self.name = name


class TurnInProgressError(ZenChatError):
    """A user turn was submitted while another turn is still running."""


class InvalidTransitionError(ZenChatError):
    """A tool call was moved to a status its lifecycle does not allow."""
