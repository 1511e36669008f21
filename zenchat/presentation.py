"""What the orchestrator tells the UI, and the cosmetic typing effect.

The sink only observes. reveal() reads an already-final string and never
touches the conversation, so a UI can cancel or skip it freely.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

from .models import Message


class PresentationSink:
    """Receives turn events. The base class ignores all of them."""

    def message_started(self, message: Message) -> None:
        """The placeholder assistant message was added to the conversation."""

    def tool_calls_updated(self, message: Message) -> None:
        """A tool call on `message` started or reached a terminal status."""

    def message_finalized(self, message: Message) -> None:
        """`message.content` holds the final answer or the error text."""


async def reveal(text: str, interval: float = 0.015) -> AsyncIterator[str]:
    """Yield growing prefixes of `text`, one character per `interval` seconds."""
    for i in range(1, len(text) + 1):
        yield text[:i]
        if interval > 0 and i < len(text):
            await asyncio.sleep(interval)
