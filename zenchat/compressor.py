from __future__ import annotations

import logging
import math

from .models import ContextBudget, Conversation, Message, Role

logger = logging.getLogger(__name__)

CHARS_PER_TOKEN = 2


def estimate_tokens(text: str) -> int:
    """Approximate token count: 2 characters per token, rounded up.

    Only gates the compression threshold, so monotonic is good enough.
    """
    return math.ceil(len(text) / CHARS_PER_TOKEN)


class ContextCompressor:
    """Folds the middle of a long conversation into one summary message.

    Keeps the first message (the greeting) and the last `keep_recent` messages
    verbatim. Everything in between becomes a single `system-summary` message
    listing `role: <first N chars of content>` per folded message. Lossy on
    purpose: the model is never asked to summarize, so compression costs nothing
    against the same budget it is trying to protect.
    """

    def __init__(
        self,
        max_tokens: int = 128_000,
        threshold: float = 0.7,
        keep_recent: int = 4,
        min_length: int = 6,
        summary_chars: int = 100,
    ):
        self.max_tokens = max_tokens
        self.threshold = threshold
        self.keep_recent = keep_recent
        self.min_length = min_length
        self.summary_chars = summary_chars

    def budget(self, conversation: Conversation) -> ContextBudget:
        """Recompute the budget from the live conversation."""
        return ContextBudget(
            estimated_tokens=estimate_tokens(conversation.text()),
            max_tokens=self.max_tokens,
            compression_threshold_ratio=self.threshold,
        )

    def compress(self, conversation: Conversation) -> list[Message]:
        """Return the compressed history without touching `conversation`.

        No-op (returns the same messages) when nothing lies between the first
        message and the recent tail.
        """
        msgs = conversation.messages
        if len(msgs) <= self.keep_recent + 1:
            return list(msgs)

        first = msgs[0]
        middle = msgs[1 : -self.keep_recent]
        recent = msgs[-self.keep_recent :]

        summary = conversation.new_message(
            Role.SUMMARY, "\n".join(self._summarize(m) for m in middle)
        )
        return [first, summary, *recent]

    def maybe_compress(self, conversation: Conversation) -> ContextBudget:
        """Compress in place when over threshold. Returns the budget that was checked."""
        budget = self.budget(conversation)
        if not budget.should_compress(len(conversation), self.min_length):
            return budget

        before = len(conversation)
        conversation.replace(self.compress(conversation))
        logger.info(
            "Compressed conversation %d -> %d messages (%d%% of %d tokens)",
            before,
            len(conversation),
            budget.usage_percent,
            self.max_tokens,
        )
        return self.budget(conversation)

    def _summarize(self, message: Message) -> str:
        content = message.content
        if len(content) > self.summary_chars:
            content = content[: self.summary_chars] + "..."
        return f"{message.role.value}: {content}"
