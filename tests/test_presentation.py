"""Tests for the presentation helpers."""

import asyncio

from zenchat.models import Conversation, Role
from zenchat.presentation import PresentationSink, reveal


async def _collect(text: str, interval: float = 0) -> list[str]:
    return [chunk async for chunk in reveal(text, interval)]


def test_reveal_yields_growing_prefixes():
    assert asyncio.run(_collect("abc")) == ["a", "ab", "abc"]


def test_reveal_empty_text():
    assert asyncio.run(_collect("")) == []


def test_reveal_can_stop_early():
    async def first_two():
        chunks = []
        async for chunk in reveal("hello", 0):
            chunks.append(chunk)
            if len(chunks) == 2:
                break
        return chunks

    assert asyncio.run(first_two()) == ["h", "he"]


def test_reveal_does_not_touch_message():
    conv = Conversation()
    message = conv.append(Role.ASSISTANT, "final answer")
    asyncio.run(_collect(message.content, 0.001))
    assert message.content == "final answer"


def test_base_sink_ignores_events():
    conv = Conversation()
    message = conv.append(Role.ASSISTANT, "")
    sink = PresentationSink()
    sink.message_started(message)
    sink.tool_calls_updated(message)
    sink.message_finalized(message)
    assert message.content == ""
