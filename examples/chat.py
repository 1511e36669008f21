#!/usr/bin/env python3
"""Minimal console chat: one session, tools on, typed-out answers.

Run:
    pip install -e .
    export ZENCHAT_USE_CUSTOM_API=true ZENCHAT_API_KEY=sk-...   # optional
    python examples/chat.py

Type /new to start a new session, /tools to toggle tool use, /quit to leave.
"""

import asyncio
import logging

from zenchat import (
    Message,
    Orchestrator,
    OrchestratorContext,
    PresentationSink,
    Settings,
    reveal,
)


class ConsoleSink(PresentationSink):
    def message_started(self, message: Message) -> None:
        print("assistant: thinking...")

    def tool_calls_updated(self, message: Message) -> None:
        call = message.tool_calls[-1]
        print(f"  [{call.status.value}] {call.name} {call.arguments.model_dump()}")


async def main() -> None:
    settings = Settings()
    logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))

    orch = Orchestrator(settings, sink=ConsoleSink())
    ctx = OrchestratorContext(settings)
    print(f"assistant: {ctx.conversation.messages[0].content}")

    while True:
        user_input = (await asyncio.to_thread(input, "you: ")).strip()
        if user_input == "/quit":
            break
        if user_input == "/new":
            print(f"assistant: {ctx.new_session().content}")
            continue
        if user_input == "/tools":
            ctx.tools_enabled = not ctx.tools_enabled
            print(f"(tools {'on' if ctx.tools_enabled else 'off'})")
            continue
        if not user_input:
            continue

        result = await orch.run_turn(ctx, user_input)
        print("assistant: ", end="")
        async for shown in reveal(result.message.content, settings.reveal_interval):
            print(shown[-1], end="", flush=True)
        print()
        print(f"(context {ctx.budget().usage_percent}%)")


if __name__ == "__main__":
    asyncio.run(main())
