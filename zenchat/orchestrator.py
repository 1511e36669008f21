from __future__ import annotations

import logging
from datetime import datetime

from .backends import ModelBackend, create_backend
from .compressor import ContextCompressor
from .config import GREETING, Settings
from .errors import ModelRequestError, TurnInProgressError
from .executor import ToolExecutor
from .extractor import extract_tool_calls
from .models import (
    Attachment,
    ContextBudget,
    Conversation,
    Message,
    ModelParams,
    ModelRequest,
    Role,
    ToolCall,
    TurnResult,
    TurnState,
)
from .presentation import PresentationSink
from .registry import ToolRegistry
from .relay import HttpRelay, NetworkRelay
from .tools import FetchUrlTool, WebSearchTool

logger = logging.getLogger(__name__)

TRUNCATED_NOTICE = "[The response was truncated. Try simplifying the question or retry.]"
ITERATION_LIMIT_NOTICE = "[Stopped after reaching the tool-call limit without a final answer.]"
LAST_CHANCE_NOTICE = (
    "[System notice] This is your last chance to use a tool. "
    "After this step no more tools will run."
)
FINAL_STEP_NOTICE = (
    "[System notice] No more tools will run. "
    "Answer the user now from the information you already have."
)
CONTINUE_INSTRUCTION = (
    "Continue answering the user's question based on these results. "
    "If the information is sufficient, answer directly without calling more tools."
)


class OrchestratorContext:
    """Everything one chat session owns: conversation, settings and the tool toggle.

    Created and held by the caller and passed into every turn. A context runs
    at most one turn at a time; a second concurrent turn is rejected.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        conversation: Conversation | None = None,
    ):
        self.settings = settings or Settings()
        self.tools_enabled = self.settings.tools_enabled
        self.conversation = conversation if conversation is not None else Conversation()
        if not self.conversation.messages:
            self.conversation.reset(GREETING)
        self.compressor = ContextCompressor(
            max_tokens=self.settings.max_context_tokens,
            threshold=self.settings.compress_threshold,
            keep_recent=self.settings.keep_recent,
            min_length=self.settings.min_compress_length,
            summary_chars=self.settings.summary_chars,
        )
        self._busy = False
        self.state: TurnState | None = None

    @property
    def busy(self) -> bool:
        return self._busy

    def begin_turn(self) -> None:
        if self._busy:
            raise TurnInProgressError("a turn is already running for this conversation")
        self._busy = True

    def end_turn(self) -> None:
        self._busy = False

    def budget(self) -> ContextBudget:
        return self.compressor.budget(self.conversation)

    def new_session(self) -> Message:
        """Discard the conversation and start over from the greeting."""
        if self._busy:
            raise TurnInProgressError("cannot reset while a turn is running")
        return self.conversation.reset(GREETING)


def build_followup(
    calls: list[ToolCall], last_chance: bool = False, final: bool = False
) -> str:
    """Instruction for the next model call, carrying this round's tool results."""
    results = "\n\n".join(
        f'Tool "{call.name}" result:\n{call.result or "no output"}' for call in calls
    )
    text = f"[Tool results]\n{results}\n\n{CONTINUE_INSTRUCTION}"
    if final:
        text += f"\n\n{FINAL_STEP_NOTICE}"
    elif last_chance:
        text += f"\n\n{LAST_CHANCE_NOTICE}"
    return text


class Orchestrator:
    """Drives one user turn: ask the model, run the tools it requests, repeat.

    This is the entire API surface:
        orch = Orchestrator()
        ctx = OrchestratorContext()
        result = await orch.run_turn(ctx, "weather in Tokyo?")
        print(result.message.content)

    Every failure is resolved inside the turn. The only exception run_turn()
    raises is TurnInProgressError, before anything is changed.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        backend: ModelBackend | None = None,
        registry: ToolRegistry | None = None,
        relay: NetworkRelay | None = None,
        sink: PresentationSink | None = None,
    ):
        settings = settings or Settings()
        self.backend = backend or create_backend(settings)
        if registry is None:
            registry = self._default_registry(settings, relay)
        self.registry = registry
        self.executor = ToolExecutor(
            self.registry, max_result_chars=settings.tool_result_max_chars
        )
        self.sink = sink or PresentationSink()

    @staticmethod
    def _default_registry(settings: Settings, relay: NetworkRelay | None) -> ToolRegistry:
        relay = relay or HttpRelay(
            max_results=settings.search_max_results,
            snippet_chars=settings.snippet_chars,
            fetch_timeout=settings.fetch_timeout,
            fetch_max_chars=settings.fetch_max_chars,
        )
        return ToolRegistry(
            [
                WebSearchTool(
                    relay,
                    settings.search_endpoints,
                    timeout=settings.search_timeout,
                    max_results=settings.search_max_results,
                    snippet_chars=settings.snippet_chars,
                ),
                FetchUrlTool(relay),
            ]
        )

    async def run_turn(
        self,
        ctx: OrchestratorContext,
        user_input: str,
        attachments: list[Attachment] | None = None,
    ) -> TurnResult:
        """Run one user turn to Finalized or Aborted."""
        ctx.begin_turn()
        try:
            return await self._run(ctx, user_input, attachments or [])
        finally:
            ctx.end_turn()

    async def _run(
        self,
        ctx: OrchestratorContext,
        user_input: str,
        attachments: list[Attachment],
    ) -> TurnResult:
        settings = ctx.settings
        conv = ctx.conversation
        user_msg = conv.append(Role.USER, user_input, attachments=attachments)
        assistant = conv.append(Role.ASSISTANT, "")
        self.sink.message_started(assistant)
        logger.info(
            "Turn started (message %d, tools %s)",
            user_msg.id,
            "on" if ctx.tools_enabled else "off",
        )

        params = ModelParams(
            model=settings.model,
            temperature=settings.temperature,
            max_tokens=settings.max_tokens,
        )
        question = user_input
        remaining = settings.max_iterations
        iterations = 0
        last_text = ""

        try:
            while remaining > 0:
                remaining -= 1
                iterations += 1
                ctx.state = TurnState.AWAITING_MODEL

                budget = ctx.compressor.maybe_compress(conv)
                request = ModelRequest(
                    question=question,
                    system_context=self._compose_context(ctx, budget, user_msg, assistant),
                    params=params,
                )
                reply = await self.backend.complete(request)

                ctx.state = TurnState.PARSING
                extraction = extract_tool_calls(reply)
                last_text = extraction.visible_text
                calls = extraction.tool_calls if ctx.tools_enabled else []
                if not calls:
                    return self._finalize(
                        ctx, assistant, last_text or TRUNCATED_NOTICE, iterations
                    )
                if remaining == 0:
                    break

                ctx.state = TurnState.EXECUTING_TOOLS
                for call in calls:
                    assistant.tool_calls.append(call)
                    call.mark_running()
                    self.sink.tool_calls_updated(assistant)
                    await self.executor.execute(call)
                    self.sink.tool_calls_updated(assistant)

                # remaining counts the model calls still allowed, the next one included.
                question = build_followup(
                    calls, last_chance=remaining == 2, final=remaining == 1
                )

            logger.warning("Tool loop reached max_iterations=%d", settings.max_iterations)
            return self._finalize(
                ctx, assistant, last_text or ITERATION_LIMIT_NOTICE, iterations
            )

        except ModelRequestError as e:
            logger.error("Model request failed: %s", e)
            return self._abort(ctx, assistant, str(e), iterations)
        except Exception as e:
            logger.exception("Turn failed")
            return self._abort(ctx, assistant, str(e) or type(e).__name__, iterations)

    def _compose_context(
        self,
        ctx: OrchestratorContext,
        budget: ContextBudget,
        user_msg: Message,
        assistant: Message,
    ) -> str:
        settings = ctx.settings
        history = [
            m for m in ctx.conversation.messages
            if m.id not in (user_msg.id, assistant.id) and m.content
        ]
        user_turns = sum(1 for m in history if m.role == Role.USER)

        now = datetime.now()
        parts = [
            settings.base_prompt,
            f"[Current time] {now:%Y-%m-%d %H:%M}\n"
            f"[Status] Context usage: {budget.usage_percent}%, turns so far: {user_turns}",
        ]
        if ctx.tools_enabled:
            parts.append(self.registry.describe())

        text_attachments = [a for a in user_msg.attachments if a.kind == "text"]
        if text_attachments:
            files = "\n\n".join(f"[Attachment: {a.name}]\n{a.payload}" for a in text_attachments)
            parts.append(f"[Uploaded files]\n{files}")

        excerpt = history[-settings.history_excerpt:] if settings.history_excerpt else []
        if excerpt:
            lines = "\n".join(f"{m.role.value}: {m.content}" for m in excerpt)
            parts.append(f"[Conversation history]\n{lines}")

        return "\n\n".join(p for p in parts if p)

    def _finalize(
        self, ctx: OrchestratorContext, assistant: Message, content: str, iterations: int
    ) -> TurnResult:
        ctx.state = TurnState.FINALIZED
        assistant.content = content
        self.sink.message_finalized(assistant)
        logger.info("Turn finalized after %d model call(s)", iterations)
        return TurnResult(state=TurnState.FINALIZED, message=assistant, iterations=iterations)

    def _abort(
        self,
        ctx: OrchestratorContext,
        assistant: Message,
        reason: str,
        iterations: int,
    ) -> TurnResult:
        ctx.state = TurnState.ABORTED
        text = f"request failed: {reason}"
        if not assistant.content:
            assistant.content = text
            message = assistant
        else:
            message = ctx.conversation.append(Role.ASSISTANT, text)
        self.sink.message_finalized(message)
        return TurnResult(
            state=TurnState.ABORTED, message=message, iterations=iterations, error=reason
        )
