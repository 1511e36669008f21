from __future__ import annotations

import itertools
from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, PrivateAttr, TypeAdapter, field_validator

from .errors import InvalidTransitionError


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SUMMARY = "system-summary"


class Attachment(BaseModel):
    """A file the user attached to a message.

    Text attachments are forwarded to the model; images are kept for display only.
    """

    kind: Literal["image", "text"]
    name: str
    payload: str


class ToolStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    DONE = "done"
    ERROR = "error"


_ALLOWED_TRANSITIONS: dict[ToolStatus, tuple[ToolStatus, ...]] = {
    ToolStatus.PENDING: (ToolStatus.RUNNING,),
    ToolStatus.RUNNING: (ToolStatus.DONE, ToolStatus.ERROR),
    ToolStatus.DONE: (),
    ToolStatus.ERROR: (),
}


class _ToolCallBase(BaseModel):
    """Lifecycle shared by every tool call: pending -> running -> done | error.

    Terminal states are final. There are no retries at this layer.
    """

    status: ToolStatus = ToolStatus.PENDING
    result: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (ToolStatus.DONE, ToolStatus.ERROR)

    def _move(self, target: ToolStatus) -> None:
        if target not in _ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTransitionError(
                f"{self.status.value} -> {target.value} is not allowed"
            )
        self.status = target

    def mark_running(self) -> None:
        self._move(ToolStatus.RUNNING)

    def finish(self, result: str) -> None:
        self._move(ToolStatus.DONE)
        self.result = result

    def fail(self, reason: str) -> None:
        self._move(ToolStatus.ERROR)
        self.result = reason


class WebSearchArgs(BaseModel):
    query: str

    @field_validator("query")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("query must not be empty")
        return v


class FetchUrlArgs(BaseModel):
    url: str

    @field_validator("url")
    @classmethod
    def _http_only(cls, v: str) -> str:
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError("url must start with http:// or https://")
        return v


class WebSearchCall(_ToolCallBase):
    name: Literal["web_search"] = "web_search"
    arguments: WebSearchArgs


class FetchUrlCall(_ToolCallBase):
    name: Literal["fetch_url"] = "fetch_url"
    arguments: FetchUrlArgs


# Closed set of tool calls. Add a variant here to add a tool.
ToolCall = Annotated[Union[WebSearchCall, FetchUrlCall], Field(discriminator="name")]

tool_call_adapter: TypeAdapter[ToolCall] = TypeAdapter(ToolCall)


class Message(BaseModel):
    """One turn in the conversation. `content` never carries tool-call syntax."""

    id: int
    role: Role
    content: str = ""
    attachments: list[Attachment] = Field(default_factory=list)
    tool_calls: list[ToolCall] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.now)


class Conversation(BaseModel):
    """Ordered message history, append-only within a turn.

    The compressor may swap the whole list via replace(); messages themselves
    are never rewritten by it.
    """

    messages: list[Message] = Field(default_factory=list)
    _ids: itertools.count = PrivateAttr(default_factory=lambda: itertools.count(1))

    def model_post_init(self, __context) -> None:
        if self.messages:
            self._ids = itertools.count(max(m.id for m in self.messages) + 1)

    def new_message(self, role: Role, content: str = "", **kwargs) -> Message:
        """Create a message with the next id without adding it."""
        return Message(id=next(self._ids), role=role, content=content, **kwargs)

    def append(self, role: Role, content: str = "", **kwargs) -> Message:
        message = self.new_message(role, content, **kwargs)
        self.messages.append(message)
        return message

    def replace(self, messages: list[Message]) -> None:
        self.messages = list(messages)

    def reset(self, greeting: str) -> Message:
        self.messages = []
        return self.append(Role.ASSISTANT, greeting)

    def text(self) -> str:
        return "".join(m.content for m in self.messages)

    def __len__(self) -> int:
        return len(self.messages)


class ContextBudget(BaseModel):
    """Derived from the live conversation before every model call. Never persisted."""

    estimated_tokens: int = Field(ge=0)
    max_tokens: int = Field(gt=0)
    compression_threshold_ratio: float = Field(gt=0.0, le=1.0)

    @property
    def usage_ratio(self) -> float:
        return self.estimated_tokens / self.max_tokens

    @property
    def usage_percent(self) -> int:
        return min(100, round(self.usage_ratio * 100))

    def should_compress(self, length: int, min_length: int) -> bool:
        return self.usage_ratio > self.compression_threshold_ratio and length > min_length


class SearchResult(BaseModel):
    title: str
    url: str
    snippet: str = ""


class ModelParams(BaseModel):
    model: str
    temperature: float = 0.7
    max_tokens: int = 2000


class ModelRequest(BaseModel):
    """What the orchestrator sends to a model backend on each call."""

    question: str
    system_context: str = ""
    params: ModelParams


class TurnState(str, Enum):
    AWAITING_MODEL = "awaiting_model"
    PARSING = "parsing"
    EXECUTING_TOOLS = "executing_tools"
    FINALIZED = "finalized"
    ABORTED = "aborted"


class TurnResult(BaseModel):
    """Outcome of one user turn."""

    state: TurnState
    message: Message
    iterations: int = 0
    error: str | None = None
