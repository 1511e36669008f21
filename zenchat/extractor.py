"""Tool-call extraction from raw model replies.

Models request tools by writing a JSON object into their reply. One small
grammar is recognised:

    call   := fenced | object
    fenced := "```tool" [NEWLINE] object ( "```" | END )
    object := "{" "name" ":" ... "}"   JSON, or JSON written with single quotes,
                                       carrying the keys "name" and "arguments"

Fenced blocks are matched first and always removed from the visible text, even
when their payload is broken. A block left open by a truncated reply runs to the
end of the text. Unfenced objects are then matched on what is left and removed
when they carry both keys, together with a code fence that held nothing else.
Payloads that fail validation are reported on the result instead of raised.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from .models import ToolCall, tool_call_adapter

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```tool\b[ \t]*\r?\n?(.*?)```", re.DOTALL)
_OPEN_FENCE_RE = re.compile(r"```tool\b(.*)\Z", re.DOTALL)
_OPENER_TAIL_RE = re.compile(r"```[\w-]*[ \t]*\r?\n?[ \t]*\Z")
_CLOSER_HEAD_RE = re.compile(r"\s*```")
_OBJECT_START_RE = re.compile(r"""\{\s*["']name["']\s*:""")
_BLANK_LINES_RE = re.compile(r"\n{3,}")


class ExtractionIssue(BaseModel):
    """A tool-call-shaped fragment that could not be turned into a ToolCall."""

    snippet: str
    reason: str


class ExtractionResult(BaseModel):
    visible_text: str
    tool_calls: list[ToolCall] = Field(default_factory=list)
    issues: list[ExtractionIssue] = Field(default_factory=list)

    @property
    def is_degenerate(self) -> bool:
        """No text and no tool calls: the reply was empty or truncated."""
        return not self.visible_text and not self.tool_calls


def extract_tool_calls(reply: str) -> ExtractionResult:
    """Split a raw model reply into visible text and requested tool calls.

    Only the first call per tool name is kept; later ones are stripped from the
    text and dropped.
    """
    collector = _Collector()

    for match in _FENCE_RE.finditer(reply):
        raw = match.group(1).strip()
        collector.add(_load_object(raw), raw)
    text = _FENCE_RE.sub("", reply)

    # A reply cut off inside a tool block leaves the fence open to the end.
    dangling = _OPEN_FENCE_RE.search(text)
    if dangling:
        raw = dangling.group(1).strip()
        end = _object_end(raw, 0) if raw.startswith("{") else None
        collector.add(_load_object(raw[:end]) if end is not None else None, raw)
        text = text[: dangling.start()]

    kept: list[str] = []
    pos = 0
    while True:
        match = _OBJECT_START_RE.search(text, pos)
        if match is None:
            break
        start = match.start()
        end = _object_end(text, start)
        obj = _load_object(text[start:end]) if end is not None else None
        if not _is_call_shaped(obj):
            kept.append(text[pos : start + 1])
            pos = start + 1
            continue
        collector.add(obj, text[start:end])
        before = text[pos:start]
        opener = _OPENER_TAIL_RE.search(before)
        closer = _CLOSER_HEAD_RE.match(text, end)
        if opener and closer:
            # The call sat alone in a code fence; drop the emptied fence too.
            before = before[: opener.start()]
            end = closer.end()
        kept.append(before)
        pos = end
    kept.append(text[pos:])

    visible = _BLANK_LINES_RE.sub("\n\n", "".join(kept)).strip()
    return ExtractionResult(
        visible_text=visible,
        tool_calls=collector.calls,
        issues=collector.issues,
    )


class _Collector:
    def __init__(self) -> None:
        self.calls: list[ToolCall] = []
        self.issues: list[ExtractionIssue] = []
        self._seen: set[str] = set()

    def add(self, obj: Any, raw: str) -> None:
        if not _is_call_shaped(obj):
            self._issue(raw, "not a JSON object with name and arguments")
            return
        try:
            call = tool_call_adapter.validate_python(
                {"name": obj["name"], "arguments": obj["arguments"]}
            )
        except ValidationError as e:
            first = e.errors()[0]
            self._issue(raw, f"invalid tool call: {first['msg']}")
            return
        if call.name in self._seen:
            logger.debug("Dropping repeated %s call", call.name)
            return
        self._seen.add(call.name)
        self.calls.append(call)

    def _issue(self, raw: str, reason: str) -> None:
        logger.debug("Dropping tool syntax (%s): %.200s", reason, raw)
        self.issues.append(ExtractionIssue(snippet=raw[:200], reason=reason))


def _is_call_shaped(obj: Any) -> bool:
    return isinstance(obj, dict) and "name" in obj and "arguments" in obj


def _load_object(raw: str) -> Any:
    """Parse JSON, retrying with single quotes normalised to double quotes."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        pass
    try:
        return json.loads(raw.replace("'", '"'))
    except json.JSONDecodeError:
        return None


def _object_end(text: str, start: int) -> int | None:
    """Index just past the brace that closes the object opened at `start`."""
    depth = 0
    quote: str | None = None
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if quote:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == quote:
                quote = None
            continue
        if ch in "\"'":
            quote = ch
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i + 1
    return None
