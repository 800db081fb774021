"""OpenAI-compatible chat completions streaming dialect.

Used for OpenAI and the providers that speak its wire format (OpenRouter,
DeepSeek, xAI, Groq).

- ``choices[0].delta.content`` becomes a ``TokenDelta``.
- ``choices[0].delta.refusal`` surfaces as a ``MessagePart``.
- ``choices[0].delta.tool_calls`` open and extend tool calls by ``index``;
  ``finish_reason == "tool_calls"`` (or the end of the stream) closes them.
- ``choices[0].message.content`` (sent by some gateways on the last chunk) is
  kept as the final text and reconciled at ``[DONE]``.
- ``usage`` (``stream_options.include_usage``) is merged into the final usage.
- A top-level ``error`` object is an upstream failure.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional

from ....errors import ErrorCode, ProtocolError
from ....models import TokenUsage
from ...events import MessagePart, TokenDelta, ToolCallDelta, ToolCallReady, ToolCallStarted
from ..base import AdapterItem, Terminal, UsageUpdate
from .base import SseDialect, int_or_none


@dataclass
class _ToolCall:
    tool_call_id: str
    tool_name: str
    args: List[str] = field(default_factory=list)


@dataclass
class OpenAIState:
    tools: Dict[int, _ToolCall] = field(default_factory=dict)
    final_text: Optional[str] = None


class OpenAISseDialect(SseDialect):
    name = "openai"

    def new_state(self) -> OpenAIState:
        return OpenAIState()

    def translate(self, state: OpenAIState, data: Mapping[str, Any]) -> Iterator[AdapterItem]:
        if data.get("error"):
            raise self.upstream_error(data["error"])
        usage = self.section(data, "usage")
        if usage:
            yield UsageUpdate(
                TokenUsage(
                    input_tokens=int_or_none(usage.get("prompt_tokens")),
                    output_tokens=int_or_none(usage.get("completion_tokens")),
                )
            )
        choices = data.get("choices") or []
        if not isinstance(choices, list):
            raise ProtocolError(code=ErrorCode.PROTOCOL, message="choices is not a list")
        if not choices or not isinstance(choices[0], Mapping):
            return
        choice = choices[0]
        delta = self.section(choice, "delta")
        content = delta.get("content")
        if isinstance(content, str) and content:
            yield TokenDelta(delta=content)
        refusal = delta.get("refusal")
        if isinstance(refusal, str) and refusal:
            yield MessagePart(part={"type": "refusal", "text": refusal})
        calls = delta.get("tool_calls") or []
        if not isinstance(calls, list):
            raise ProtocolError(code=ErrorCode.PROTOCOL, message="tool_calls is not a list")
        for call in calls:
            yield from self._tool_call(state, call)
        message = self.section(choice, "message")
        if isinstance(message.get("content"), str):
            state.final_text = message["content"]
        if choice.get("finish_reason") == "tool_calls":
            yield from self._close_tools(state)

    def on_done(self, state: OpenAIState) -> Iterator[AdapterItem]:
        yield from self._close_tools(state)
        yield Terminal(final_text=state.final_text)

    def on_eof(self, state: OpenAIState) -> Iterator[AdapterItem]:
        yield from self._close_tools(state)

    def _tool_call(self, state: OpenAIState, call: Any) -> Iterator[AdapterItem]:
        if not isinstance(call, Mapping):
            return
        index = self.index_of(call)
        fn = self.section(call, "function")
        fragment = fn.get("arguments") or ""
        if not isinstance(fragment, str):
            raise ProtocolError(code=ErrorCode.PROTOCOL, message="tool arguments are not a string")
        tool = state.tools.get(index)
        if tool is None:
            tool = _ToolCall(tool_call_id=str(call.get("id") or f"call_{index}"), tool_name=str(fn.get("name") or ""))
            state.tools[index] = tool
            if fragment:
                tool.args.append(fragment)
            yield ToolCallStarted(tool_call_id=tool.tool_call_id, tool_name=tool.tool_name, args_partial=fragment)
            return
        if fn.get("name") and not tool.tool_name:
            tool.tool_name = str(fn["name"])
        if fragment:
            tool.args.append(fragment)
            yield ToolCallDelta(tool_call_id=tool.tool_call_id, tool_name=tool.tool_name, args_delta=fragment)

    def _close_tools(self, state: OpenAIState) -> Iterator[AdapterItem]:
        for index in sorted(state.tools):
            tool = state.tools[index]
            yield ToolCallReady(
                tool_call_id=tool.tool_call_id,
                tool_name=tool.tool_name,
                args_final=self.parse_arguments("".join(tool.args)),
            )
        state.tools.clear()


__all__ = ["OpenAISseDialect", "OpenAIState"]
