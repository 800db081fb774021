"""Anthropic Messages API streaming dialect.

Event vocabulary handled:

``message_start``
    Input token usage.
``content_block_start``
    ``tool_use`` opens a tool call; ``*_tool_result`` blocks surface as
    ``ToolResult``; other non-text blocks surface as ``MessagePart``.
``content_block_delta``
    ``text_delta`` (or any delta with ``text``) becomes a ``TokenDelta``;
    ``input_json_delta`` extends the open tool call.
``content_block_stop``
    Closes a tool call (``ToolCallReady`` with parsed arguments).
``message_delta``
    Output token usage.
``message_stop``
    Terminal. A ``message`` object repeated on it is reconciled.
``error``
    Upstream failure.
``ping``
    Keep-alive, ignored.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional

from ....errors import ErrorCode, ProtocolError
from ....models import TokenUsage
from ...events import MessagePart, TokenDelta, ToolCallDelta, ToolCallReady, ToolCallStarted, ToolResult
from ..base import AdapterItem, Terminal, UsageUpdate
from .base import SseDialect, int_or_none


@dataclass
class _ToolBlock:
    tool_call_id: str
    tool_name: str
    args: List[str] = field(default_factory=list)


@dataclass
class AnthropicState:
    tools: Dict[int, _ToolBlock] = field(default_factory=dict)


def _message_text(message: Any) -> Optional[str]:
    if not isinstance(message, Mapping):
        return None
    content = message.get("content")
    if not isinstance(content, list):
        return None
    texts = [
        b["text"] for b in content
        if isinstance(b, Mapping) and b.get("type") == "text" and isinstance(b.get("text"), str)
    ]
    return "".join(texts) if texts else None


class AnthropicSseDialect(SseDialect):
    name = "anthropic"

    def new_state(self) -> AnthropicState:
        return AnthropicState()

    def translate(self, state: AnthropicState, data: Mapping[str, Any]) -> Iterator[AdapterItem]:
        kind = data.get("type")
        if kind == "content_block_delta":
            yield from self._block_delta(state, data)
        elif kind == "content_block_start":
            yield from self._block_start(state, data)
        elif kind == "content_block_stop":
            block = state.tools.pop(self.index_of(data), None)
            if block is not None:
                yield ToolCallReady(
                    tool_call_id=block.tool_call_id,
                    tool_name=block.tool_name,
                    args_final=self.parse_arguments("".join(block.args)),
                )
        elif kind == "message_start":
            usage = self.section(self.section(data, "message"), "usage")
            tokens = int_or_none(usage.get("input_tokens"))
            if tokens is not None:
                yield UsageUpdate(TokenUsage(input_tokens=tokens))
        elif kind == "message_delta":
            usage = self.section(data, "usage")
            tokens = int_or_none(usage.get("output_tokens"))
            if tokens is not None:
                yield UsageUpdate(TokenUsage(output_tokens=tokens))
        elif kind == "message_stop":
            yield Terminal(final_text=_message_text(data.get("message")), raw=dict(data))
        elif kind == "error":
            raise self.upstream_error(data.get("error") or data)
        # ping and unknown event types carry nothing

    def _block_start(self, state: AnthropicState, data: Mapping[str, Any]) -> Iterator[AdapterItem]:
        block = self.section(data, "content_block")
        btype = block.get("type")
        if btype == "text":
            if isinstance(block.get("text"), str) and block["text"]:
                yield TokenDelta(delta=block["text"])
        elif btype == "tool_use":
            index = self.index_of(data)
            tool = _ToolBlock(tool_call_id=str(block.get("id") or f"toolu_{index}"), tool_name=str(block.get("name") or ""))
            state.tools[index] = tool
            yield ToolCallStarted(tool_call_id=tool.tool_call_id, tool_name=tool.tool_name)
        elif isinstance(btype, str) and btype.endswith("tool_result"):
            yield ToolResult(
                tool_call_id=str(block.get("tool_use_id") or ""),
                tool_name=btype,
                result=block.get("content"),
            )
        elif btype:
            yield MessagePart(part=dict(block))

    def _block_delta(self, state: AnthropicState, data: Mapping[str, Any]) -> Iterator[AdapterItem]:
        delta = self.section(data, "delta")
        if delta.get("type") == "input_json_delta":
            tool = state.tools.get(self.index_of(data))
            fragment = delta.get("partial_json") or ""
            if not isinstance(fragment, str):
                raise ProtocolError(code=ErrorCode.PROTOCOL, message="partial_json is not a string")
            if tool is not None and fragment:
                tool.args.append(fragment)
                yield ToolCallDelta(tool_call_id=tool.tool_call_id, tool_name=tool.tool_name, args_delta=fragment)
            return
        text = delta.get("text")
        if isinstance(text, str) and text:
            yield TokenDelta(delta=text)


__all__ = ["AnthropicSseDialect", "AnthropicState"]
