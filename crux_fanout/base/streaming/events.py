"""Unified stream event model.

Defines a closed, discriminated union of frozen dataclasses representing every
event a provider stream can produce once its wire protocol has been
normalized. These types are the contract between the provider adapters, the
stream controller and the orchestrator.

Ordering invariants (enforced by adapters and the controller, not here):
- no event follows ``Complete`` or ``Error``;
- ``FinalMessage`` precedes ``Complete``;
- ``TokenDelta`` text is never re-sent after it was emitted.

``dispatch_event`` is the single place that branches on the variant. Its
``match`` ends in ``assert_never`` so a type checker flags every consumer the
moment a new variant is added.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Literal, Mapping, Optional, Union, assert_never

from ..errors import StreamFailure
from ..models import TokenUsage


def _now() -> float:
    return time.time()


@dataclass(frozen=True, kw_only=True)
class TokenDelta:
    """A chunk of assistant text, in arrival order."""

    type: Literal["token_delta"] = "token_delta"
    delta: str
    provider: str = ""
    timestamp: float = field(default_factory=_now)


@dataclass(frozen=True, kw_only=True)
class MessagePart:
    """A non-text content part (image reference, refusal, provider block)."""

    type: Literal["message_part"] = "message_part"
    part: Union[str, Mapping[str, Any]]
    provider: str = ""
    timestamp: float = field(default_factory=_now)


@dataclass(frozen=True, kw_only=True)
class ToolCallStarted:
    """The model began a tool call."""

    type: Literal["tool_call_started"] = "tool_call_started"
    tool_call_id: str
    tool_name: str
    args_partial: str = ""
    provider: str = ""
    timestamp: float = field(default_factory=_now)


@dataclass(frozen=True, kw_only=True)
class ToolCallDelta:
    """A fragment of a tool call's JSON arguments."""

    type: Literal["tool_call_delta"] = "tool_call_delta"
    tool_call_id: str
    tool_name: str
    args_delta: str
    provider: str = ""
    timestamp: float = field(default_factory=_now)


@dataclass(frozen=True, kw_only=True)
class ToolCallReady:
    """A tool call whose arguments are complete and parsed."""

    type: Literal["tool_call_ready"] = "tool_call_ready"
    tool_call_id: str
    tool_name: str
    args_final: Mapping[str, Any] = field(default_factory=dict)
    provider: str = ""
    timestamp: float = field(default_factory=_now)


@dataclass(frozen=True, kw_only=True)
class ToolResult:
    """Result of executing a tool call, reported back into the stream."""

    type: Literal["tool_result"] = "tool_result"
    tool_call_id: str
    tool_name: str
    result: Any = None
    provider: str = ""
    timestamp: float = field(default_factory=_now)


@dataclass(frozen=True, kw_only=True)
class FinalMessage:
    """The full assistant text; exactly one per successful stream."""

    type: Literal["final_message"] = "final_message"
    text: str
    usage: Optional[TokenUsage] = None
    raw: Optional[Mapping[str, Any]] = None
    provider: str = ""
    timestamp: float = field(default_factory=_now)


@dataclass(frozen=True, kw_only=True)
class Error:
    """Terminal failure; nothing follows it."""

    type: Literal["error"] = "error"
    cause: StreamFailure
    provider: str = ""
    timestamp: float = field(default_factory=_now)


@dataclass(frozen=True, kw_only=True)
class Complete:
    """Terminal success marker; nothing follows it."""

    type: Literal["complete"] = "complete"
    provider: str = ""
    timestamp: float = field(default_factory=_now)


# Discriminated union of all stream event types
UnifiedStreamEvent = Union[
    TokenDelta,
    MessagePart,
    ToolCallStarted,
    ToolCallDelta,
    ToolCallReady,
    ToolResult,
    FinalMessage,
    Error,
    Complete,
]

TERMINAL_EVENT_TYPES = (Error, Complete)


def is_terminal(event: UnifiedStreamEvent) -> bool:
    """Return True for ``Error`` and ``Complete``."""
    return isinstance(event, TERMINAL_EVENT_TYPES)


Handler = Callable[[Any], Any]


@dataclass
class StreamEventHandlers:
    """Per-variant handlers for :func:`dispatch_event`.

    Every handler is optional; unhandled variants fall through to ``default``
    (which itself defaults to doing nothing).
    """

    on_token_delta: Optional[Handler] = None
    on_message_part: Optional[Handler] = None
    on_tool_call_started: Optional[Handler] = None
    on_tool_call_delta: Optional[Handler] = None
    on_tool_call_ready: Optional[Handler] = None
    on_tool_result: Optional[Handler] = None
    on_final_message: Optional[Handler] = None
    on_error: Optional[Handler] = None
    on_complete: Optional[Handler] = None
    default: Optional[Handler] = None


def dispatch_event(event: UnifiedStreamEvent, handlers: StreamEventHandlers) -> Any:
    """Route ``event`` to the matching handler and return its result.

    Raises ``AssertionError`` (via ``assert_never``) for objects outside the union.
    """
    match event:
        case TokenDelta():
            handler = handlers.on_token_delta
        case MessagePart():
            handler = handlers.on_message_part
        case ToolCallStarted():
            handler = handlers.on_tool_call_started
        case ToolCallDelta():
            handler = handlers.on_tool_call_delta
        case ToolCallReady():
            handler = handlers.on_tool_call_ready
        case ToolResult():
            handler = handlers.on_tool_result
        case FinalMessage():
            handler = handlers.on_final_message
        case Error():
            handler = handlers.on_error
        case Complete():
            handler = handlers.on_complete
        case _:
            assert_never(event)
    handler = handler or handlers.default
    return handler(event) if handler is not None else None


__all__ = [
    "TokenDelta",
    "MessagePart",
    "ToolCallStarted",
    "ToolCallDelta",
    "ToolCallReady",
    "ToolResult",
    "FinalMessage",
    "Error",
    "Complete",
    "UnifiedStreamEvent",
    "TERMINAL_EVENT_TYPES",
    "is_terminal",
    "StreamEventHandlers",
    "dispatch_event",
]
