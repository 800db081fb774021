"""Streaming package.

Exposes the unified event model, the provider stream adapters and their
registry, and the stream consumption state machine under one namespace.
"""

from .events import (
    Complete,
    Error,
    FinalMessage,
    MessagePart,
    StreamEventHandlers,
    TokenDelta,
    ToolCallDelta,
    ToolCallReady,
    ToolCallStarted,
    ToolResult,
    UnifiedStreamEvent,
    dispatch_event,
    is_terminal,
)
from .adapters import (
    AnthropicSseDialect,
    BaseStreamAdapter,
    OpenAISseDialect,
    PlainTextStreamAdapter,
    SseDialect,
    SseStreamAdapter,
)
from .registry import AdapterRegistry
from .stream_controller import StreamController, StreamHandle, StreamState

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
    "StreamEventHandlers",
    "dispatch_event",
    "is_terminal",
    "BaseStreamAdapter",
    "PlainTextStreamAdapter",
    "SseStreamAdapter",
    "SseDialect",
    "AnthropicSseDialect",
    "OpenAISseDialect",
    "AdapterRegistry",
    "StreamController",
    "StreamHandle",
    "StreamState",
]
