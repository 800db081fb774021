"""Provider stream adapters: raw transport bytes in, unified events out."""

from .base import AdapterItem, BaseStreamAdapter, Terminal, UsageUpdate
from .plain_text import PlainTextStreamAdapter
from .sse import SseSession, SseStreamAdapter
from .dialects import AnthropicSseDialect, OpenAISseDialect, SseDialect

__all__ = [
    "AdapterItem",
    "BaseStreamAdapter",
    "Terminal",
    "UsageUpdate",
    "PlainTextStreamAdapter",
    "SseSession",
    "SseStreamAdapter",
    "SseDialect",
    "AnthropicSseDialect",
    "OpenAISseDialect",
]
