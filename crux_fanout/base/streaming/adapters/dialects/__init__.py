"""SSE payload dialects keyed by wire format."""

from .base import SseDialect
from .anthropic import AnthropicSseDialect
from .openai import OpenAISseDialect

__all__ = ["SseDialect", "AnthropicSseDialect", "OpenAISseDialect"]
