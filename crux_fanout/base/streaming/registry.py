"""Provider id to stream adapter resolution.

Purpose
-------
Map canonical provider ids to adapter factories so the stream controller can
pick the framing for a request without knowing any provider.

Default mapping
---------------
``anthropic``                                         SSE, Anthropic dialect
``openai``, ``openrouter``, ``deepseek``, ``xai``, ``groq``  SSE, OpenAI dialect
``text``                                              plain UTF-8 text

Failure Modes
-------------
``resolve`` raises :class:`UnknownProviderError` for an unregistered id. The
controller calls it from ``open``, before any I/O.
"""

from __future__ import annotations

from threading import RLock
from typing import Callable, Dict, List, Optional

from ..errors import ErrorCode, UnknownProviderError
from ..observability import TraceSink
from .adapters import (
    AnthropicSseDialect,
    BaseStreamAdapter,
    OpenAISseDialect,
    PlainTextStreamAdapter,
    SseStreamAdapter,
)

AdapterFactory = Callable[[Optional[TraceSink]], BaseStreamAdapter]

OPENAI_COMPATIBLE_PROVIDERS = ("openai", "openrouter", "deepseek", "xai", "groq")


def _anthropic(trace: Optional[TraceSink]) -> BaseStreamAdapter:
    return SseStreamAdapter(AnthropicSseDialect(), trace=trace)


def _openai(trace: Optional[TraceSink]) -> BaseStreamAdapter:
    return SseStreamAdapter(OpenAISseDialect(), trace=trace)


def _plain(trace: Optional[TraceSink]) -> BaseStreamAdapter:
    return PlainTextStreamAdapter(trace=trace)


class AdapterRegistry:
    """Thread-safe registry of adapter factories keyed by provider id.

    Provider ids are matched case-insensitively.
    """

    def __init__(self, *, trace: Optional[TraceSink] = None) -> None:
        self._lock = RLock()
        self._factories: Dict[str, AdapterFactory] = {}
        self._trace = trace

    @classmethod
    def with_defaults(cls, *, trace: Optional[TraceSink] = None) -> "AdapterRegistry":
        """Return a registry pre-populated with the built-in providers."""
        registry = cls(trace=trace)
        registry.register("anthropic", _anthropic)
        for provider in OPENAI_COMPATIBLE_PROVIDERS:
            registry.register(provider, _openai)
        registry.register("text", _plain)
        return registry

    def register(self, provider: str, factory: AdapterFactory) -> None:
        """Register (or replace) the adapter factory for ``provider``."""
        name = (provider or "").strip().lower()
        if not name:
            raise ValueError("provider id must be non-empty")
        with self._lock:
            self._factories[name] = factory

    def providers(self) -> List[str]:
        with self._lock:
            return sorted(self._factories)

    def resolve(self, provider: str, *, model: Optional[str] = None) -> BaseStreamAdapter:
        """Build a fresh adapter for ``provider``.

        Raises:
            UnknownProviderError: When no factory is registered for the id.
        """
        name = (provider or "").strip().lower()
        with self._lock:
            factory = self._factories.get(name)
        if factory is None:
            raise UnknownProviderError(
                code=ErrorCode.UNKNOWN_PROVIDER,
                message=f"Unknown provider '{provider}'",
                provider=provider or "unknown",
                model=model,
            )
        return factory(self._trace)


__all__ = [
    "AdapterFactory",
    "AdapterRegistry",
    "OPENAI_COMPATIBLE_PROVIDERS",
]
