"""
StreamRequest DTO: one unit of work for the orchestrator.

A request names the model and provider, the conversation to send, and the
per-unit timeout. It is immutable; the orchestrator, controller and transport
only read it.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Optional, Tuple

from ..cancellation import CancellationToken
from ..timeouts import get_timeout_config
from .message import Message
from .sampling_params import SamplingParams


def _new_request_id() -> str:
    return uuid.uuid4().hex[:12]


@dataclass(frozen=True)
class StreamRequest:
    """Provider-agnostic request to stream one completion.

    Attributes:
        model_id: Target model identifier.
        provider: Provider id used to pick the adapter and endpoint.
        messages: Ordered conversation.
        system_prompt: Optional system prompt; dialects that take it
            out-of-band (Anthropic) send it separately, the rest prepend it as
            a ``system`` message.
        sampling: Optional sampling parameters.
        cancellation: Optional token cancelling this unit only.
        timeout_ms: Per-unit budget (``FANOUT_TIMEOUT_MS`` or 30000 by
            default); ``run_batch(timeout_ms=...)`` overrides it.
        request_id: Correlation id used in trace events.
    """

    model_id: str
    provider: str
    messages: Tuple[Message, ...] = ()
    system_prompt: Optional[str] = None
    sampling: Optional[SamplingParams] = None
    cancellation: Optional[CancellationToken] = field(default=None, compare=False)
    timeout_ms: int = field(default_factory=lambda: get_timeout_config().unit_timeout_ms)
    request_id: str = field(default_factory=_new_request_id, compare=False)

    @classmethod
    def from_prompt(cls, model_id: str, provider: str, prompt: str, **kwargs) -> "StreamRequest":
        """Build a single-turn request from a user prompt."""
        return cls(model_id=model_id, provider=provider, messages=(Message("user", prompt),), **kwargs)


__all__ = ["StreamRequest"]
