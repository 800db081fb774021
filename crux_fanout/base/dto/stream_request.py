"""
Pydantic DTOs and validators for inbound stream request payloads.

Purpose
-------
Validate loosely-typed payloads (JSON bodies, CLI-parsed dicts) before they
become ``StreamRequest`` dataclasses. Roles, content, numeric sampling bounds
and the per-unit timeout are checked here so that nothing downstream has to.

Failure Modes
-------------
Validation either succeeds or raises ``pydantic.ValidationError``. Callers
handle it at their own edge; the orchestrator only ever sees valid requests.

Design
------
- Mirror the dataclasses in ``crux_fanout.base.models`` field by field.
- ``to_request()`` is the only conversion path, so defaults stay in one place.
"""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

from ...config.defaults import FANOUT_DEFAULT_TIMEOUT_MS
from ..cancellation import CancellationToken
from ..models_parts.message import Message
from ..models_parts.sampling_params import SamplingParams
from ..models_parts.stream_request import StreamRequest


Role = Literal["system", "user", "assistant", "tool"]


class MessageDTO(BaseModel):
    """A chat message with non-empty text content.

    Failure Modes:
        Raises ``ValidationError`` when the role is unknown or the content is
        blank.
    """

    role: Role
    content: str

    @model_validator(mode="after")
    def _validate_content(self) -> "MessageDTO":
        if self.content.strip() == "":
            raise ValueError("content string must be non-empty")
        return self


class SamplingDTO(BaseModel):
    """Sampling parameter bounds shared by every provider dialect."""

    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)
    top_p: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    max_tokens: Optional[int] = Field(default=None, gt=0)


class StreamRequestDTO(BaseModel):
    """Validated form of a ``StreamRequest``.

    Parameters:
        model_id: Target model identifier (non-empty).
        provider: Provider id (non-empty, lower-cased on validation).
        messages: Ordered list of MessageDTO (non-empty; the first message
            must come from ``system`` or ``user``).
        system_prompt: Optional system prompt.
        sampling: Optional sampling bounds.
        timeout_ms: Positive per-unit timeout.

    Raises:
        ValidationError: On invalid roles, empty content, or out-of-range params.
    """

    model_id: str = Field(..., min_length=1)
    provider: str = Field(..., min_length=1)
    messages: List[MessageDTO] = Field(..., min_length=1)
    system_prompt: Optional[str] = None
    sampling: Optional[SamplingDTO] = None
    timeout_ms: int = Field(default=FANOUT_DEFAULT_TIMEOUT_MS, gt=0)

    @model_validator(mode="after")
    def _validate_sequence(self) -> "StreamRequestDTO":
        if self.messages and self.messages[0].role not in ("system", "user"):
            raise ValueError("first message must be from 'system' or 'user'")
        self.provider = self.provider.strip().lower()
        return self

    def to_request(self, *, cancellation: Optional[CancellationToken] = None) -> StreamRequest:
        """Convert into the immutable ``StreamRequest`` consumed by the engine."""
        sampling = SamplingParams(**self.sampling.model_dump()) if self.sampling else None
        return StreamRequest(
            model_id=self.model_id,
            provider=self.provider,
            messages=tuple(Message(m.role, m.content) for m in self.messages),
            system_prompt=self.system_prompt,
            sampling=sampling,
            cancellation=cancellation,
            timeout_ms=self.timeout_ms,
        )


__all__ = [
    "Role",
    "MessageDTO",
    "SamplingDTO",
    "StreamRequestDTO",
]
