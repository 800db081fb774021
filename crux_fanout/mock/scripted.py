"""Deterministic scripted transport for offline tests and demos.

Purpose
-------
Implement the ``ProviderTransport`` contract without any network traffic.
Each model id maps to a :class:`Script` describing the byte chunks to yield,
per-chunk delays and the failure to inject (at open, mid-stream, or a hang
that only a timeout or cancellation ends). Scripts are matched by
``request.model_id``; unmatched requests fall back to ``default`` when set.

External dependencies
---------------------
Standard library only (``asyncio``).

Helpers
-------
``openai_sse`` and ``anthropic_sse`` render text deltas as provider-shaped
SSE byte chunks so tests exercise the real adapters end to end.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from typing import AsyncIterator, Dict, List, Mapping, Optional, Sequence, Union

from ..base.errors import ErrorCode, StreamFailure, TransportError
from ..base.logging import LogContext, get_logger, normalized_log_event
from ..base.models import StreamRequest

Chunk = Union[bytes, str]


@dataclass
class Script:
    """Behaviour of one scripted stream.

    Attributes:
        chunks: Payload chunks, yielded in order (``str`` is utf-8 encoded).
        delay_s: Sleep before every chunk.
        first_delay_s: Extra sleep before the first chunk only.
        fail_on_open: Raised from ``open_stream`` before any byte is yielded.
        raise_after: Raise ``error`` after this many chunks were yielded.
        error: Failure used by ``raise_after``; defaults to a transport error.
        hang: Block forever after the last chunk instead of ending.
    """

    chunks: Sequence[Chunk] = ()
    delay_s: float = 0.0
    first_delay_s: float = 0.0
    fail_on_open: Optional[BaseException] = None
    raise_after: Optional[int] = None
    error: Optional[BaseException] = None
    hang: bool = False


@dataclass
class ScriptedTransport:
    """``ProviderTransport`` that replays :class:`Script` entries by model id.

    ``opened`` and ``closed`` record model ids in call order so tests can
    assert that a transport was (or was not) opened and always released.
    """

    scripts: Mapping[str, Script] = field(default_factory=dict)
    default: Optional[Script] = None
    opened: List[str] = field(default_factory=list)
    closed: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self._logger = get_logger("fanout.mock")

    def script_for(self, request: StreamRequest) -> Script:
        script = self.scripts.get(request.model_id, self.default)
        if script is None:
            raise TransportError(
                code=ErrorCode.NOT_FOUND,
                message=f"no script for model '{request.model_id}'",
                provider=request.provider,
                model=request.model_id,
            )
        return script

    async def open_stream(self, request: StreamRequest) -> AsyncIterator[bytes]:
        script = self.script_for(request)
        ctx = LogContext(provider=request.provider, model=request.model_id, request_id=request.request_id)
        if script.fail_on_open is not None:
            normalized_log_event(self._logger, "mock.open", ctx, phase="start", emitted=False, tokens=None)
            raise script.fail_on_open
        self.opened.append(request.model_id)
        normalized_log_event(self._logger, "mock.open", ctx, phase="start", emitted=None, tokens=None)
        try:
            if script.first_delay_s:
                await asyncio.sleep(script.first_delay_s)
            for index, chunk in enumerate(script.chunks):
                if script.raise_after is not None and index >= script.raise_after:
                    raise self._mid_stream_error(script, request)
                if script.delay_s:
                    await asyncio.sleep(script.delay_s)
                yield chunk.encode("utf-8") if isinstance(chunk, str) else chunk
            if script.raise_after is not None and script.raise_after >= len(script.chunks):
                raise self._mid_stream_error(script, request)
            if script.hang:
                await asyncio.Event().wait()
        finally:
            self.closed.append(request.model_id)

    @staticmethod
    def _mid_stream_error(script: Script, request: StreamRequest) -> BaseException:
        if script.error is not None:
            return script.error
        return TransportError(
            code=ErrorCode.TRANSPORT,
            message="connection reset by peer",
            provider=request.provider,
            model=request.model_id,
        )


def openai_sse(deltas: Sequence[str], *, usage: Optional[Dict[str, int]] = None, done: bool = True) -> List[str]:
    """Render ``deltas`` as OpenAI chat-completions SSE lines (one chunk each)."""
    lines = [
        "data: " + json.dumps({"choices": [{"index": 0, "delta": {"content": d}}]}) + "\n\n"
        for d in deltas
    ]
    if usage is not None:
        lines.append("data: " + json.dumps({"choices": [], "usage": usage}) + "\n\n")
    if done:
        lines.append("data: [DONE]\n\n")
    return lines


def anthropic_sse(deltas: Sequence[str], *, output_tokens: Optional[int] = None) -> List[str]:
    """Render ``deltas`` as Anthropic Messages SSE frames ending in ``message_stop``."""

    def frame(kind: str, payload: Dict) -> str:
        payload = {"type": kind, **payload}
        return f"event: {kind}\ndata: {json.dumps(payload)}\n\n"

    frames = [
        frame("message_start", {"message": {"usage": {"input_tokens": 3}}}),
        frame("content_block_start", {"index": 0, "content_block": {"type": "text", "text": ""}}),
    ]
    frames += [
        frame("content_block_delta", {"index": 0, "delta": {"type": "text_delta", "text": d}})
        for d in deltas
    ]
    frames.append(frame("content_block_stop", {"index": 0}))
    if output_tokens is not None:
        frames.append(frame("message_delta", {"usage": {"output_tokens": output_tokens}}))
    frames.append(frame("message_stop", {}))
    return frames


def failure(code: ErrorCode, message: str) -> StreamFailure:
    """Convenience for scripting a typed failure."""
    return TransportError(code=code, message=message)


__all__ = [
    "Script",
    "ScriptedTransport",
    "openai_sse",
    "anthropic_sse",
    "failure",
]
