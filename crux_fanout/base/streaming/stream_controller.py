"""Stream consumption state machine.

Purpose
-------
Drive one provider stream from a request to a terminal event: open the
transport lazily, run the adapter, track lifecycle state and the accumulated
text, and enforce an independent watchdog deadline.

Two-phase interface
-------------------
``StreamController.open(request)`` is pure: it resolves the adapter (raising
``UnknownProviderError`` for an unregistered provider) and stamps the creation
time that anchors the watchdog. ``StreamController.consume(handle)`` is an
async generator that performs the I/O; its first read opens the transport.

States
------
``CREATED -> AWAITING_FIRST_BYTE -> STREAMING -> DRAINING -> COMPLETED``;
``FAILED`` is reachable from every non-terminal state.

Failure Modes
-------------
Every failure is delivered in-band as exactly one ``Error`` event and leaves
the handle ``FAILED``:

- ``Error`` from the adapter (transport, upstream, protocol corruption);
- an exception escaping the adapter or the transport call;
- watchdog expiry (``StreamTimeoutError``);
- the stream ending before any event (``EmptyStreamError``);
- the request's cancellation token firing (``StreamCancelledError``).

The watchdog is applied around each read only, never across a ``yield``, so a
slow consumer cannot trip another stream's timer and the timer never leaks
into the consumer's frame. The transport iterator and the adapter generator
are closed on every exit path, including outer task cancellation.
"""
from __future__ import annotations

import asyncio
import time
from contextlib import aclosing
from dataclasses import dataclass, field
from enum import Enum
from typing import AsyncIterator, List, Optional

from ..errors import (
    EmptyStreamError,
    ErrorCode,
    StreamCancelledError,
    StreamFailure,
    StreamTimeoutError,
    to_stream_failure,
)
from ..http.transport import ProviderTransport
from ..models import StreamRequest, TokenUsage
from ..observability import TraceEvent, TraceSink, default_trace_sink
from ..timeouts import get_timeout_config
from .adapters import BaseStreamAdapter
from .events import Complete, Error, FinalMessage, TokenDelta, UnifiedStreamEvent
from .registry import AdapterRegistry


class StreamState(str, Enum):
    """Lifecycle state of one stream handle."""

    CREATED = "created"
    AWAITING_FIRST_BYTE = "awaiting_first_byte"
    STREAMING = "streaming"
    DRAINING = "draining"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (StreamState.COMPLETED, StreamState.FAILED)


_ALLOWED = {
    StreamState.CREATED: {StreamState.AWAITING_FIRST_BYTE, StreamState.FAILED},
    StreamState.AWAITING_FIRST_BYTE: {StreamState.STREAMING, StreamState.FAILED},
    StreamState.STREAMING: {StreamState.DRAINING, StreamState.FAILED},
    StreamState.DRAINING: {StreamState.COMPLETED, StreamState.FAILED},
    StreamState.COMPLETED: set(),
    StreamState.FAILED: set(),
}

_END = object()


@dataclass
class StreamHandle:
    """Mutable per-stream record owned by exactly one consumer.

    Attributes:
        request: The request being streamed.
        adapter: Adapter resolved at ``open``.
        created_at: ``time.monotonic()`` at ``open``.
        deadline: Watchdog deadline on the ``time.monotonic()`` clock.
        state: Current lifecycle state.
        chunk_count: Number of ``TokenDelta`` events seen.
        error: Failure that ended the stream, if any.
        usage: Usage reported on ``FinalMessage``, if any.
    """

    request: StreamRequest
    adapter: BaseStreamAdapter
    created_at: float
    deadline: float
    state: StreamState = StreamState.CREATED
    chunk_count: int = 0
    error: Optional[StreamFailure] = None
    usage: Optional[TokenUsage] = None
    first_byte_at: Optional[float] = None
    _parts: List[str] = field(default_factory=list, repr=False)
    _consumed: bool = field(default=False, repr=False)

    @property
    def text(self) -> str:
        """Text accumulated from ``TokenDelta`` events so far."""
        return "".join(self._parts)

    def transition(self, new: StreamState) -> None:
        if new not in _ALLOWED[self.state]:
            raise RuntimeError(f"illegal stream transition {self.state.value} -> {new.value}")
        self.state = new


class StreamController:
    """Open and consume provider streams.

    Parameters:
        transport: Byte transport used for every stream.
        registry: Adapter registry; the built-in providers by default.
        trace: Trace sink shared with the default registry's adapters.
        watchdog_seconds: Deadline measured from ``open``; defaults to
            ``get_timeout_config().watchdog_seconds``.
    """

    def __init__(
        self,
        transport: ProviderTransport,
        *,
        registry: Optional[AdapterRegistry] = None,
        trace: Optional[TraceSink] = None,
        watchdog_seconds: Optional[float] = None,
    ) -> None:
        self._transport = transport
        self._trace = trace or default_trace_sink()
        self._registry = registry or AdapterRegistry.with_defaults(trace=self._trace)
        self._watchdog = watchdog_seconds if watchdog_seconds is not None else get_timeout_config().watchdog_seconds

    def open(self, request: StreamRequest) -> StreamHandle:
        """Resolve the adapter and arm the watchdog; performs no I/O."""
        adapter = self._registry.resolve(request.provider, model=request.model_id)
        now = time.monotonic()
        return StreamHandle(request=request, adapter=adapter, created_at=now, deadline=now + self._watchdog)

    async def consume(self, handle: StreamHandle) -> AsyncIterator[UnifiedStreamEvent]:
        """Yield the stream's events; the last one is always ``Complete`` or ``Error``.

        Raises:
            RuntimeError: On first iteration when the handle was consumed before.
        """
        if handle._consumed:
            raise RuntimeError("stream handle already consumed")
        handle._consumed = True
        request = handle.request
        loop = asyncio.get_running_loop()
        deadline = loop.time() + max(0.0, handle.deadline - time.monotonic())
        handle.transition(StreamState.AWAITING_FIRST_BYTE)
        self._emit("stream.open", handle, phase="start", watchdog_s=round(handle.deadline - handle.created_at, 3))

        try:
            chunks = self._transport.open_stream(request)
        except Exception as exc:
            yield self._fail(handle, to_stream_failure(exc, provider=request.provider, model=request.model_id))
            return

        try:
            async with aclosing(handle.adapter.stream(request, chunks)) as events:
                while True:
                    token = request.cancellation
                    if token is not None and token.cancelled:
                        yield self._fail(handle, self._cancelled(handle))
                        return
                    try:
                        async with asyncio.timeout_at(deadline):
                            event = await anext(events, _END)
                    except TimeoutError:
                        yield self._fail(handle, self._timed_out(handle))
                        return
                    except Exception as exc:
                        yield self._fail(handle, to_stream_failure(exc, provider=request.provider, model=request.model_id))
                        return
                    if event is _END:
                        break
                    for out in self._advance(handle, event):
                        yield out
                    if handle.state.terminal:
                        return
            for out in self._natural_end(handle):
                yield out
        finally:
            aclose = getattr(chunks, "aclose", None)
            if aclose is not None:
                await aclose()

    # ---- transitions -------------------------------------------------------
    def _advance(self, handle: StreamHandle, event: UnifiedStreamEvent) -> List[UnifiedStreamEvent]:
        if handle.state is StreamState.AWAITING_FIRST_BYTE:
            handle.transition(StreamState.STREAMING)
            handle.first_byte_at = time.monotonic()
            self._emit(
                "stream.first_byte",
                handle,
                phase="stream",
                latency_ms=round((handle.first_byte_at - handle.created_at) * 1000.0, 3),
            )
        if isinstance(event, Error):
            return [self._fail(handle, event.cause, event)]
        if isinstance(event, TokenDelta):
            handle._parts.append(event.delta)
            handle.chunk_count += 1
        elif isinstance(event, FinalMessage):
            handle.usage = event.usage
            handle.transition(StreamState.DRAINING)
        elif isinstance(event, Complete):
            out: List[UnifiedStreamEvent] = []
            if handle.state is StreamState.STREAMING:
                out.append(self._synth_final(handle))
            out.append(event)
            self._complete(handle)
            return out
        return [event]

    def _natural_end(self, handle: StreamHandle) -> List[UnifiedStreamEvent]:
        provider = handle.request.provider
        if handle.state is StreamState.AWAITING_FIRST_BYTE:
            failure = EmptyStreamError(
                code=ErrorCode.EMPTY_STREAM,
                message="stream ended with no content",
                provider=provider,
                model=handle.request.model_id,
            )
            return [self._fail(handle, failure)]
        out: List[UnifiedStreamEvent] = []
        if handle.state is StreamState.STREAMING:
            out.append(self._synth_final(handle))
        out.append(Complete(provider=provider))
        self._complete(handle)
        return out

    def _synth_final(self, handle: StreamHandle) -> FinalMessage:
        handle.transition(StreamState.DRAINING)
        return FinalMessage(text=handle.text, usage=handle.usage, provider=handle.request.provider)

    def _complete(self, handle: StreamHandle) -> None:
        handle.transition(StreamState.COMPLETED)
        self._emit(
            "stream.end",
            handle,
            phase="finalize",
            emitted=handle.chunk_count > 0,
            tokens={"output": handle.usage.output_tokens} if handle.usage else None,
            chunk_count=handle.chunk_count,
            chars=len(handle.text),
        )

    def _fail(self, handle: StreamHandle, failure: StreamFailure, event: Optional[Error] = None) -> Error:
        handle.error = failure
        handle.transition(StreamState.FAILED)
        self._emit(
            "stream.error",
            handle,
            phase="finalize",
            error_code=failure.code.value,
            emitted=handle.chunk_count > 0,
            error=failure.message,
            failure_class=type(failure).__name__,
        )
        return event if event is not None else Error(cause=failure, provider=handle.request.provider)

    @staticmethod
    def _timed_out(handle: StreamHandle) -> StreamTimeoutError:
        budget = handle.deadline - handle.created_at
        return StreamTimeoutError(
            code=ErrorCode.TIMEOUT,
            message=f"no terminal event within {budget:g}s",
            provider=handle.request.provider,
            model=handle.request.model_id,
        )

    @staticmethod
    def _cancelled(handle: StreamHandle) -> StreamCancelledError:
        token = handle.request.cancellation
        return StreamCancelledError(
            code=ErrorCode.CANCELLED,
            message=(token.reason if token is not None else None) or "stream cancelled",
            provider=handle.request.provider,
            model=handle.request.model_id,
        )

    def _emit(self, name: str, handle: StreamHandle, *, phase: str, error_code: Optional[str] = None, **fields) -> None:
        request = handle.request
        self._trace.emit(
            TraceEvent(
                name=name,
                phase=phase,
                provider=request.provider,
                model=request.model_id,
                error_code=error_code,
                fields={"request_id": request.request_id, "state": handle.state.value, **fields},
            )
        )


__all__ = ["StreamState", "StreamHandle", "StreamController"]
