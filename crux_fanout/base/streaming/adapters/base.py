"""Base provider stream adapter.

Purpose
-------
Turn an async iterator of raw transport bytes into the unified event
sequence. Subclasses only implement framing (``new_session`` / ``feed`` /
``flush``); this class owns everything every protocol shares:

- the accumulated text buffer of the stream;
- finalization (exactly one ``FinalMessage`` then exactly one ``Complete``);
- reconciliation of a terminal payload's full text against what was sent;
- mapping of transport and upstream failures to a single ``Error`` event.

Failure Modes
-------------
- Exception from the byte iterator: one ``Error(TransportError)``, stop.
- ``UpstreamError`` raised by a subclass: one ``Error(UpstreamError)``, stop.
- ``ProtocolError`` raised by a subclass (corruption preventing progress):
  promoted to one ``Error(TransportError)`` with code ``protocol``, stop.
- End of input without a terminal marker: finalize when any content was
  produced, otherwise end silently and let the controller classify the stream
  as empty.

The adapter never re-sends text it already emitted.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, AsyncIterator, Iterable, Iterator, List, Mapping, Optional, Union

from ...errors import ErrorCode, ProtocolError, StreamFailure, TransportError, to_stream_failure
from ...models import StreamRequest, TokenUsage
from ...observability import NullTraceSink, TraceEvent, TraceSink
from ..events import (
    Complete,
    Error,
    FinalMessage,
    TokenDelta,
    UnifiedStreamEvent,
)


@dataclass(frozen=True)
class Terminal:
    """Framing-level end-of-stream marker produced by a subclass.

    ``final_text`` is the full assistant text when the provider repeats it in
    its terminal payload; the base class reconciles it against the buffer.
    """

    final_text: Optional[str] = None
    usage: Optional[TokenUsage] = None
    raw: Optional[Mapping[str, Any]] = None


@dataclass(frozen=True)
class UsageUpdate:
    """Token usage reported mid-stream (merged, later values win)."""

    usage: TokenUsage


AdapterItem = Union[UnifiedStreamEvent, Terminal, UsageUpdate]


@dataclass
class _Accumulator:
    provider: str
    model: str
    parts: List[str] = field(default_factory=list)
    usage: Optional[TokenUsage] = None
    produced: bool = False
    finished: bool = False

    @property
    def text(self) -> str:
        return "".join(self.parts)


class BaseStreamAdapter:
    """Shared adapter lifecycle; subclasses implement framing."""

    name = "base"

    def __init__(self, *, trace: Optional[TraceSink] = None) -> None:
        self._trace = trace or NullTraceSink()

    # ---- framing hooks ---------------------------------------------------
    def new_session(self, request: StreamRequest) -> Any:
        """Return per-stream framing state (decoders, line buffers ...)."""
        return None

    def feed(self, session: Any, chunk: bytes) -> Iterable[AdapterItem]:  # pragma: no cover - abstract
        raise NotImplementedError

    def flush(self, session: Any) -> Iterable[AdapterItem]:
        """Drain whatever the session still holds at end of input."""
        return ()

    # ---- lifecycle ---------------------------------------------------------
    async def stream(
        self, request: StreamRequest, chunks: AsyncIterator[bytes]
    ) -> AsyncIterator[UnifiedStreamEvent]:
        """Yield unified events for one stream.

        Reads ``chunks`` lazily; stops reading as soon as a terminal event was
        produced.
        """
        acc = _Accumulator(provider=request.provider, model=request.model_id)
        session = self.new_session(request)
        try:
            async for chunk in chunks:
                for item in self.feed(session, chunk):
                    for event in self._apply(acc, item):
                        yield event
                    if acc.finished:
                        return
            for item in self.flush(session):
                for event in self._apply(acc, item):
                    yield event
                if acc.finished:
                    return
        except ProtocolError as exc:
            yield self._error(
                acc,
                TransportError(
                    code=ErrorCode.PROTOCOL,
                    message=exc.message,
                    provider=acc.provider,
                    model=acc.model,
                    raw=exc,
                ),
            )
            return
        except StreamFailure as exc:
            yield self._error(acc, exc)
            return
        except Exception as exc:
            yield self._error(acc, to_stream_failure(exc, provider=acc.provider, model=acc.model))
            return
        if acc.produced:
            for event in self._finalize(acc, None):
                yield event

    def _apply(self, acc: _Accumulator, item: AdapterItem) -> Iterator[UnifiedStreamEvent]:
        if isinstance(item, Terminal):
            yield from self._finalize(acc, item)
            return
        if isinstance(item, UsageUpdate):
            acc.usage = item.usage if acc.usage is None else acc.usage.merge(item.usage)
            return
        if isinstance(item, TokenDelta):
            if not item.delta:
                return
            acc.parts.append(item.delta)
        acc.produced = True
        yield self._stamp(acc, item)

    def _finalize(self, acc: _Accumulator, terminal: Optional[Terminal]) -> Iterator[UnifiedStreamEvent]:
        acc.finished = True
        usage = acc.usage
        raw = None
        if terminal is not None:
            usage = terminal.usage if usage is None else usage.merge(terminal.usage)
            raw = terminal.raw
            final_text = terminal.final_text
            sent = acc.text
            if final_text is not None and final_text != sent:
                if final_text.startswith(sent):
                    suffix = final_text[len(sent):]
                    acc.parts.append(suffix)
                    yield TokenDelta(delta=suffix, provider=acc.provider)
                else:
                    self._trace.emit(
                        TraceEvent(
                            name="stream.reconcile.mismatch",
                            phase="finalize",
                            provider=acc.provider,
                            model=acc.model,
                            fields={"sent_chars": len(sent), "final_chars": len(final_text)},
                        )
                    )
        yield FinalMessage(text=acc.text, usage=usage, raw=raw, provider=acc.provider)
        yield Complete(provider=acc.provider)

    def _error(self, acc: _Accumulator, failure: StreamFailure) -> Error:
        acc.finished = True
        if failure.provider == "unknown":
            failure.provider = acc.provider
        if failure.model is None:
            failure.model = acc.model
        return Error(cause=failure, provider=acc.provider)

    def _skip(self, provider: str, model: str, reason: str, line: str = "") -> None:
        """Trace a discarded unit of input (one malformed or irrelevant line)."""
        self._trace.emit(
            TraceEvent(
                name="stream.protocol.skip",
                phase="parse",
                provider=provider,
                model=model,
                fields={"adapter": self.name, "reason": reason, "line": line[:200]},
            )
        )

    @staticmethod
    def _stamp(acc: _Accumulator, event: UnifiedStreamEvent) -> UnifiedStreamEvent:
        if event.provider:
            return event
        return replace(event, provider=acc.provider)


__all__ = [
    "AdapterItem",
    "BaseStreamAdapter",
    "Terminal",
    "UsageUpdate",
]
