"""
Structured stream failure exception types.

Every way a single stream can fail is represented by a subclass of
:class:`StreamFailure`. The orchestrator converts these into failed
``ModelStreamResult`` values; none of them escape ``run_batch``.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .error_code import ErrorCode


@dataclass(eq=False)
class StreamFailure(Exception):
    """Base class for single-stream failures with a normalized error code.

    Attributes:
        code: Normalized :class:`ErrorCode` classification for the failure.
        message: Human-readable error message suitable for logging and display.
        provider: Provider key where the error originated (e.g., ``"openai"``).
        model: Optional model identifier associated with the failure.
        raw: Optional original exception for diagnostics.
    """

    code: ErrorCode
    message: str
    provider: str = "unknown"
    model: Optional[str] = None
    raw: Optional[BaseException] = None

    def __str__(self) -> str:
        return f"{self.provider}:{self.model or '-'} {self.code.value}: {self.message}"

    def describe(self) -> str:
        """Return ``"<code>: <message>"``, the form stored on results."""
        return f"{self.code.value}: {self.message}"


class TransportError(StreamFailure):
    """Network/socket/HTTP failure before or during a stream.

    ``code`` may refine the category (``auth``, ``rate_limit``, ``timeout`` ...)
    when the underlying exception could be classified.
    """


class ProtocolError(StreamFailure):
    """Unparseable or unexpected framing.

    A single malformed line is traced and skipped by the adapters; this type is
    raised only internally and promoted to :class:`TransportError` when the
    corruption prevents further progress.
    """


class StreamTimeoutError(StreamFailure):
    """The watchdog or the per-unit timeout fired before a terminal event."""


class EmptyStreamError(StreamFailure):
    """The stream closed with zero content and no explicit upstream error."""


class UpstreamError(StreamFailure):
    """The provider explicitly signalled an error event in-band."""


class StreamCancelledError(StreamFailure):
    """An external cancellation signal stopped the stream."""


class UnknownProviderError(StreamFailure):
    """No adapter or endpoint is registered for the requested provider."""


__all__ = [
    "StreamFailure",
    "TransportError",
    "ProtocolError",
    "StreamTimeoutError",
    "EmptyStreamError",
    "UpstreamError",
    "StreamCancelledError",
    "UnknownProviderError",
]
