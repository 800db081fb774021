"""Errors parts package public surface.

Re-exports individual error taxonomy components for optional direct imports.
Prefer importing from `crux_fanout.base.errors` for the stable surface.
"""

from .error_code import ErrorCode
from .stream_failure import (
    EmptyStreamError,
    ProtocolError,
    StreamCancelledError,
    StreamFailure,
    StreamTimeoutError,
    TransportError,
    UnknownProviderError,
    UpstreamError,
)
from .classification import classify_exception, to_stream_failure

__all__ = [
    "ErrorCode",
    "StreamFailure",
    "TransportError",
    "ProtocolError",
    "StreamTimeoutError",
    "EmptyStreamError",
    "UpstreamError",
    "StreamCancelledError",
    "UnknownProviderError",
    "classify_exception",
    "to_stream_failure",
]
