"""Unified stream error taxonomy public surface.

This module re-exports the implementations under
``crux_fanout.base.errors_parts`` to maintain a stable import path.
"""

from .errors_parts import (
    EmptyStreamError,
    ErrorCode,
    ProtocolError,
    StreamCancelledError,
    StreamFailure,
    StreamTimeoutError,
    TransportError,
    UnknownProviderError,
    UpstreamError,
    classify_exception,
    to_stream_failure,
)

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
