"""
Fan-out Base Package

Exports the provider-agnostic building blocks the orchestrator is assembled
from:
- Errors: normalized failure taxonomy and exception classification
- Cancellation: cooperative tokens with parent/child cascade
- Models (DTOs): stream requests and per-model results
- Streaming: unified events, provider adapters, the stream controller
- Metrics and observability: histogram recorder and injected trace sinks
"""

from .errors import (
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
from .cancellation import CancellationToken
from .timeouts import TimeoutConfig, get_timeout_config
from .models import (
    Message,
    ModelStreamMetrics,
    ModelStreamResult,
    Role,
    SamplingParams,
    StreamRequest,
    TokenUsage,
)
from .dto import BatchOptions, StreamRequestDTO
from .observability import MemoryTraceSink, NullTraceSink, TraceEvent, TraceSink
from .metrics import MetricsRecorder, MetricsSnapshot
from .http import EndpointConfig, HttpxTransport, ProviderTransport
from .streaming import (
    AdapterRegistry,
    StreamController,
    StreamHandle,
    StreamState,
    UnifiedStreamEvent,
)

__all__ = [
    # Errors
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
    # Timeouts & Cancellation
    "CancellationToken",
    "TimeoutConfig",
    "get_timeout_config",
    # Models
    "Role",
    "Message",
    "SamplingParams",
    "TokenUsage",
    "StreamRequest",
    "ModelStreamMetrics",
    "ModelStreamResult",
    "StreamRequestDTO",
    "BatchOptions",
    # Observability & Metrics
    "TraceEvent",
    "TraceSink",
    "NullTraceSink",
    "MemoryTraceSink",
    "MetricsRecorder",
    "MetricsSnapshot",
    # Transport
    "ProviderTransport",
    "EndpointConfig",
    "HttpxTransport",
    # Streaming
    "UnifiedStreamEvent",
    "AdapterRegistry",
    "StreamController",
    "StreamHandle",
    "StreamState",
]
