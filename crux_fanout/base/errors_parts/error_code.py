"""
Normalized stream error codes (taxonomy).

Defines the `ErrorCode` enumeration used across adapters, the stream controller
and the orchestrator. Values are lowercase snake_case and are considered a
stable public contract for logging, metrics and ``ModelStreamResult.error_code``.
"""
from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """Enumerated normalized error codes representing failure categories."""

    # stream lifecycle
    TRANSPORT = "transport"
    PROTOCOL = "protocol"
    TIMEOUT = "timeout"
    EMPTY_STREAM = "empty_stream"
    UPSTREAM = "upstream"
    CANCELLED = "cancelled"
    UNKNOWN_PROVIDER = "unknown_provider"
    # transport refinements (HTTP status / exception classification)
    AUTH = "auth"
    RATE_LIMIT = "rate_limit"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    SERVER_ERROR = "server_error"
    UNAVAILABLE = "unavailable"
    INTERNAL = "internal"
    UNKNOWN = "unknown"


__all__ = ["ErrorCode"]
