"""
Error classification helpers mapping exceptions to normalized ErrorCode values.

Implements httpx exception mapping, HTTP status extraction, status-to-code
mapping, and message-based heuristics as a fallback. ``to_stream_failure``
wraps anything that is not already a :class:`StreamFailure` into a
:class:`TransportError` carrying the classified code.
"""
from __future__ import annotations

import asyncio
from typing import Dict, Optional

import httpx

from .error_code import ErrorCode
from .stream_failure import StreamFailure, TransportError


def _extract_status(exc: BaseException) -> Optional[int]:
    """Find an HTTP status on ``exc``, its ``response``, or nowhere.

    ``httpx.HTTPStatusError`` exposes it as ``exc.response.status_code``;
    hand-rolled errors tend to use ``status_code`` or ``status`` directly.
    """
    response = getattr(exc, "response", None)
    candidates = (
        getattr(exc, "status_code", None),
        getattr(exc, "status", None),
        getattr(response, "status_code", None) if response is not None else None,
    )
    return next((c for c in candidates if isinstance(c, int) and 100 <= c < 600), None)


_HTTP_STATUS_MAP: Dict[int, ErrorCode] = {
    400: ErrorCode.VALIDATION,
    401: ErrorCode.AUTH,
    403: ErrorCode.AUTH,
    404: ErrorCode.NOT_FOUND,
    408: ErrorCode.TIMEOUT,
    422: ErrorCode.VALIDATION,
    429: ErrorCode.RATE_LIMIT,
    500: ErrorCode.SERVER_ERROR,
    502: ErrorCode.TRANSPORT,
    503: ErrorCode.UNAVAILABLE,
    504: ErrorCode.TIMEOUT,
}


def _heuristic_from_message(msg: str) -> Optional[ErrorCode]:
    """Substring heuristic mapping for exceptions without structure."""
    pattern_groups = (
        (ErrorCode.TIMEOUT, ("timeout", "timed out")),
        (ErrorCode.AUTH, ("api key", "unauthorized", "forbidden")),
        (ErrorCode.NOT_FOUND, ("not found", "does not exist")),
        (ErrorCode.UNAVAILABLE, ("unavailable", "temporarily down")),
        (ErrorCode.SERVER_ERROR, ("server error", "internal error")),
        (ErrorCode.TRANSPORT, ("connection", "socket", "network", "reset by peer")),
    )
    if "rate" in msg and "limit" in msg:
        return ErrorCode.RATE_LIMIT
    for code, patterns in pattern_groups:
        if any(p in msg for p in patterns):
            return code
    return None


def classify_exception(exc: BaseException) -> ErrorCode:
    """Classify an exception into a normalized :class:`ErrorCode`.

    Precedence:
        1. StreamFailure passthrough.
        2. Timeout exceptions (builtin, asyncio, httpx).
        3. httpx transport errors.
        4. HTTP status mapping.
        5. Substring heuristics.
        6. ``UNKNOWN`` fallback.
    """
    if isinstance(exc, StreamFailure):
        return exc.code
    if isinstance(exc, (TimeoutError, asyncio.TimeoutError, httpx.TimeoutException)):
        return ErrorCode.TIMEOUT
    status = _extract_status(exc)
    if status is not None:
        if status in _HTTP_STATUS_MAP:
            return _HTTP_STATUS_MAP[status]
        if status >= 500:
            return ErrorCode.SERVER_ERROR
    if isinstance(exc, httpx.TransportError):
        return ErrorCode.TRANSPORT
    code = _heuristic_from_message(str(exc).lower())
    return code if code is not None else ErrorCode.UNKNOWN


def to_stream_failure(exc: BaseException, *, provider: str, model: Optional[str]) -> StreamFailure:
    """Return ``exc`` if it already is a failure, else wrap it as a TransportError."""
    if isinstance(exc, StreamFailure):
        return exc
    message = str(exc) or exc.__class__.__name__
    return TransportError(
        code=classify_exception(exc),
        message=message[:500],
        provider=provider,
        model=model,
        raw=exc,
    )


__all__ = [
    "classify_exception",
    "to_stream_failure",
    "_extract_status",
    "_HTTP_STATUS_MAP",
]
