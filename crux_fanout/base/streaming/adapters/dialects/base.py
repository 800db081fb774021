"""SSE payload dialect contract.

A dialect maps one decoded JSON payload to zero or more adapter items, or
raises ``ProtocolError`` to reject the payload as a whole (the adapter traces
and skips it). It is stateless itself; per-stream state (open tool calls,
a repeated final text) lives in the object returned by ``new_state``.
"""
from __future__ import annotations

import json
from typing import Any, Dict, Iterable, Mapping, Optional

from ....errors import ErrorCode, ProtocolError, UpstreamError
from ..base import AdapterItem, Terminal


def int_or_none(value: Any) -> Optional[int]:
    """Token counts arrive as JSON numbers; anything else is treated as unreported."""
    return value if isinstance(value, int) and not isinstance(value, bool) and value >= 0 else None


class SseDialect:
    """Default behaviour shared by every dialect."""

    name = "generic"

    def new_state(self) -> Any:
        return None

    def translate(self, state: Any, data: Mapping[str, Any]) -> Iterable[AdapterItem]:  # pragma: no cover - abstract
        raise NotImplementedError

    def on_done(self, state: Any) -> Iterable[AdapterItem]:
        """Handle the ``[DONE]`` sentinel."""
        yield Terminal()

    def on_eof(self, state: Any) -> Iterable[AdapterItem]:
        """Handle end of input without a terminal payload."""
        return ()

    # ---- helpers ---------------------------------------------------------
    @staticmethod
    def section(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
        """Return the nested object under ``key``; absent or null reads as empty.

        Anything other than an object rejects the payload with ``ProtocolError``.
        """
        value = data.get(key)
        if value is None:
            return {}
        if not isinstance(value, Mapping):
            raise ProtocolError(code=ErrorCode.PROTOCOL, message=f"'{key}' is not an object")
        return value

    @staticmethod
    def index_of(data: Mapping[str, Any]) -> int:
        index = data.get("index", 0)
        if not isinstance(index, int) or isinstance(index, bool):
            raise ProtocolError(code=ErrorCode.PROTOCOL, message="'index' is not an integer")
        return index

    @staticmethod
    def upstream_error(payload: Any) -> UpstreamError:
        """Build an ``UpstreamError`` from a provider error object."""
        if isinstance(payload, Mapping):
            message = payload.get("message") or payload.get("type") or json.dumps(payload)
            kind = payload.get("type") or payload.get("code")
        else:
            message, kind = str(payload), None
        text = f"{kind}: {message}" if kind and kind != message else str(message)
        return UpstreamError(code=ErrorCode.UPSTREAM, message=text)

    @staticmethod
    def parse_arguments(text: str) -> Dict[str, Any]:
        """Parse accumulated tool-call argument JSON.

        "" means no arguments. Text that is not a JSON object is kept verbatim
        under ``"_raw"`` so the caller can still see what the model produced.
        """
        if not text.strip():
            return {}
        try:
            parsed = json.loads(text)
        except ValueError:
            return {"_raw": text}
        return parsed if isinstance(parsed, dict) else {"_raw": text}


__all__ = ["SseDialect", "int_or_none"]
