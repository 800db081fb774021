"""Plain-text stream adapter.

The transport yields UTF-8 bytes of assistant text with no framing. Decoding
is incremental so a multi-byte sequence split across two reads is emitted
intact once its last byte arrives. The stream has no terminal marker:
finalization happens at end of input.
"""
from __future__ import annotations

import codecs
from typing import Any, Iterator

from ...errors import ErrorCode, ProtocolError
from ...models import StreamRequest
from ..events import TokenDelta
from .base import AdapterItem, BaseStreamAdapter


class PlainTextStreamAdapter(BaseStreamAdapter):
    """Emit every non-empty decoded fragment immediately as a ``TokenDelta``."""

    name = "plain_text"

    def new_session(self, request: StreamRequest) -> Any:
        return codecs.getincrementaldecoder("utf-8")()

    def feed(self, session: Any, chunk: bytes) -> Iterator[AdapterItem]:
        text = self._decode(session, chunk, final=False)
        if text:
            yield TokenDelta(delta=text)

    def flush(self, session: Any) -> Iterator[AdapterItem]:
        text = self._decode(session, b"", final=True)
        if text:
            yield TokenDelta(delta=text)

    @staticmethod
    def _decode(decoder: codecs.IncrementalDecoder, data: bytes, *, final: bool) -> str:
        try:
            return decoder.decode(data, final=final)
        except UnicodeDecodeError as exc:
            raise ProtocolError(
                code=ErrorCode.PROTOCOL,
                message=f"undecodable bytes in text stream: {exc.reason}",
                raw=exc,
            ) from exc


__all__ = ["PlainTextStreamAdapter"]
