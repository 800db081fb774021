"""Server-Sent Events stream adapter.

Framing
-------
Bytes are buffered and split on ``\\n``; a trailing ``\\r`` is stripped so
CRLF streams parse the same way. The trailing partial line is kept across
reads. Only ``data:`` lines carry payloads: the ``[DONE]`` sentinel ends the
stream, anything else is parsed as JSON and handed to a dialect that knows
the provider's event vocabulary. ``event:``, ``id:``, ``retry:``, comment and
blank lines are framing noise and ignored.

A single unparseable or unexpected line is traced as ``stream.protocol.skip``
and discarded; it never fails the stream.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Iterator, Optional

from ....config.defaults import SSE_DATA_PREFIX, SSE_DONE_SENTINEL
from ...errors import ProtocolError
from ...models import StreamRequest
from ...observability import TraceSink
from .base import AdapterItem, BaseStreamAdapter
from .dialects import SseDialect

_IGNORED_FIELDS = ("event:", "id:", "retry:", ":")


@dataclass
class SseSession:
    """Per-stream framing state."""

    provider: str
    model: str
    dialect_state: Any
    pending: bytearray = field(default_factory=bytearray)


class SseStreamAdapter(BaseStreamAdapter):
    """SSE framing with a pluggable payload dialect."""

    name = "sse"

    def __init__(self, dialect: SseDialect, *, trace: Optional[TraceSink] = None) -> None:
        super().__init__(trace=trace)
        self.dialect = dialect
        self.name = f"sse/{dialect.name}"

    def new_session(self, request: StreamRequest) -> SseSession:
        return SseSession(
            provider=request.provider,
            model=request.model_id,
            dialect_state=self.dialect.new_state(),
        )

    def feed(self, session: SseSession, chunk: bytes) -> Iterator[AdapterItem]:
        session.pending.extend(chunk)
        *lines, rest = session.pending.split(b"\n")
        session.pending = bytearray(rest)
        for raw in lines:
            yield from self._line(session, raw)

    def flush(self, session: SseSession) -> Iterator[AdapterItem]:
        if session.pending:
            raw = bytes(session.pending)
            session.pending.clear()
            yield from self._line(session, raw)
        yield from self.dialect.on_eof(session.dialect_state)

    def _line(self, session: SseSession, raw: bytes) -> Iterator[AdapterItem]:
        if raw.endswith(b"\r"):
            raw = raw[:-1]
        try:
            line = raw.decode("utf-8")
        except UnicodeDecodeError:
            self._skip(session.provider, session.model, "undecodable line")
            return
        if not line.strip():
            return
        if not line.startswith(SSE_DATA_PREFIX):
            if not line.startswith(_IGNORED_FIELDS):
                self._skip(session.provider, session.model, "not a data line", line)
            return
        payload = line[len(SSE_DATA_PREFIX):].strip()
        if payload == SSE_DONE_SENTINEL:
            yield from self.dialect.on_done(session.dialect_state)
            return
        try:
            data = json.loads(payload)
        except ValueError:
            self._skip(session.provider, session.model, "invalid json", line)
            return
        if not isinstance(data, dict):
            self._skip(session.provider, session.model, "payload is not an object", line)
            return
        try:
            # Materialize so a ProtocolError mid-payload drops the whole payload.
            items = list(self.dialect.translate(session.dialect_state, data))
        except ProtocolError as exc:
            self._skip(session.provider, session.model, exc.message, line)
            return
        except (AttributeError, KeyError, TypeError) as exc:
            self._skip(session.provider, session.model, f"unexpected payload shape: {exc}", line)
            return
        yield from items


__all__ = ["SseSession", "SseStreamAdapter"]
