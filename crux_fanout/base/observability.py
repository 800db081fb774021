"""Injected trace sinks for streaming and orchestration events.

Purpose
-------
Streaming and orchestrator code never configures or calls a logger directly.
Every component receives a :class:`TraceSink` and emits :class:`TraceEvent`
records to it. The default sink forwards to ``normalized_log_event`` so the
JSON log schema stays identical across components; tests inject
:class:`MemoryTraceSink` and assert on the captured events.

Event names
-----------
``stream.open``, ``stream.first_byte``, ``stream.end``, ``stream.error``,
``stream.protocol.skip``, ``stream.reconcile.mismatch``,
``orchestrator.batch.start``, ``orchestrator.batch.end``,
``orchestrator.unit.start``, ``orchestrator.unit.end``,
``orchestrator.callback.error``.

Failure Modes
-------------
Sinks must not raise. ``LoggingTraceSink`` relies on the logging module, which
already reports handler errors through ``logging.raiseExceptions``.
"""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Protocol

from .log_support import LogContext
from .logging import get_logger, normalized_log_event


@dataclass(frozen=True)
class TraceEvent:
    """One structured trace record.

    Attributes:
        name: Dotted event name (``stream.open``, ``orchestrator.unit.end`` ...).
        phase: Lifecycle phase used for the normalized ``phase`` log key.
        provider: Provider id of the stream, when the event concerns one.
        model: Model id of the stream, when the event concerns one.
        error_code: Normalized error code for failure events.
        fields: Free-form extra attributes.
        timestamp: Epoch seconds at creation.
    """

    name: str
    phase: str
    provider: Optional[str] = None
    model: Optional[str] = None
    error_code: Optional[str] = None
    fields: Mapping[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)


class TraceSink(Protocol):
    """Anything that accepts trace events."""

    def emit(self, event: TraceEvent) -> None:  # pragma: no cover - protocol
        ...


class NullTraceSink:
    """Discards every event."""

    def emit(self, event: TraceEvent) -> None:
        return None


class MemoryTraceSink:
    """Collects events in memory; thread-safe for concurrent emitters."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._events: List[TraceEvent] = []

    def emit(self, event: TraceEvent) -> None:
        with self._lock:
            self._events.append(event)

    @property
    def events(self) -> List[TraceEvent]:
        with self._lock:
            return list(self._events)

    def names(self) -> List[str]:
        return [e.name for e in self.events]

    def named(self, name: str) -> List[TraceEvent]:
        return [e for e in self.events if e.name == name]

    def clear(self) -> None:
        with self._lock:
            self._events.clear()


class LoggingTraceSink:
    """Forwards events to the shared ``fanout`` logger as normalized JSON lines.

    Failure events (``error_code`` set) are logged at WARNING, everything else at
    ``level`` (INFO by default, DEBUG is useful for per-chunk noise).
    """

    def __init__(self, logger: Optional[logging.Logger] = None, *, level: int = logging.INFO) -> None:
        self._logger = logger or get_logger("fanout.trace")
        self._level = level

    def emit(self, event: TraceEvent) -> None:
        extra: Dict[str, Any] = dict(event.fields)
        ctx = LogContext(
            provider=event.provider,
            model=event.model,
            request_id=extra.pop("request_id", None),
            batch=extra.pop("batch", None),
        )
        extra.setdefault("ts", event.timestamp)
        normalized_log_event(
            self._logger,
            event.name,
            ctx,
            phase=event.phase,
            error_code=event.error_code,
            emitted=extra.pop("emitted", None),
            tokens=extra.pop("tokens", None),
            level=logging.WARNING if event.error_code else self._level,
            **extra,
        )


def default_trace_sink() -> TraceSink:
    """Return the sink used when a component is built without one."""
    return LoggingTraceSink()


__all__ = [
    "TraceEvent",
    "TraceSink",
    "NullTraceSink",
    "MemoryTraceSink",
    "LoggingTraceSink",
    "default_trace_sink",
]
