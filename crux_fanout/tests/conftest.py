"""Pytest configuration for the fan-out test suite.

Provides a memory trace sink, a scripted transport factory and an
orchestrator wired to both, and resets the cached timeout configuration so
tests that patch ``FANOUT_*`` variables never leak into each other.
"""

from __future__ import annotations

from typing import Callable, Iterator

import pytest

from crux_fanout.base import timeouts
from crux_fanout.base.observability import MemoryTraceSink
from crux_fanout.mock import Script, ScriptedTransport
from crux_fanout.orchestrator import MultiModelOrchestrator


@pytest.fixture(autouse=True)
def reset_timeout_cache(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Drop the process-cached timeout config around each test."""

    for name in ("FANOUT_TIMEOUT_MS", "FANOUT_WATCHDOG_SECONDS", "FANOUT_HTTP_TIMEOUT_SECONDS", "FANOUT_BATCH_SIZE"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(timeouts, "_CACHED", None)
    monkeypatch.setattr(timeouts, "_ENV_GUARD", None)
    yield


@pytest.fixture()
def trace() -> MemoryTraceSink:
    return MemoryTraceSink()


@pytest.fixture()
def make_orchestrator(trace: MemoryTraceSink) -> Callable[..., MultiModelOrchestrator]:
    """Return a factory building an orchestrator over a ``ScriptedTransport``."""

    def _build(scripts: dict[str, Script], *, watchdog_seconds: float = 5.0, **kwargs) -> MultiModelOrchestrator:
        transport = kwargs.pop("transport", None) or ScriptedTransport(scripts=scripts)
        return MultiModelOrchestrator(transport, trace=trace, watchdog_seconds=watchdog_seconds, **kwargs)

    return _build
