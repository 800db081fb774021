"""Unified timeout configuration for streaming and fan-out.

This module centralizes timeout values used across the stream controller, the
orchestrator and the HTTP transport. Enforcement itself is done with
``asyncio.timeout`` at the call sites; this module only owns the numbers.

Key Components
--------------
TimeoutConfig
    Frozen dataclass capturing normalized timeout values.

get_timeout_config()
    Returns a process-cached configuration, parsing environment overrides on
    first use only. Supported environment variables (all optional):
        FANOUT_TIMEOUT_MS          per-unit orchestrator timeout
        FANOUT_WATCHDOG_SECONDS    stream controller watchdog
        FANOUT_HTTP_TIMEOUT_SECONDS  connect/read timeout for pooled clients

Design Constraints
------------------
1. No hard-coded ad-hoc timeouts outside this module and ``config.defaults``.
2. Avoid per-call env parsing (cache after first read, refresh when the
   relevant variables change so tests can adjust at runtime).
"""
from __future__ import annotations

from dataclasses import dataclass
import os

from ..config.defaults import (
    FANOUT_DEFAULT_TIMEOUT_MS,
    FANOUT_DEFAULT_WATCHDOG_SECONDS,
)


@dataclass(frozen=True)
class TimeoutConfig:
    """Container for normalized timeout values.

    Attributes:
        unit_timeout_ms: Budget for one unit of work, raced by the orchestrator.
        watchdog_seconds: Independent deadline armed when a stream handle is
            created; fails the stream if no terminal event arrives in time.
        http_timeout_seconds: Connect/read timeout handed to pooled httpx
            clients. Kept above the watchdog so the watchdog decides.
    """

    unit_timeout_ms: int = FANOUT_DEFAULT_TIMEOUT_MS
    watchdog_seconds: float = FANOUT_DEFAULT_WATCHDOG_SECONDS
    http_timeout_seconds: float = FANOUT_DEFAULT_WATCHDOG_SECONDS * 2

    @property
    def unit_timeout_seconds(self) -> float:
        return self.unit_timeout_ms / 1000.0


_CACHED: TimeoutConfig | None = None
_ENV_GUARD: str | None = None
_ENV_NAMES = ("FANOUT_TIMEOUT_MS", "FANOUT_WATCHDOG_SECONDS", "FANOUT_HTTP_TIMEOUT_SECONDS")


def _parse_env_float(name: str, default: float) -> float:
    """Parse an environment variable as a positive float with a fallback default.

    Returns the default if the variable is unset, not a valid float, or not
    positive.
    """
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        val = float(raw)
        return val if val > 0 else default
    except ValueError:
        return default


def get_timeout_config() -> TimeoutConfig:
    """Return process-cached `TimeoutConfig` instance."""
    global _CACHED, _ENV_GUARD  # noqa: PLW0603 - intentional, documented module cache
    cur_guard = "/".join(os.getenv(n, "") for n in _ENV_NAMES)
    if _CACHED is not None and _ENV_GUARD == cur_guard:
        return _CACHED

    unit_ms = _parse_env_float("FANOUT_TIMEOUT_MS", float(FANOUT_DEFAULT_TIMEOUT_MS))
    watchdog = _parse_env_float("FANOUT_WATCHDOG_SECONDS", FANOUT_DEFAULT_WATCHDOG_SECONDS)
    http = _parse_env_float("FANOUT_HTTP_TIMEOUT_SECONDS", watchdog * 2)

    _CACHED = TimeoutConfig(
        unit_timeout_ms=int(unit_ms),
        watchdog_seconds=watchdog,
        http_timeout_seconds=http,
    )
    _ENV_GUARD = cur_guard
    return _CACHED


__all__ = [
    "TimeoutConfig",
    "get_timeout_config",
]
