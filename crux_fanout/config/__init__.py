"""Configuration layer for crux_fanout.

Merges sources in a predictable order:
    1. Built-in defaults (``config.defaults``)
    2. Environment variables (``FANOUT_*`` for orchestration knobs,
       ``<PROVIDER>_API_KEY`` for credentials)
    3. In-code overrides passed to the orchestrator or controller

Public API
----------
* ``resolve_provider_key(provider)`` → ``(value, env_var)``
* ``get_timeout_config()`` lives in ``crux_fanout.base.timeouts`` next to the
  code that enforces it.
"""
from __future__ import annotations

from .defaults import (
    FANOUT_DEFAULT_BATCH_SIZE,
    FANOUT_DEFAULT_TIMEOUT_MS,
    FANOUT_DEFAULT_WATCHDOG_SECONDS,
)
from .env import ENV_MAP, env_var_for, is_placeholder, resolve_provider_key

__all__ = [
    "FANOUT_DEFAULT_BATCH_SIZE",
    "FANOUT_DEFAULT_TIMEOUT_MS",
    "FANOUT_DEFAULT_WATCHDOG_SECONDS",
    "ENV_MAP",
    "env_var_for",
    "is_placeholder",
    "resolve_provider_key",
]
