"""Shared async HTTP client pool for provider transports.

Purpose:
    Provide a centralized, thread-safe pool of reusable ``httpx.AsyncClient``
    instances to avoid per-stream allocations and reuse connections across
    the units of a fan-out. Timeouts derive exclusively from
    :func:`get_timeout_config`.

External dependencies:
    - ``httpx`` for the underlying async HTTP client.

Timeout strategy:
    - The client timeout is ``TimeoutConfig.http_timeout_seconds`` (twice the
      stream watchdog by default) so the watchdog and the per-unit timeout,
      not httpx, decide when a stream is too slow.

Lifecycle & cleanup:
    - Clients are cached by ``(base_url, purpose, event loop)``. An async
      client's connections belong to the loop that opened them, so every loop
      gets its own client.
    - ``aclose_all_clients`` closes the clients of the running loop; call it
      from the same loop before it shuts down. At interpreter exit the cache
      is only cleared, since no loop is left to await ``aclose`` on.
"""

from __future__ import annotations

import asyncio
import atexit
import threading
from typing import Dict, Optional, Tuple

import httpx

from ..timeouts import get_timeout_config

_ClientKey = Tuple[Optional[str], str, int]

_CLIENTS: Dict[_ClientKey, httpx.AsyncClient] = {}
_LOCK = threading.RLock()


def _loop_id() -> int:
    try:
        return id(asyncio.get_running_loop())
    except RuntimeError:
        return 0


def get_async_client(base_url: Optional[str], purpose: str) -> httpx.AsyncClient:
    """Return a pooled ``httpx.AsyncClient`` for the given base URL and purpose.

    Parameters:
        base_url: Optional API base URL set on the client so relative requests
            can be used. ``None`` groups clients under a shared key.
        purpose: A short string discriminating separate pools (e.g.,
            "stream"). Keep stable to maximize reuse.

    Thread-safety:
        Safe for concurrent use; per-key creation is guarded by a re-entrant
        lock.
    """
    key = (base_url, purpose, _loop_id())
    client = _CLIENTS.get(key)
    if client is not None and not client.is_closed:
        return client

    with _LOCK:
        client = _CLIENTS.get(key)
        if client is not None and not client.is_closed:
            return client
        timeout = get_timeout_config().http_timeout_seconds
        if base_url:
            client = httpx.AsyncClient(base_url=base_url, timeout=timeout)
        else:
            client = httpx.AsyncClient(timeout=timeout)
        _CLIENTS[key] = client
        return client


async def aclose_all_clients() -> None:
    """Close and drop every pooled client that belongs to the running loop."""
    loop_key = _loop_id()
    with _LOCK:
        owned = [k for k in _CLIENTS if k[2] == loop_key]
        clients = [_CLIENTS.pop(k) for k in owned]
    for client in clients:
        await client.aclose()


def _cleanup_at_exit() -> None:
    with _LOCK:
        _CLIENTS.clear()


atexit.register(_cleanup_at_exit)

__all__ = ["get_async_client", "aclose_all_clients"]
