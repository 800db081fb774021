"""Cooperative cancellation token implementation.

Exposes the ``CancellationToken`` class used by the orchestrator to cancel
in-flight units and skip undispatched ones. Besides polling
(``cancelled`` / ``raise_if_cancelled``) the token supports callbacks so an
asyncio timeout scope can be expired the moment cancellation is requested,
including from another thread.
"""

from __future__ import annotations

from threading import Lock
from typing import Callable, List, Optional

from ..errors_parts.error_code import ErrorCode
from ..errors_parts.stream_failure import StreamCancelledError
from .state import State


class CancellationToken:
    """A cooperative cancellation token with optional cascading semantics.

    Thread-safe for ``cancel``, ``add_callback`` and ``raise_if_cancelled``.
    Child tokens inherit cancellation when the parent is cancelled.
    """

    def __init__(self, *, parent: "CancellationToken | None" = None) -> None:
        self._state = State()
        self._lock = Lock()
        self._children: List[CancellationToken] = []
        if parent is not None:
            parent.link_child(self)

    @property
    def cancelled(self) -> bool:  # noqa: D401 - short form
        """Whether cancellation has been requested."""
        return self._state.cancelled

    @property
    def reason(self) -> str | None:  # noqa: D401 - short form
        """Reason string supplied at cancel time (if any)."""
        return self._state.reason

    def cancel(self, reason: str | None = None) -> None:
        """Request cancellation, fire callbacks, then cascade to children."""
        with self._lock:
            if self._state.cancelled:
                return
            self._state.cancelled = True
            self._state.reason = reason
            callbacks = list(self._state.callbacks.values())
            self._state.callbacks.clear()
            children = list(self._children)
        for cb in callbacks:
            cb(reason)
        for child in children:
            child.cancel(reason)

    def add_callback(self, callback: Callable[[Optional[str]], None]) -> Callable[[], None]:
        """Register ``callback(reason)`` to run once on cancellation.

        Runs immediately when the token is already cancelled. Returns a
        function that unregisters the callback; calling it after the callback
        fired is a no-op.
        """
        with self._lock:
            if not self._state.cancelled:
                cb_id = self._state.next_callback_id
                self._state.next_callback_id += 1
                self._state.callbacks[cb_id] = callback

                def _remove() -> None:
                    with self._lock:
                        self._state.callbacks.pop(cb_id, None)

                return _remove
            reason = self._state.reason
        callback(reason)
        return lambda: None

    def link_child(self, token: "CancellationToken") -> "CancellationToken":
        """Link a child token so parent cancellation cascades (returns child)."""
        with self._lock:
            self._children.append(token)
            should_cancel = self._state.cancelled
            reason = self._state.reason
        if should_cancel:
            token.cancel(reason)
        return token

    def raise_if_cancelled(self) -> None:
        """Raise ``StreamCancelledError`` if the token is cancelled."""
        if self._state.cancelled:
            raise StreamCancelledError(
                code=ErrorCode.CANCELLED,
                message=self._state.reason or "operation cancelled",
            )

    def child(self) -> "CancellationToken":
        """Create and link a child token (shortcut)."""
        return CancellationToken(parent=self)

    def __repr__(self) -> str:  # pragma: no cover - introspection aid
        return (
            f"CancellationToken(cancelled={self._state.cancelled}, "
            f"reason={self._state.reason!r}, children={len(self._children)})"
        )


__all__ = ["CancellationToken"]
