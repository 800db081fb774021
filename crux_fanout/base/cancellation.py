"""Cooperative cancellation primitives (public API facade).

Purpose
-------
Expose the cancellation token via the canonical
``crux_fanout.base.cancellation`` import path while the implementation lives
under ``cancellation_parts``.

Notes
-----
- A token attached to a ``StreamRequest`` cancels that unit only; the token
  passed to ``run_batch`` cancels every unit still in flight and every unit not
  yet dispatched.
- Observing a cancelled token raises ``StreamCancelledError`` from the error
  taxonomy, so cancellation flows through the same failure path as every other
  stream failure.
"""

from .cancellation_parts.cancellation_token import CancellationToken
from .errors_parts.stream_failure import StreamCancelledError

__all__ = ["CancellationToken", "StreamCancelledError"]
