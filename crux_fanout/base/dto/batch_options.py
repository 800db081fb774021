"""Validated options for one ``run_batch`` call.

Purpose
-------
Reject impossible batch settings (``batch_size < 1``, non-positive timeout)
before any unit is dispatched, and fill an unset batch size from
``FANOUT_BATCH_SIZE``.

External dependencies
---------------------
- Pydantic v2 ``BaseModel`` for validation.
"""
from __future__ import annotations

import os
from typing import Optional

from pydantic import BaseModel, Field

from ...config.defaults import FANOUT_DEFAULT_BATCH_SIZE
from ..models_parts.stream_request import StreamRequest


def _env_batch_size() -> int:
    raw = (os.getenv("FANOUT_BATCH_SIZE") or "").strip()
    if raw.isdigit() and int(raw) >= 1:
        return int(raw)
    return FANOUT_DEFAULT_BATCH_SIZE


class BatchOptions(BaseModel):
    """Batch size and per-unit timeout for one fan-out run.

    Attributes
    ----------
    batch_size:
        Maximum number of units running concurrently. Batches run one after
        the other.
    timeout_ms:
        Budget of each unit, measured from its dispatch. ``None`` defers to
        each request's own ``timeout_ms``.
    """

    batch_size: int = Field(default_factory=_env_batch_size, ge=1)
    timeout_ms: Optional[int] = Field(default=None, gt=0)

    @classmethod
    def resolve(cls, batch_size: Optional[int] = None, timeout_ms: Optional[int] = None) -> "BatchOptions":
        """Build options from ``run_batch`` arguments, leaving ``None`` to the defaults.

        Raises ``pydantic.ValidationError`` for explicit out-of-range values.
        """
        data = {}
        if batch_size is not None:
            data["batch_size"] = batch_size
        if timeout_ms is not None:
            data["timeout_ms"] = timeout_ms
        return cls(**data)

    def unit_timeout_seconds(self, request: StreamRequest) -> float:
        """Return the timeout applied to ``request``, in seconds."""
        ms = self.timeout_ms if self.timeout_ms is not None else request.timeout_ms
        return ms / 1000.0


__all__ = ["BatchOptions"]
