"""Request partitioning for batched fan-out."""

from __future__ import annotations

from typing import List, Sequence, TypeVar

T = TypeVar("T")


def chunk_requests(requests: Sequence[T], size: int) -> List[List[T]]:
    """Split ``requests`` into consecutive batches of at most ``size`` items.

    Input order is preserved both across and within batches; only the last
    batch may be shorter. An empty input yields no batches.

    Raises:
        ValueError: If ``size`` is less than 1.
    """
    if size < 1:
        raise ValueError("batch size must be >= 1")
    return [list(requests[i : i + size]) for i in range(0, len(requests), size)]


__all__ = ["chunk_requests"]
