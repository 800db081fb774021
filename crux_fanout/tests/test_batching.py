from __future__ import annotations

import pytest

from crux_fanout.orchestrator import chunk_requests


def test_chunks_preserve_order_and_size():
    assert chunk_requests(list(range(5)), 2) == [[0, 1], [2, 3], [4]]  # nosec B101
    assert chunk_requests([], 3) == []  # nosec B101
    assert chunk_requests([1, 2], 10) == [[1, 2]]  # nosec B101


def test_chunk_size_must_be_positive():
    with pytest.raises(ValueError):
        chunk_requests([1], 0)
