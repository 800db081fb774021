"""Thread-safe in-memory recorder for per-unit stream metrics.

Three instruments, each keyed by ``(model_id, provider)``:

``fanout_ttft_ms``
    Histogram of time to first token; exponential buckets from 10 ms,
    factor 2, 10 boundaries. Observed only when the unit saw a token.
``fanout_total_duration_ms``
    Histogram of dispatch-to-resolution time; exponential buckets from
    100 ms, factor 2, 12 boundaries. Observed for every unit.
``fanout_output_tokens``
    Monotonic counter; incremented only by positive token counts.
"""

from __future__ import annotations

import time
from threading import RLock
from typing import Dict, List, Optional

from ....config.defaults import FANOUT_DURATION_BUCKETS, FANOUT_TTFT_BUCKETS
from ...models import ModelStreamResult
from .counter_snapshot import CounterSnapshot
from .exponential_buckets import ExponentialBuckets
from .histogram_snapshot import HistogramSnapshot
from .metrics_snapshot import MetricsSnapshot, SeriesKey


class _Histogram:
    __slots__ = ("_buckets", "_counts", "_count", "_sum", "_min", "_max")

    def __init__(self, buckets: ExponentialBuckets) -> None:
        self._buckets = buckets
        self._counts: List[int] = [0] * (buckets.count + 1)
        self._count = 0
        self._sum = 0.0
        self._min: Optional[float] = None
        self._max: Optional[float] = None

    def observe(self, value: float) -> None:
        self._counts[self._buckets.index(value)] += 1
        self._count += 1
        self._sum += value
        if self._min is None or value < self._min:
            self._min = value
        if self._max is None or value > self._max:
            self._max = value

    def snapshot(self) -> HistogramSnapshot:
        return HistogramSnapshot(
            boundaries=self._buckets.boundaries,
            bucket_counts=tuple(self._counts),
            count=self._count,
            sum=self._sum,
            min=self._min,
            max=self._max,
        )


class MetricsRecorder:
    """Record latency and throughput of resolved units.

    ``record`` is meant to be called exactly once per resolved unit; the
    orchestrator does so after building the unit's result.
    """

    def __init__(
        self,
        *,
        ttft_buckets: Optional[ExponentialBuckets] = None,
        duration_buckets: Optional[ExponentialBuckets] = None,
    ) -> None:
        self._lock = RLock()
        self._ttft_buckets = ttft_buckets or ExponentialBuckets.from_tuple(FANOUT_TTFT_BUCKETS)
        self._duration_buckets = duration_buckets or ExponentialBuckets.from_tuple(FANOUT_DURATION_BUCKETS)
        self._ttft: Dict[SeriesKey, _Histogram] = {}
        self._duration: Dict[SeriesKey, _Histogram] = {}
        self._tokens: Dict[SeriesKey, int] = {}

    def record(self, result: ModelStreamResult) -> None:
        """Fold one resolved unit into the instruments."""
        key = (result.model_id, result.provider)
        metrics = result.metrics
        with self._lock:
            if metrics.time_to_first_token_ms is not None:
                self._series(self._ttft, key, self._ttft_buckets).observe(metrics.time_to_first_token_ms)
            self._series(self._duration, key, self._duration_buckets).observe(metrics.total_duration_ms)
            if metrics.output_tokens > 0:
                self._tokens[key] = self._tokens.get(key, 0) + metrics.output_tokens

    @staticmethod
    def _series(table: Dict[SeriesKey, _Histogram], key: SeriesKey, buckets: ExponentialBuckets) -> _Histogram:
        hist = table.get(key)
        if hist is None:
            hist = table[key] = _Histogram(buckets)
        return hist

    def snapshot(self, reset: bool = False) -> MetricsSnapshot:
        """Return an immutable snapshot; optionally clear every series afterwards."""
        with self._lock:
            snap = MetricsSnapshot.build(
                ttft={k: h.snapshot() for k, h in self._ttft.items()},
                duration={k: h.snapshot() for k, h in self._duration.items()},
                tokens={k: CounterSnapshot(value=v) for k, v in self._tokens.items()},
                generated_at_ms=int(time.monotonic() * 1000),
            )
            if reset:
                self._ttft.clear()
                self._duration.clear()
                self._tokens.clear()
            return snap


__all__ = ["MetricsRecorder"]
