"""Stream metrics package.

Exports the per-unit metrics recorder and its snapshots.
"""

from .recorder import (
    DURATION_METRIC,
    OUTPUT_TOKENS_METRIC,
    TTFT_METRIC,
    CounterSnapshot,
    ExponentialBuckets,
    HistogramSnapshot,
    MetricsRecorder,
    MetricsSnapshot,
    SeriesKey,
)

__all__ = [
    "MetricsRecorder",
    "MetricsSnapshot",
    "HistogramSnapshot",
    "CounterSnapshot",
    "ExponentialBuckets",
    "SeriesKey",
    "TTFT_METRIC",
    "DURATION_METRIC",
    "OUTPUT_TOKENS_METRIC",
]
