"""Stream metrics recorder public surface.

Re-exports the one-class-per-file implementations from
``metrics/recorder_parts``.
"""

from .recorder_parts import (
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
