"""One-class-per-file parts for the stream metrics recorder."""

from .counter_snapshot import CounterSnapshot
from .exponential_buckets import ExponentialBuckets
from .histogram_snapshot import HistogramSnapshot
from .metrics_recorder import MetricsRecorder
from .metrics_snapshot import (
    DURATION_METRIC,
    OUTPUT_TOKENS_METRIC,
    TTFT_METRIC,
    MetricsSnapshot,
    SeriesKey,
)

__all__ = [
    "CounterSnapshot",
    "ExponentialBuckets",
    "HistogramSnapshot",
    "MetricsRecorder",
    "MetricsSnapshot",
    "SeriesKey",
    "TTFT_METRIC",
    "DURATION_METRIC",
    "OUTPUT_TOKENS_METRIC",
]
