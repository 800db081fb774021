"""Snapshot of every instrument held by a ``MetricsRecorder``."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Mapping, Tuple

from .counter_snapshot import CounterSnapshot
from .histogram_snapshot import HistogramSnapshot

SeriesKey = Tuple[str, str]  # (model_id, provider)

TTFT_METRIC = "fanout_ttft_ms"
DURATION_METRIC = "fanout_total_duration_ms"
OUTPUT_TOKENS_METRIC = "fanout_output_tokens"


@dataclass(frozen=True)
class MetricsSnapshot:
    """Read-only maps from ``(model_id, provider)`` to series snapshots."""

    ttft_ms: Mapping[SeriesKey, HistogramSnapshot]
    total_duration_ms: Mapping[SeriesKey, HistogramSnapshot]
    output_tokens: Mapping[SeriesKey, CounterSnapshot]
    generated_at_ms: int

    @classmethod
    def build(
        cls,
        ttft: Dict[SeriesKey, HistogramSnapshot],
        duration: Dict[SeriesKey, HistogramSnapshot],
        tokens: Dict[SeriesKey, CounterSnapshot],
        generated_at_ms: int,
    ) -> "MetricsSnapshot":
        return cls(
            ttft_ms=MappingProxyType(dict(ttft)),
            total_duration_ms=MappingProxyType(dict(duration)),
            output_tokens=MappingProxyType(dict(tokens)),
            generated_at_ms=generated_at_ms,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Return ``{metric: [{model_id, provider, ...series}]}`` for JSON output."""

        def rows(series: Mapping[SeriesKey, Any]) -> list:
            out = []
            for (model_id, provider), snap in sorted(series.items()):
                row = {"model_id": model_id, "provider": provider}
                row.update(snap.to_dict())
                out.append(row)
            return out

        return {
            TTFT_METRIC: rows(self.ttft_ms),
            DURATION_METRIC: rows(self.total_duration_ms),
            OUTPUT_TOKENS_METRIC: rows(self.output_tokens),
            "generated_at_ms": self.generated_at_ms,
        }


__all__ = [
    "SeriesKey",
    "MetricsSnapshot",
    "TTFT_METRIC",
    "DURATION_METRIC",
    "OUTPUT_TOKENS_METRIC",
]
