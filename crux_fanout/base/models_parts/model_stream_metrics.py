"""Per-unit latency and throughput measurements."""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class ModelStreamMetrics:
    """Timing and volume figures for one resolved unit.

    Attributes:
        time_to_first_token_ms: Dispatch to first ``TokenDelta``; ``None`` when
            no delta was ever observed.
        total_duration_ms: Dispatch to resolution.
        output_tokens: Provider-reported output tokens when available,
            otherwise the number of deltas received.
    """

    time_to_first_token_ms: Optional[float]
    total_duration_ms: float
    output_tokens: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


__all__ = ["ModelStreamMetrics"]
