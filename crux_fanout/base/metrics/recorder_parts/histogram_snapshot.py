"""Histogram snapshot dataclass.

Immutable point-in-time view of one histogram series, designed for
serialization and logging.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class HistogramSnapshot:
    """Immutable snapshot of one histogram series.

    Attributes:
        boundaries: Upper bucket boundaries (ms).
        bucket_counts: Observation count per bucket; one longer than
            ``boundaries`` (the last entry is the overflow bucket).
        count: Total number of observations.
        sum: Sum of all observed values.
        min: Smallest observed value, or None if no samples.
        max: Largest observed value, or None if no samples.
    """

    boundaries: Tuple[float, ...]
    bucket_counts: Tuple[int, ...]
    count: int
    sum: float
    min: Optional[float]
    max: Optional[float]

    @property
    def mean(self) -> Optional[float]:
        return self.sum / self.count if self.count else None

    def to_dict(self) -> Dict[str, Any]:
        """Return a dictionary representation suitable for JSON serialization."""
        return asdict(self)


__all__ = ["HistogramSnapshot"]
