"""Exponential histogram bucket boundaries."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class ExponentialBuckets:
    """Boundaries ``start * factor**i`` for ``i in range(count)``.

    A value ``v`` falls in the first bucket whose upper boundary is ``>= v``;
    values above the last boundary land in a trailing overflow bucket, so a
    histogram has ``count + 1`` buckets.
    """

    start: float
    factor: float
    count: int

    def __post_init__(self) -> None:
        if self.start <= 0 or self.factor <= 1 or self.count < 1:
            raise ValueError("exponential buckets need start > 0, factor > 1 and count >= 1")

    @classmethod
    def from_tuple(cls, spec: Tuple[float, float, int]) -> "ExponentialBuckets":
        start, factor, count = spec
        return cls(start=float(start), factor=float(factor), count=int(count))

    @property
    def boundaries(self) -> Tuple[float, ...]:
        return tuple(self.start * self.factor**i for i in range(self.count))

    def index(self, value: float) -> int:
        """Return the bucket index for ``value`` (``count`` means overflow)."""
        for i, bound in enumerate(self.boundaries):
            if value <= bound:
                return i
        return self.count


__all__ = ["ExponentialBuckets"]
