"""Monotonic counter snapshot dataclass."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict


@dataclass(frozen=True)
class CounterSnapshot:
    """Value of one counter series at snapshot time."""

    value: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


__all__ = ["CounterSnapshot"]
