"""Sampling parameters forwarded to providers."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class SamplingParams:
    """Optional sampling knobs; ``None`` means "provider default"."""

    temperature: Optional[float] = None
    top_p: Optional[float] = None
    max_tokens: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Return only the parameters that were set."""
        data = {
            "temperature": self.temperature,
            "top_p": self.top_p,
            "max_tokens": self.max_tokens,
        }
        return {k: v for k, v in data.items() if v is not None}


__all__ = ["SamplingParams"]
