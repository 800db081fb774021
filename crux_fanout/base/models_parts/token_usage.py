"""Token usage reported by a provider in its terminal payloads."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class TokenUsage:
    """Input/output token counts; either may be unknown."""

    input_tokens: Optional[int] = None
    output_tokens: Optional[int] = None

    def merge(self, other: "TokenUsage | None") -> "TokenUsage":
        """Return a copy where values set on ``other`` take precedence."""
        if other is None:
            return self
        return TokenUsage(
            input_tokens=other.input_tokens if other.input_tokens is not None else self.input_tokens,
            output_tokens=other.output_tokens if other.output_tokens is not None else self.output_tokens,
        )


__all__ = ["TokenUsage"]
