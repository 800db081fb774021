"""
ModelStreamResult DTO: the outcome of one unit of work.

Exactly one result exists per submitted ``StreamRequest``. Results are built
once by the orchestrator when the unit resolves and never mutated afterwards.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from .model_stream_metrics import ModelStreamMetrics


@dataclass(frozen=True)
class ModelStreamResult:
    """Outcome of streaming one model.

    Attributes:
        model_id: Model identifier copied from the request.
        provider: Provider id copied from the request.
        content: Accumulated text. On failure this keeps whatever partial
            text arrived before the failure ("" when none did).
        success: ``True`` only when the stream reached a clean completion.
        error: ``"<code>: <message>"`` description of the failure, else ``None``.
        error_code: Normalized ``ErrorCode`` value of the failure, else ``None``.
        duration_ms: Dispatch to resolution, measured on every path.
        chunk_count: Number of ``TokenDelta`` events observed.
        metrics: Latency/throughput figures recorded by the metrics recorder.
    """

    model_id: str
    provider: str
    content: str
    success: bool
    error: Optional[str]
    error_code: Optional[str]
    duration_ms: float
    chunk_count: int
    metrics: ModelStreamMetrics

    def transcript_text(self) -> str:
        """Return the text a transcript should show for this model.

        Failed units with no content still get a visible line, so a transcript
        always has one row per requested model.
        """
        if self.content:
            return self.content
        if self.success:
            return ""
        return f"[{self.model_id}] failed: {self.error or 'unknown error'}"

    def to_dict(self) -> Dict[str, Any]:
        """Return a JSON-serializable dictionary."""
        return {
            "model_id": self.model_id,
            "provider": self.provider,
            "content": self.content,
            "success": self.success,
            "error": self.error,
            "error_code": self.error_code,
            "duration_ms": self.duration_ms,
            "chunk_count": self.chunk_count,
            "metrics": self.metrics.to_dict(),
        }


__all__ = ["ModelStreamResult"]
