"""crux_fanout package

Concurrent multi-model streaming: send one prompt to many LLM providers,
normalize their wire formats into one event model, and collect exactly one
result per model.

Public API (re-exported):
    - Version: ``__version__``
    - Orchestration: :class:`MultiModelOrchestrator`,
      :class:`OrchestratorCallbacks`
    - Requests and results: :class:`StreamRequest`, :class:`Message`,
      :class:`ModelStreamResult`
    - Errors: :class:`StreamFailure`, :class:`ErrorCode`
    - Cancellation: :class:`CancellationToken`
    - Transport: :class:`HttpxTransport`

Notes:
    - ``build_transcript`` renders a list of results as one text block where
      failed models appear as ``[model] failed: ...`` rows.
"""

from typing import Iterable

from .base.cancellation import CancellationToken
from .base.errors import ErrorCode, StreamFailure
from .base.http import HttpxTransport
from .base.models import Message, ModelStreamResult, StreamRequest
from .orchestrator import MultiModelOrchestrator, OrchestratorCallbacks

__version__ = "0.1.0"


def build_transcript(results: Iterable[ModelStreamResult], *, separator: str = "\n\n") -> str:
    """Join ``results`` into one transcript, one block per model.

    Failed results are rendered through ``ModelStreamResult.transcript_text``
    so a failure never leaves a silent gap.
    """
    blocks = []
    for result in results:
        text = result.transcript_text()
        if result.success:
            text = f"[{result.model_id}]\n{text}"
        blocks.append(text)
    return separator.join(blocks)


__all__ = [
    "__version__",
    "MultiModelOrchestrator",
    "OrchestratorCallbacks",
    "StreamRequest",
    "Message",
    "ModelStreamResult",
    "StreamFailure",
    "ErrorCode",
    "CancellationToken",
    "HttpxTransport",
    "build_transcript",
]
