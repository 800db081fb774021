"""Models parts package public surface.

Re-exports individual DTOs so callers can import from
`crux_fanout.base.models_parts` if needed, while `crux_fanout.base.models`
remains the primary stable import path.
"""

from .message import Message, Role
from .sampling_params import SamplingParams
from .token_usage import TokenUsage
from .stream_request import StreamRequest
from .model_stream_metrics import ModelStreamMetrics
from .model_stream_result import ModelStreamResult

__all__ = [
    "Message",
    "Role",
    "SamplingParams",
    "TokenUsage",
    "StreamRequest",
    "ModelStreamMetrics",
    "ModelStreamResult",
]
