"""
Provider-agnostic domain models (DTOs) public surface.

This module re-exports the one-class-per-file implementations under
``crux_fanout.base.models_parts`` as the stable import path.
"""

from .models_parts.message import Message, Role
from .models_parts.sampling_params import SamplingParams
from .models_parts.token_usage import TokenUsage
from .models_parts.stream_request import StreamRequest
from .models_parts.model_stream_metrics import ModelStreamMetrics
from .models_parts.model_stream_result import ModelStreamResult

__all__ = [
    "Message",
    "Role",
    "SamplingParams",
    "TokenUsage",
    "StreamRequest",
    "ModelStreamMetrics",
    "ModelStreamResult",
]
