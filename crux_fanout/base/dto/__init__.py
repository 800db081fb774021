"""DTO validation package for the fan-out engine."""

from .stream_request import Role, MessageDTO, SamplingDTO, StreamRequestDTO
from .batch_options import BatchOptions

__all__ = [
    "Role",
    "MessageDTO",
    "SamplingDTO",
    "StreamRequestDTO",
    "BatchOptions",
]
