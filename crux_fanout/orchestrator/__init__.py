"""Multi-model orchestrator: batched, isolated fan-out over many streams."""

from .batching import chunk_requests
from .callbacks import OrchestratorCallbacks
from .orchestrator import MultiModelOrchestrator

__all__ = [
    "MultiModelOrchestrator",
    "OrchestratorCallbacks",
    "chunk_requests",
]
