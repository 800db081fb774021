"""Per-unit progress callbacks for the orchestrator.

Each hook is optional and may be a plain function or a coroutine function.
For every unit the orchestrator calls, in order:

1. ``on_start(model_id, provider)`` before the transport is opened, inside
   the unit's timeout;
2. ``on_chunk(model_id, delta, accumulated)`` for each text delta, where
   ``accumulated`` is the unit's full text so far (its length never shrinks);
3. ``on_complete(result)`` exactly once, with the final ``ModelStreamResult``;
4. ``on_error(model_id, cause)`` only when the unit failed.

Units skipped because their cancellation token fired before dispatch get
steps 3 and 4 only. An exception raised by a hook is traced as
``orchestrator.callback.error`` and otherwise ignored; it never affects the
unit or its siblings.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Union

from ..base.errors import StreamFailure
from ..base.models import ModelStreamResult

_Ret = Union[None, Awaitable[None]]

OnStart = Callable[[str, str], _Ret]
OnChunk = Callable[[str, str, str], _Ret]
OnComplete = Callable[[ModelStreamResult], _Ret]
OnError = Callable[[str, StreamFailure], _Ret]


@dataclass(frozen=True)
class OrchestratorCallbacks:
    """Optional per-unit hooks; see the module docstring for ordering."""

    on_start: Optional[OnStart] = None
    on_chunk: Optional[OnChunk] = None
    on_complete: Optional[OnComplete] = None
    on_error: Optional[OnError] = None

    def hook(self, name: str) -> Optional[Callable[..., Any]]:
        return getattr(self, name)


__all__ = [
    "OrchestratorCallbacks",
    "OnStart",
    "OnChunk",
    "OnComplete",
    "OnError",
]
