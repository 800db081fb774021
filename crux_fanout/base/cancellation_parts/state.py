"""Internal state holder for cancellation tokens.

Tracks the cancelled flag, the reason supplied at cancel time, and the
callbacks that still have to fire. Kept separate from the token class so the
token module stays focused on locking and cascading.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, Optional


@dataclass
class State:
    """Internal state for cooperative cancellation tokens."""

    cancelled: bool = False
    reason: Optional[str] = None
    callbacks: Dict[int, Callable[[Optional[str]], None]] = field(default_factory=dict)
    next_callback_id: int = 0


__all__ = ["State"]
