"""
Message DTO carried by stream requests.

Defines the immutable `Message` dataclass and the `Role` literal representing
the sender role. The fan-out engine never interprets message content; it only
forwards it to the transport, which maps it to the provider's wire shape.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Literal


# Message roles accepted by every provider dialect.
Role = Literal["system", "user", "assistant", "tool"]


@dataclass(frozen=True)
class Message:
    """A single chat message.

    Attributes:
        role: The role of the message author (``"system"``, ``"user"``,
            ``"assistant"``, or ``"tool"``).
        content: Plain text content.
    """

    role: Role
    content: str

    def to_dict(self) -> Dict[str, Any]:
        """Return the ``{"role", "content"}`` mapping used on the wire."""
        return {"role": self.role, "content": self.content}


__all__ = [
    "Message",
    "Role",
]
