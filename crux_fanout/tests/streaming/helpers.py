"""Helpers for adapter and controller tests.

``byte_stream`` turns a list of chunks into the async byte iterator a
transport would hand to an adapter; ``collect`` drains an adapter or
controller generator into a list.
"""
from __future__ import annotations

from typing import AsyncIterator, Iterable, List, Optional, Union

from crux_fanout.base.models import StreamRequest

Chunk = Union[bytes, str]


def request_for(provider: str, model: str = "m1", **kwargs) -> StreamRequest:
    return StreamRequest.from_prompt(model, provider, "hi", **kwargs)


async def byte_stream(chunks: Iterable[Chunk], *, fail_with: Optional[BaseException] = None) -> AsyncIterator[bytes]:
    """Yield ``chunks`` as bytes, then raise ``fail_with`` when given."""
    for chunk in chunks:
        yield chunk.encode("utf-8") if isinstance(chunk, str) else chunk
    if fail_with is not None:
        raise fail_with


async def collect(events) -> List:
    return [event async for event in events]


def types_of(events) -> List[str]:
    return [event.type for event in events]
