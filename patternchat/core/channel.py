"""
Bounded fragment channel between a streaming provider call and its consumer.

The producer `send`s fragments and `close`s the channel when done; the
consumer iterates with ``async for``. A consumer that goes away calls
`abandon`, after which sends are discarded instead of blocking.
"""

import asyncio
from typing import Any

DEFAULT_CHANNEL_SIZE = 64

_CLOSED = object()


class ChannelClosedError(RuntimeError):
    """Raised when sending on a closed channel."""


class FragmentChannel:
    def __init__(self, maxsize: int = DEFAULT_CHANNEL_SIZE):
        self._queue: "asyncio.Queue[Any]" = asyncio.Queue(maxsize=maxsize)
        self._closed = False
        self._abandoned = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def abandoned(self) -> bool:
        return self._abandoned

    async def send(self, fragment: str) -> bool:
        """
        Deliver one fragment. Returns False when the consumer is gone and
        the fragment was dropped.
        """
        if self._closed:
            raise ChannelClosedError("send on closed channel")
        if self._abandoned:
            return False
        await self._queue.put(fragment)
        return True

    async def close(self) -> None:
        """
        Mark the end of the stream. Never blocks: on a full queue the
        consumer stops once it has drained the buffered fragments.
        Closing twice is a no-op.
        """
        if self._closed:
            return
        self._closed = True
        if self._abandoned:
            return
        try:
            self._queue.put_nowait(_CLOSED)
        except asyncio.QueueFull:
            # No room for the sentinel; __anext__ checks the closed flag.
            pass

    def abandon(self) -> None:
        """Consumer side: stop delivery and release anything buffered."""
        self._abandoned = True
        while True:
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break

    def __aiter__(self) -> "FragmentChannel":
        return self

    async def __anext__(self) -> str:
        if self._abandoned or (self._closed and self._queue.empty()):
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item
