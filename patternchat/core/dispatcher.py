# patternchat/core/dispatcher.py
"""
Streaming dispatcher.

Runs one provider exchange either synchronously (`dispatch`) or as a
single background task that feeds a FragmentChannel (`start_stream` /
`stream`). The background task reports at most one error through a
one-slot queue and signals completion through an event; the error is
only inspected after the fragment channel is drained and the task is done.
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncGenerator, Optional, Sequence, Set

from patternchat.core.ai.base import BaseAIProvider
from patternchat.core.channel import DEFAULT_CHANNEL_SIZE, FragmentChannel
from patternchat.core.chat import Message
from patternchat.core.domain import ChatOptions
from patternchat.core.errors import PatternChatError, ProviderError

logger = logging.getLogger(__name__)


def _as_chat_error(provider: BaseAIProvider, exc: Exception) -> PatternChatError:
    if isinstance(exc, PatternChatError):
        return exc
    return ProviderError(provider.name, str(exc) or exc.__class__.__name__)


class StreamHandle:
    """
    Consumer view of one running streaming exchange.
    """

    def __init__(self, channel: FragmentChannel):
        self.channel = channel
        self.done = asyncio.Event()
        self._errors: "asyncio.Queue[PatternChatError]" = asyncio.Queue(maxsize=1)
        self._error_checked = False

    def report_error(self, error: PatternChatError) -> None:
        try:
            self._errors.put_nowait(error)
        except asyncio.QueueFull:
            logger.debug(f"Dropping secondary stream error: {error}")

    async def wait(self) -> Optional[PatternChatError]:
        """
        Wait for the producer to finish and return its error, if any.
        The error slot is read once; later calls return None.
        """
        await self.done.wait()
        if self._error_checked:
            return None
        self._error_checked = True
        try:
            return self._errors.get_nowait()
        except asyncio.QueueEmpty:
            return None

    def abandon(self) -> None:
        """Stop delivering fragments. The provider call runs to completion."""
        self.channel.abandon()


class StreamingDispatcher:
    """
    Issues provider calls and multiplexes their output for the caller.
    """

    def __init__(self, provider: BaseAIProvider, channel_size: int = DEFAULT_CHANNEL_SIZE):
        self.provider = provider
        self.channel_size = channel_size
        self._tasks: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Blocking mode
    # ------------------------------------------------------------------
    async def dispatch(self, messages: Sequence[Message], options: ChatOptions) -> str:
        """Perform the exchange and return the fully aggregated text."""
        logger.debug(f"Dispatching {len(messages)} messages to {self.provider.name} ({options.model})")
        try:
            return await self.provider.send(messages, options)
        except Exception as e:
            logger.error(f"{self.provider.name} request failed: {e}")
            raise _as_chat_error(self.provider, e) from e

    # ------------------------------------------------------------------
    # Streaming mode
    # ------------------------------------------------------------------
    def start_stream(self, messages: Sequence[Message], options: ChatOptions) -> StreamHandle:
        """
        Launch the producer task and return the handle to drain.
        Must be called from within a running event loop.
        """
        handle = StreamHandle(FragmentChannel(self.channel_size))
        task = asyncio.create_task(self._produce(messages, options, handle))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return handle

    async def _produce(
        self, messages: Sequence[Message], options: ChatOptions, handle: StreamHandle
    ) -> None:
        try:
            await self.provider.send_stream(messages, options, handle.channel)
        except Exception as e:
            logger.error(f"{self.provider.name} stream failed: {e}")
            handle.report_error(_as_chat_error(self.provider, e))
        finally:
            try:
                await handle.channel.close()
            finally:
                handle.done.set()

    async def stream(
        self, messages: Sequence[Message], options: ChatOptions
    ) -> AsyncGenerator[str, None]:
        """
        Yield fragments in provider order, then raise the producer's error
        if it reported one. Closing the generator early abandons the stream.
        """
        handle = self.start_stream(messages, options)
        drained = False
        try:
            async for fragment in handle.channel:
                yield fragment
            drained = True
        finally:
            if not drained:
                logger.info(f"Stream consumer went away; abandoning {self.provider.name} output")
                handle.abandon()

        error = await handle.wait()
        if error is not None:
            raise error

    async def collect(self, messages: Sequence[Message], options: ChatOptions) -> str:
        """Drain a streaming exchange into one string."""
        chunks = []
        async for fragment in self.stream(messages, options):
            chunks.append(fragment)
        return "".join(chunks)

    async def wait_idle(self) -> None:
        """Wait for any producer tasks still running (e.g. after abandonment)."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
