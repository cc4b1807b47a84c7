"""
Tests for FragmentChannel and StreamingDispatcher:
- fragment order and stream/blocking equivalence
- provider errors surfaced only after the drain
- consumer abandonment
"""

import asyncio
from typing import List

import pytest

from patternchat.core.ai.base import AIProviderConfig, BaseAIProvider, ProviderType
from patternchat.core.channel import ChannelClosedError, FragmentChannel
from patternchat.core.chat import Message
from patternchat.core.dispatcher import StreamingDispatcher
from patternchat.core.domain import ChatOptions
from patternchat.core.errors import ProviderError


class ScriptedProvider(BaseAIProvider):
    """Emits a fixed list of fragments, optionally failing afterwards."""

    requires_api_key = False

    def __init__(self, fragments: List[str], fail_with: Exception = None):
        super().__init__(AIProviderConfig(provider_type=ProviderType.DRYRUN))
        self.fragments = fragments
        self.fail_with = fail_with
        self.finished = False

    async def send(self, messages, options) -> str:
        if self.fail_with:
            raise self.fail_with
        return "".join(self.fragments)

    async def send_stream(self, messages, options, channel) -> None:
        for fragment in self.fragments:
            await channel.send(fragment)
            await asyncio.sleep(0)
        self.finished = True
        if self.fail_with:
            raise self.fail_with


def run_async(coro):
    return asyncio.run(coro)


MESSAGES = [Message(role="user", content="hi")]


def test_channel_delivers_in_order_then_stops():
    async def scenario():
        channel = FragmentChannel(maxsize=2)

        async def produce():
            for part in ["a", "b", "c", "d"]:
                await channel.send(part)
            await channel.close()

        task = asyncio.create_task(produce())
        received = [fragment async for fragment in channel]
        await task
        return received

    assert run_async(scenario()) == ["a", "b", "c", "d"]


def test_channel_send_after_close_raises():
    async def scenario():
        channel = FragmentChannel()
        await channel.close()
        await channel.close()
        with pytest.raises(ChannelClosedError):
            await channel.send("late")

    run_async(scenario())


def test_close_on_full_channel_does_not_block():
    async def scenario():
        channel = FragmentChannel(maxsize=2)
        await channel.send("a")
        await channel.send("b")
        await asyncio.wait_for(channel.close(), timeout=1)
        return [fragment async for fragment in channel]

    assert run_async(scenario()) == ["a", "b"]


def test_cancelled_producer_can_still_close():
    async def scenario():
        channel = FragmentChannel(maxsize=1)

        async def produce():
            try:
                for i in range(10):
                    await channel.send(str(i))
            finally:
                await channel.close()

        task = asyncio.create_task(produce())
        await asyncio.sleep(0)
        task.cancel()
        await asyncio.wait_for(asyncio.gather(task, return_exceptions=True), timeout=1)
        return task, channel

    task, channel = run_async(scenario())
    assert task.cancelled()
    assert channel.closed


def test_abandoned_channel_drops_fragments():
    async def scenario():
        channel = FragmentChannel(maxsize=1)
        await channel.send("buffered")
        channel.abandon()
        assert await channel.send("dropped") is False
        return [fragment async for fragment in channel]

    assert run_async(scenario()) == []


def test_stream_matches_blocking_result():
    fragments = ["Hel", "lo", ", ", "world", "!"]

    async def scenario():
        dispatcher = StreamingDispatcher(ScriptedProvider(fragments), channel_size=2)
        streamed = [f async for f in dispatcher.stream(MESSAGES, ChatOptions())]
        blocking = await dispatcher.dispatch(MESSAGES, ChatOptions())
        return streamed, blocking

    streamed, blocking = run_async(scenario())
    assert streamed == fragments
    assert "".join(streamed) == blocking


def test_collect_joins_fragments():
    dispatcher = StreamingDispatcher(ScriptedProvider(["a", "b"]))
    assert run_async(dispatcher.collect(MESSAGES, ChatOptions())) == "ab"


def test_stream_error_raised_after_all_fragments():
    async def scenario():
        provider = ScriptedProvider(["one", "two"], fail_with=ConnectionError("reset by peer"))
        dispatcher = StreamingDispatcher(provider)
        received = []
        with pytest.raises(ProviderError) as excinfo:
            async for fragment in dispatcher.stream(MESSAGES, ChatOptions()):
                received.append(fragment)
        return received, excinfo.value

    received, error = run_async(scenario())
    assert received == ["one", "two"]
    assert "reset by peer" in str(error)
    assert error.provider == "dryrun"


def test_blocking_error_wrapped():
    async def scenario():
        dispatcher = StreamingDispatcher(ScriptedProvider([], fail_with=TimeoutError()))
        await dispatcher.dispatch(MESSAGES, ChatOptions())

    with pytest.raises(ProviderError, match="TimeoutError"):
        run_async(scenario())


def test_handle_error_read_once():
    async def scenario():
        dispatcher = StreamingDispatcher(ScriptedProvider(["x"], fail_with=RuntimeError("boom")))
        handle = dispatcher.start_stream(MESSAGES, ChatOptions())
        [f async for f in handle.channel]
        first = await handle.wait()
        second = await handle.wait()
        return first, second

    first, second = run_async(scenario())
    assert isinstance(first, ProviderError)
    assert second is None


def test_consumer_leaving_early_abandons_stream():
    async def scenario():
        provider = ScriptedProvider([str(i) for i in range(50)])
        dispatcher = StreamingDispatcher(provider, channel_size=1)
        received = []
        stream = dispatcher.stream(MESSAGES, ChatOptions())
        async for fragment in stream:
            received.append(fragment)
            if len(received) == 3:
                break
        await stream.aclose()
        await dispatcher.wait_idle()
        return received, provider.finished

    received, finished = run_async(scenario())
    assert received == ["0", "1", "2"]
    assert finished
