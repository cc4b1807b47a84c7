# patternchat/core/chat_stream.py
"""
Event stream produced for front ends.

A chat request carries one or more prompts. Each prompt is processed in
order and yields `content` events (each classified as mermaid or markdown),
`error` events, and finally one `complete` event. Delivery stops as soon as
the caller reports that the client has disconnected, or closes or cancels
the generator.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import asdict, dataclass, field
from typing import AsyncGenerator, Callable, Dict, List, Optional, Set

from patternchat.core.channel import FragmentChannel
from patternchat.core.chat import Message, ROLE_USER
from patternchat.core.domain import ChatOptions, ChatRequest
from patternchat.core.errors import PatternChatError
from patternchat.core.registry import ChatterRegistry

logger = logging.getLogger(__name__)

EVENT_CONTENT = "content"
EVENT_ERROR = "error"
EVENT_COMPLETE = "complete"

FORMAT_MARKDOWN = "markdown"
FORMAT_MERMAID = "mermaid"
FORMAT_PLAIN = "plain"

MERMAID_PREFIXES = (
    "graph TD",
    "gantt",
    "flowchart",
    "sequenceDiagram",
    "classDiagram",
    "stateDiagram",
)


def detect_format(content: str) -> str:
    if content.startswith(MERMAID_PREFIXES):
        return FORMAT_MERMAID
    return FORMAT_MARKDOWN


@dataclass
class StreamEvent:
    type: str
    format: str
    content: str = ""

    @classmethod
    def content_event(cls, content: str) -> "StreamEvent":
        return cls(type=EVENT_CONTENT, format=detect_format(content), content=content)

    @classmethod
    def error_event(cls, message: str) -> "StreamEvent":
        return cls(type=EVENT_ERROR, format=FORMAT_PLAIN, content=f"Error: {message}")

    @classmethod
    def complete_event(cls) -> "StreamEvent":
        return cls(type=EVENT_COMPLETE, format=FORMAT_PLAIN)

    def to_json(self) -> str:
        return json.dumps(asdict(self))


@dataclass
class PromptRequest:
    user_input: str = ""
    vendor: str = ""
    model: str = ""
    context_name: str = ""
    pattern_name: str = ""
    strategy_name: str = ""
    session_name: str = ""
    variables: Dict[str, str] = field(default_factory=dict)


@dataclass
class ChatStreamRequest:
    prompts: List[PromptRequest] = field(default_factory=list)
    language: str = ""
    options: ChatOptions = field(default_factory=ChatOptions)


class ChatStreamService:
    """
    Drives a ChatStreamRequest prompt by prompt. With `stream=True` the
    model's fragments are forwarded as they arrive; otherwise one content
    event carries the whole answer.
    """

    def __init__(self, registry: ChatterRegistry, stream: bool = False, context_length: int = 2048):
        self.registry = registry
        self.stream = stream
        self.context_length = context_length
        self._tasks: Set[asyncio.Task] = set()

    async def stream_chat(
        self,
        request: ChatStreamRequest,
        is_disconnected: Callable[[], bool] = lambda: False,
    ) -> AsyncGenerator[StreamEvent, None]:
        logger.info(f"Received chat request - Language: '{request.language}', Prompts: {len(request.prompts)}")

        for i, prompt in enumerate(request.prompts):
            if is_disconnected():
                logger.info("Client disconnected")
                return

            logger.info(
                f"Processing prompt {i + 1}: Model={prompt.model} "
                f"Pattern={prompt.pattern_name} Context={prompt.context_name}"
            )

            channel = FragmentChannel()
            task = asyncio.create_task(self._process_prompt(prompt, request, channel))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

            drained = False
            try:
                async for event in channel:
                    if is_disconnected():
                        logger.info("Client disconnected")
                        return
                    yield event
                drained = True
            finally:
                if not drained:
                    # Closed, cancelled or disconnected mid-prompt.
                    channel.abandon()

            yield StreamEvent.complete_event()

    async def wait_idle(self) -> None:
        """Wait for prompt tasks still running after their consumer went away."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
            await asyncio.sleep(0)

    async def _process_prompt(
        self, prompt: PromptRequest, request: ChatStreamRequest, channel: FragmentChannel
    ) -> None:
        try:
            await self._send_prompt(prompt, request, channel)
        except PatternChatError as e:
            logger.error(f"Error processing prompt: {e}")
            await channel.send(StreamEvent.error_event(str(e)))
        except Exception as e:
            logger.exception("Unexpected error processing prompt")
            await channel.send(StreamEvent.error_event(str(e)))
        finally:
            await channel.close()

    async def _send_prompt(
        self, prompt: PromptRequest, request: ChatStreamRequest, channel: FragmentChannel
    ) -> None:
        chatter = self.registry.get_chatter(
            model=prompt.model,
            model_context_length=self.context_length,
            vendor=prompt.vendor,
            stream=self.stream,
        )
        chat_request = ChatRequest(
            message=Message(role=ROLE_USER, content=prompt.user_input),
            pattern_name=prompt.pattern_name,
            context_name=prompt.context_name,
            session_name=prompt.session_name,
            strategy_name=prompt.strategy_name,
            pattern_variables=dict(prompt.variables),
            language=request.language,
        )
        options = ChatOptions(
            model=prompt.model,
            temperature=request.options.temperature,
            top_p=request.options.top_p,
            frequency_penalty=request.options.frequency_penalty,
            presence_penalty=request.options.presence_penalty,
            thinking=request.options.thinking,
            suppress_think=request.options.suppress_think,
            think_start_tag=self.registry.config.get("think_start_tag") or request.options.think_start_tag,
            think_end_tag=self.registry.config.get("think_end_tag") or request.options.think_end_tag,
            search=request.options.search,
            search_location=request.options.search_location,
        )

        async def forward(fragment: str) -> None:
            await channel.send(StreamEvent.content_event(fragment))

        streamed: List[bool] = []

        async def on_fragment(fragment: str) -> None:
            streamed.append(True)
            await forward(fragment)

        session = await chatter.send(chat_request, options, on_fragment=on_fragment if self.stream else None)

        if streamed:
            return
        last: Optional[Message] = session.last_message()
        if last is None or not last.text():
            await channel.send(StreamEvent.error_event("No response content"))
            return
        await forward(last.text())
