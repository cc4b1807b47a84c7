"""
Ollama Provider Implementation

Talks to a local or remote Ollama daemon. Streaming goes through aiohttp
(newline-delimited JSON); blocking calls and model listing use requests
in a worker thread.
"""

import asyncio
import json
import logging
from typing import Any, Dict, List, Sequence

import aiohttp
import requests

from patternchat.core.ai.base import AIProviderConfig, BaseAIProvider
from patternchat.core.channel import FragmentChannel
from patternchat.core.chat import Message
from patternchat.core.domain import ChatOptions
from patternchat.core.errors import ProviderError
from patternchat.core.provider_normalizer import PermissiveNormalizer

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://127.0.0.1:11434"
ERROR_BODY_LIMIT = 1024


class OllamaProvider(BaseAIProvider):
    """Ollama HTTP API provider."""

    requires_api_key = False

    def __init__(self, config: AIProviderConfig):
        super().__init__(config)
        self.base_url = (config.base_url or DEFAULT_BASE_URL).rstrip("/")
        self.normalizer = PermissiveNormalizer(supports_multi_part=False)

    def build_payload(self, messages: Sequence[Message], options: ChatOptions, stream: bool) -> Dict[str, Any]:
        model_options: Dict[str, Any] = {}
        if options.uses_top_p():
            model_options["top_p"] = options.top_p
        else:
            model_options["temperature"] = options.temperature
        if options.frequency_penalty:
            model_options["frequency_penalty"] = options.frequency_penalty
        if options.presence_penalty:
            model_options["presence_penalty"] = options.presence_penalty
        if options.model_context_length:
            model_options["num_ctx"] = options.model_context_length
        return {
            "model": options.model,
            "messages": self.normalizer.normalize(messages),
            "stream": stream,
            "options": model_options,
        }

    def _check_status(self, resp: requests.Response) -> None:
        if 200 <= resp.status_code < 300:
            return
        preview = (resp.text or "")[:ERROR_BODY_LIMIT] or resp.reason
        raise ProviderError(self.name, f"HTTP {resp.status_code}: {preview}")

    async def send(self, messages: Sequence[Message], options: ChatOptions) -> str:
        payload = self.build_payload(messages, options, stream=False)
        if not payload["messages"]:
            return ""

        def _call() -> str:
            resp = requests.post(f"{self.base_url}/api/chat", json=payload, timeout=self.config.timeout)
            self._check_status(resp)
            data = resp.json()
            return (data.get("message") or {}).get("content") or ""

        return await asyncio.to_thread(_call)

    async def send_stream(
        self,
        messages: Sequence[Message],
        options: ChatOptions,
        channel: FragmentChannel,
    ) -> None:
        payload = self.build_payload(messages, options, stream=True)
        if not payload["messages"]:
            return

        timeout = aiohttp.ClientTimeout(total=self.config.timeout)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.post(f"{self.base_url}/api/chat", json=payload) as resp:
                if resp.status >= 300:
                    body = (await resp.text())[:ERROR_BODY_LIMIT]
                    raise ProviderError(self.name, f"HTTP {resp.status}: {body or resp.reason}")
                # Ollama sends newline-delimited JSON; chunks are not line aligned.
                buffer = b""
                async for chunk in resp.content.iter_any():
                    buffer += chunk
                    while b"\n" in buffer:
                        line, buffer = buffer.split(b"\n", 1)
                        if await self._emit_line(line, channel):
                            return
                if buffer.strip():
                    await self._emit_line(buffer, channel)

    async def _emit_line(self, line: bytes, channel: FragmentChannel) -> bool:
        """Send one NDJSON record's text. Returns True on the final record."""
        if not line.strip():
            return False
        try:
            data = json.loads(line.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.debug(f"Ollama JSON decode error: {e}, line: {line[:100]!r}")
            return False
        if data.get("error"):
            raise ProviderError(self.name, str(data["error"]))
        text = (data.get("message") or {}).get("content")
        if text:
            await channel.send(text)
        return bool(data.get("done"))

    async def list_models(self) -> List[str]:
        if self.config.models:
            return list(self.config.models)

        def _call() -> List[str]:
            resp = requests.get(f"{self.base_url}/api/tags", timeout=self.config.timeout)
            self._check_status(resp)
            return [m.get("name") for m in resp.json().get("models") or [] if m.get("name")]

        return await asyncio.to_thread(_call)
