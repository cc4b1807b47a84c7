"""
OpenAI Provider Implementation

Concrete implementation of BaseAIProvider for OpenAI-compatible chat
completion APIs. Accepts free-form role sequences and multi-part content.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from openai import AsyncOpenAI

from patternchat.core.ai.base import AIProviderConfig, BaseAIProvider
from patternchat.core.channel import FragmentChannel
from patternchat.core.chat import Message
from patternchat.core.domain import ChatOptions
from patternchat.core.provider_normalizer import PermissiveNormalizer

logger = logging.getLogger(__name__)

# Reasoning model families: no sampling parameters, single pre-assembled message.
RAW_MODE_PREFIXES = ("o1", "o3", "o4", "gpt-5")


class OpenAIProvider(BaseAIProvider):
    """OpenAI API provider implementation."""

    def __init__(self, config: AIProviderConfig, client: Optional[Any] = None):
        """Initialize OpenAI provider."""
        super().__init__(config)
        self.client = client or AsyncOpenAI(
            api_key=config.api_key,
            base_url=config.base_url or None,
            timeout=config.timeout,
        )
        self.normalizer = PermissiveNormalizer()
        logger.info("OpenAIProvider initialized")

    def _is_reasoning_model(self, model: str) -> bool:
        return (model or "").lower().startswith(RAW_MODE_PREFIXES)

    def build_params(self, messages: List[Dict[str, Any]], options: ChatOptions) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "model": options.model,
            "messages": messages,
        }
        if not self._is_reasoning_model(options.model):
            if options.uses_top_p():
                params["top_p"] = options.top_p
            else:
                params["temperature"] = options.temperature
            if options.frequency_penalty:
                params["frequency_penalty"] = options.frequency_penalty
            if options.presence_penalty:
                params["presence_penalty"] = options.presence_penalty
        if self.config.extra_params:
            params.update(self.config.extra_params)
        return params

    async def send(self, messages: Sequence[Message], options: ChatOptions) -> str:
        """Get complete response from OpenAI."""
        normalized = self.normalizer.normalize(messages)
        if not normalized:
            return ""
        response = await self.client.chat.completions.create(
            stream=False, **self.build_params(normalized, options)
        )
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    async def send_stream(
        self,
        messages: Sequence[Message],
        options: ChatOptions,
        channel: FragmentChannel,
    ) -> None:
        """Stream responses from OpenAI."""
        normalized = self.normalizer.normalize(messages)
        if not normalized:
            return
        stream = await self.client.chat.completions.create(
            stream=True, **self.build_params(normalized, options)
        )
        async for chunk in stream:
            if chunk.choices:
                content = chunk.choices[0].delta.content
                if content:
                    await channel.send(content)

    async def list_models(self) -> List[str]:
        """Get available OpenAI models."""
        if self.config.models:
            return list(self.config.models)
        page = await self.client.models.list()
        return sorted(m.id for m in page.data)

    def needs_raw_mode(self, model: str) -> bool:
        return self._is_reasoning_model(model) or super().needs_raw_mode(model)
