"""
Anthropic Provider Implementation

Concrete implementation of BaseAIProvider for the Anthropic Messages API.
Anthropic requires strict user/assistant alternation and receives system
text folded into the first user turn.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

import anthropic
from anthropic import AsyncAnthropic

from patternchat.core.ai.base import AIProviderConfig, BaseAIProvider
from patternchat.core.channel import FragmentChannel
from patternchat.core.chat import Message
from patternchat.core.citations import Citation, append_sources
from patternchat.core.domain import THINKING_BUDGETS, ChatOptions, ThinkingLevel
from patternchat.core.provider_normalizer import StrictAlternationNormalizer

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.anthropic.com/"
BETA_HEADER = "anthropic-beta"
WEB_SEARCH_TOOL_NAME = "web_search"
WEB_SEARCH_TOOL_TYPE = "web_search_20250305"
WEB_SEARCH_CITATION_TYPE = "web_search_result_location"
MAX_NUMERIC_THINKING_BUDGET = 10000

DEFAULT_MODELS = [
    "claude-3-7-sonnet-latest",
    "claude-3-7-sonnet-20250219",
    "claude-3-5-haiku-latest",
    "claude-3-5-haiku-20241022",
    "claude-3-opus-latest",
    "claude-3-opus-20240229",
    "claude-3-haiku-20240307",
    "claude-opus-4-20250514",
    "claude-sonnet-4-20250514",
    "claude-opus-4-1-20250805",
    "claude-sonnet-4-5",
    "claude-sonnet-4-5-20250929",
    "claude-opus-4-5",
    "claude-opus-4-5-20251101",
    "claude-haiku-4-5",
    "claude-haiku-4-5-20251001",
]

CONTEXT_1M_BETA = "context-1m-2025-08-07"

MODEL_BETAS: Dict[str, List[str]] = {
    "claude-sonnet-4-20250514": [CONTEXT_1M_BETA],
    "claude-sonnet-4-5": [CONTEXT_1M_BETA],
    "claude-sonnet-4-5-20250929": [CONTEXT_1M_BETA],
}


def parse_thinking(level: str) -> Optional[Dict[str, Any]]:
    """
    Map a thinking level ("off", "low", "medium", "high" or a token count)
    to the Messages API `thinking` parameter. None means "leave unset".
    """
    lower = (level or "").strip().lower()
    if not lower:
        return None
    if lower == ThinkingLevel.OFF.value:
        return {"type": "disabled"}
    try:
        budget = THINKING_BUDGETS.get(ThinkingLevel(lower))
    except ValueError:
        budget = None
    if budget:
        return {"type": "enabled", "budget_tokens": budget}
    try:
        tokens = int(lower)
    except ValueError:
        return None
    if 1 <= tokens <= MAX_NUMERIC_THINKING_BUDGET:
        return {"type": "enabled", "budget_tokens": tokens}
    return None


class AnthropicProvider(BaseAIProvider):
    """Anthropic Messages API provider."""

    def __init__(self, config: AIProviderConfig, client: Optional[Any] = None):
        """Initialize Anthropic provider."""
        super().__init__(config)
        self.client = client or AsyncAnthropic(
            api_key=config.api_key,
            base_url=config.base_url or DEFAULT_BASE_URL,
            timeout=config.timeout,
        )
        self.normalizer = StrictAlternationNormalizer()
        self.model_betas = dict(MODEL_BETAS)
        logger.info("AnthropicProvider initialized")

    # ------------------------------------------------------------------
    # Request building
    # ------------------------------------------------------------------
    def build_params(self, messages: List[Dict[str, str]], options: ChatOptions) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "model": options.model,
            "max_tokens": self.config.max_tokens,
            "messages": messages,
        }

        # Some models reject temperature and top_p together.
        if options.uses_top_p():
            params["top_p"] = options.top_p
        else:
            params["temperature"] = options.temperature

        if options.search:
            tool: Dict[str, Any] = {
                "type": WEB_SEARCH_TOOL_TYPE,
                "name": WEB_SEARCH_TOOL_NAME,
                "cache_control": {"type": "ephemeral"},
            }
            if options.search_location:
                tool["user_location"] = {
                    "type": "approximate",
                    "timezone": options.search_location,
                }
            params["tools"] = [tool]

        thinking = parse_thinking(options.thinking)
        if thinking is not None:
            params["thinking"] = thinking

        return params

    def _beta_headers(self, model: str) -> Optional[Dict[str, str]]:
        betas = self.model_betas.get(model) or []
        if not betas:
            return None
        return {BETA_HEADER: ",".join(betas)}

    # ------------------------------------------------------------------
    # Blocking
    # ------------------------------------------------------------------
    async def _create_with_beta_fallback(self, params: Dict[str, Any]) -> Any:
        headers = self._beta_headers(params["model"])
        if headers:
            try:
                return await self.client.messages.create(**params, extra_headers=headers)
            except anthropic.APIError as e:
                logger.warning(
                    f"Anthropic beta feature {headers[BETA_HEADER]} failed, retrying without it: {e}"
                )
        return await self.client.messages.create(**params)

    async def send(self, messages: Sequence[Message], options: ChatOptions) -> str:
        normalized = self.normalizer.normalize(messages)
        if not normalized:
            return ""

        response = await self._create_with_beta_fallback(self.build_params(normalized, options))
        text_parts, citations = self.extract_text_and_citations(getattr(response, "content", None) or [])
        return append_sources("".join(text_parts), citations)

    @staticmethod
    def extract_text_and_citations(blocks: Sequence[Any]):
        text_parts: List[str] = []
        citations: List[Citation] = []
        for block in blocks:
            if getattr(block, "type", None) != "text" or not getattr(block, "text", ""):
                continue
            text_parts.append(block.text)
            for citation in getattr(block, "citations", None) or []:
                if getattr(citation, "type", None) != WEB_SEARCH_CITATION_TYPE:
                    continue
                citations.append(
                    Citation(
                        url=getattr(citation, "url", "") or "",
                        title=getattr(citation, "title", "") or "",
                        cited_text=getattr(citation, "cited_text", "") or "",
                    )
                )
        return text_parts, citations

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------
    async def _stream_into(
        self,
        params: Dict[str, Any],
        channel: FragmentChannel,
        headers: Optional[Dict[str, str]],
        sent: List[str],
    ) -> None:
        kwargs = dict(params)
        if headers:
            kwargs["extra_headers"] = headers
        async with self.client.messages.stream(**kwargs) as stream:
            async for text in stream.text_stream:
                if text:
                    sent.append(text)
                    await channel.send(text)

    async def send_stream(
        self,
        messages: Sequence[Message],
        options: ChatOptions,
        channel: FragmentChannel,
    ) -> None:
        normalized = self.normalizer.normalize(messages)
        if not normalized:
            # Nothing left after normalization; an empty stream is not an error.
            return

        params = self.build_params(normalized, options)
        headers = self._beta_headers(options.model)
        sent: List[str] = []
        if headers:
            try:
                await self._stream_into(params, channel, headers, sent)
                return
            except anthropic.APIError as e:
                # A stream that already produced output is not replayed.
                if sent:
                    raise
                logger.warning(
                    f"Anthropic beta feature {headers[BETA_HEADER]} failed, retrying without it: {e}"
                )
        await self._stream_into(params, channel, None, sent)

    def known_models(self) -> List[str]:
        return list(self.config.models or DEFAULT_MODELS)

    async def list_models(self) -> List[str]:
        return self.known_models()

    def needs_raw_mode(self, model: str) -> bool:
        return False
