"""
Dry-run provider: sends nothing, answers with what would have been sent.
"""

from typing import Optional, Sequence

from patternchat.core.ai.base import AIProviderConfig, BaseAIProvider, ProviderType
from patternchat.core.channel import FragmentChannel
from patternchat.core.chat import Message
from patternchat.core.domain import ChatOptions
from patternchat.core.provider_normalizer import PermissiveNormalizer, render_messages


class DryRunProvider(BaseAIProvider):
    requires_api_key = False

    def __init__(self, config: Optional[AIProviderConfig] = None):
        super().__init__(config or AIProviderConfig(provider_type=ProviderType.DRYRUN))
        self.normalizer = PermissiveNormalizer(allowed_roles=("system", "user", "assistant", "meta"))

    def render(self, messages: Sequence[Message], options: ChatOptions) -> str:
        lines = ["Dry run: messages that would be sent", ""]
        lines.append(render_messages(self.normalizer.normalize(messages)))
        lines.append("Options:")
        lines.append(f"Model: {options.model}")
        lines.append(f"Temperature: {options.temperature}")
        lines.append(f"TopP: {options.top_p}")
        lines.append(f"PresencePenalty: {options.presence_penalty}")
        lines.append(f"FrequencyPenalty: {options.frequency_penalty}")
        if options.thinking:
            lines.append(f"Thinking: {options.thinking}")
        if options.search:
            lines.append(f"Search: enabled ({options.search_location or 'no location'})")
        return "\n".join(lines) + "\n"

    async def send(self, messages: Sequence[Message], options: ChatOptions) -> str:
        return self.render(messages, options)

    async def send_stream(
        self,
        messages: Sequence[Message],
        options: ChatOptions,
        channel: FragmentChannel,
    ) -> None:
        for line in self.render(messages, options).splitlines(keepends=True):
            await channel.send(line)
