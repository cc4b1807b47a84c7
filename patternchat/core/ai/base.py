"""
Provider interface.

Every backend exposes the same capability set: blocking send, streaming
send, model listing and the raw-mode hint.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from patternchat.core.channel import FragmentChannel
from patternchat.core.chat import Message
from patternchat.core.domain import ChatOptions


class ProviderType(Enum):
    """Vendor names accepted in configuration."""
    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    OLLAMA = "ollama"
    DRYRUN = "dryrun"


@dataclass
class AIProviderConfig:
    """Connection and model settings for one vendor."""
    provider_type: ProviderType
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    max_tokens: int = 4096
    timeout: int = 60
    models: List[str] = field(default_factory=list)
    raw_mode_models: List[str] = field(default_factory=list)
    extra_params: Optional[Dict[str, Any]] = None


class BaseAIProvider(ABC):
    """
    One language-model backend.

    Subclasses normalize the canonical message list themselves; callers
    always pass the session's messages unchanged.
    """

    requires_api_key: bool = True

    def __init__(self, config: AIProviderConfig):
        self.config = config
        self.provider_type = config.provider_type
        self._validate_config()

    @property
    def name(self) -> str:
        return self.provider_type.value

    def _validate_config(self) -> None:
        if self.requires_api_key and not self.config.api_key:
            raise ValueError(f"API key required for {self.provider_type.value}")

    @abstractmethod
    async def send(self, messages: Sequence[Message], options: ChatOptions) -> str:
        """Perform the exchange and return the aggregated response text."""

    @abstractmethod
    async def send_stream(
        self,
        messages: Sequence[Message],
        options: ChatOptions,
        channel: FragmentChannel,
    ) -> None:
        """
        Stream the response into `channel`, one fragment per provider delta,
        in emission order. Errors are raised, not sent as text. The
        dispatcher closes the channel once this returns.
        """

    def known_models(self) -> List[str]:
        """Models known without a network round trip."""
        return list(self.config.models)

    async def list_models(self) -> List[str]:
        """Models the backend reports (may hit the network)."""
        return list(self.config.models)

    def needs_raw_mode(self, model: str) -> bool:
        """True when the model must receive one pre-assembled user message."""
        return model in self.config.raw_mode_models
