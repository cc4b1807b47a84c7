"""
AI Provider Abstraction Layer

Provides a unified interface for all AI providers (Anthropic, OpenAI, Ollama).
"""

from patternchat.core.ai.base import AIProviderConfig, BaseAIProvider, ProviderType
from patternchat.core.ai.anthropic_provider import AnthropicProvider
from patternchat.core.ai.openai_provider import OpenAIProvider
from patternchat.core.ai.ollama_provider import OllamaProvider
from patternchat.core.ai.dryrun_provider import DryRunProvider
from patternchat.core.ai.factory import AIProviderFactory

__all__ = [
    "AIProviderConfig",
    "BaseAIProvider",
    "ProviderType",
    "AnthropicProvider",
    "OpenAIProvider",
    "OllamaProvider",
    "DryRunProvider",
    "AIProviderFactory",
]
