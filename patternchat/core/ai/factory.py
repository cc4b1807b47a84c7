"""
Vendor name -> provider class registry, and provider construction from
the `providers` section of the configuration.
"""

import logging
import os
from typing import Any, Dict, List, Type

from patternchat.core.ai.anthropic_provider import AnthropicProvider
from patternchat.core.ai.base import AIProviderConfig, BaseAIProvider, ProviderType
from patternchat.core.ai.dryrun_provider import DryRunProvider
from patternchat.core.ai.ollama_provider import OllamaProvider
from patternchat.core.ai.openai_provider import OpenAIProvider
from patternchat.core.errors import ProviderNotConfiguredError

logger = logging.getLogger(__name__)

# Environment fallbacks for settings missing from the config file.
ENV_FALLBACKS = {
    ProviderType.ANTHROPIC: ("api_key", "ANTHROPIC_API_KEY"),
    ProviderType.OPENAI: ("api_key", "OPENAI_API_KEY"),
    ProviderType.OLLAMA: ("base_url", "OLLAMA_BASE_URL"),
}


class AIProviderFactory:
    """
    Creates providers by vendor. Further vendors can be plugged in with
    `register_provider`.
    """

    _providers: Dict[ProviderType, Type[BaseAIProvider]] = {
        ProviderType.ANTHROPIC: AnthropicProvider,
        ProviderType.OPENAI: OpenAIProvider,
        ProviderType.OLLAMA: OllamaProvider,
        ProviderType.DRYRUN: DryRunProvider,
    }

    @classmethod
    def register_provider(
        cls,
        provider_type: ProviderType,
        provider_class: Type[BaseAIProvider]
    ) -> None:
        """Add or replace the class used for `provider_type`."""
        cls._providers[provider_type] = provider_class
        logger.info(f"Registered provider: {provider_type.value}")

    @classmethod
    def create(cls, config: AIProviderConfig) -> BaseAIProvider:
        """
        Instantiate the class registered for `config.provider_type`.

        Raises:
            ProviderNotConfiguredError: If the type is not registered or the
                configuration is incomplete
        """
        provider_class = cls._providers.get(config.provider_type)
        if not provider_class:
            raise ProviderNotConfiguredError(
                f"Provider type {config.provider_type.value} not registered"
            )
        try:
            return provider_class(config)
        except ValueError as e:
            raise ProviderNotConfiguredError(str(e)) from e

    @staticmethod
    def parse_provider_type(name: str) -> ProviderType:
        try:
            return ProviderType((name or "").strip().lower())
        except ValueError:
            raise ProviderNotConfiguredError(f"Unknown provider '{name}'") from None

    @classmethod
    def config_for(cls, provider_type: ProviderType, providers_config: Dict[str, Any]) -> AIProviderConfig:
        section: Dict[str, Any] = dict(providers_config.get(provider_type.value) or {})
        fallback = ENV_FALLBACKS.get(provider_type)
        if fallback:
            key, env_name = fallback
            if not section.get(key) and os.environ.get(env_name):
                section[key] = os.environ[env_name]
        return AIProviderConfig(
            provider_type=provider_type,
            api_key=section.get("api_key"),
            base_url=section.get("base_url"),
            max_tokens=int(section.get("max_tokens", 4096)),
            timeout=int(section.get("timeout", 60)),
            models=list(section.get("models") or []),
            raw_mode_models=list(section.get("raw_mode_models") or []),
            extra_params=section.get("extra_params"),
        )

    @classmethod
    def create_from_config(
        cls,
        providers_config: Dict[str, Any],
        provider_name: str,
    ) -> BaseAIProvider:
        """
        Build the provider named `provider_name` (case-insensitive) from
        `providers_config[provider_name]`, filling gaps from the environment.
        """
        provider_type = cls.parse_provider_type(provider_name)
        return cls.create(cls.config_for(provider_type, providers_config))

    @classmethod
    def get_available_providers(cls) -> List[str]:
        """Registered vendor names."""
        return [pt.value for pt in cls._providers.keys()]
