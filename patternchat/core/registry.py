"""
Builds Chatter instances from configuration.
"""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from patternchat.config.settings import DEFAULTS
from patternchat.core.ai.base import BaseAIProvider
from patternchat.core.ai.factory import AIProviderFactory
from patternchat.core.chatter import Chatter
from patternchat.core.errors import ProviderNotConfiguredError
from patternchat.core.storage import FileStorage, Storage
from patternchat.core.strategy import StrategyLoader

logger = logging.getLogger(__name__)


def normalize_model_name(model: str, known: List[str]) -> str:
    """Return the known spelling of `model` (case-insensitive), else `model` itself."""
    lower = model.lower()
    for candidate in known:
        if candidate.lower() == lower:
            return candidate
    return model


class ChatterRegistry:
    """
    Owns the configuration, the storage and the provider instances, and
    hands out Chatters for a (vendor, model) pair.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None, storage: Optional[Storage] = None):
        self.config: Dict[str, Any] = copy.deepcopy(DEFAULTS)
        self.config.update(copy.deepcopy(config or {}))
        self.storage = storage or FileStorage(Path(self.config["storage_dir"]))
        self.strategy_loader = StrategyLoader(self.config.get("strategies_dir"))
        self._providers: Dict[str, BaseAIProvider] = {}

    def get_provider(self, vendor: str) -> BaseAIProvider:
        key = (vendor or "").strip().lower()
        if key not in self._providers:
            self._providers[key] = AIProviderFactory.create_from_config(
                self.config.get("providers") or {}, key
            )
        return self._providers[key]

    def get_chatter(
        self,
        model: str = "",
        model_context_length: int = 0,
        vendor: str = "",
        stream: bool = False,
        dry_run: bool = False,
        project_root: Optional[str] = None,
    ) -> Chatter:
        model = model or self.config.get("default_model") or ""
        if not model:
            raise ProviderNotConfiguredError("no model specified and no default model configured")

        vendor = "dryrun" if dry_run else (vendor or self.config.get("default_vendor") or "")
        provider = self.get_provider(vendor)
        model = normalize_model_name(model, provider.known_models())
        logger.debug(f"Chatter for {provider.name}/{model} (stream={stream}, dry_run={dry_run})")

        return Chatter(
            storage=self.storage,
            provider=provider,
            model=model,
            stream=stream,
            dry_run=dry_run,
            strategy_loader=self.strategy_loader,
            model_context_length=model_context_length or int(self.config.get("model_context_length") or 0),
            project_root=project_root or os.getcwd(),
        )
