"""
Configuration access for PatternChat.

Module-level helpers over one lazily created ConfigService.
"""

import copy
from pathlib import Path
from typing import Any, Dict, Optional

from patternchat.services.config_service import DEFAULT_CONFIG_PATH, ConfigService

CONFIG_PATH = DEFAULT_CONFIG_PATH

DEFAULTS: Dict[str, Any] = {
    "default_vendor": "openai",
    "default_model": "gpt-4o-mini",
    "model_context_length": 0,
    "storage_dir": "~/.patternchat",
    "strategies_dir": "~/.patternchat/strategies",
    "think_start_tag": "<think>",
    "think_end_tag": "</think>",
    "providers": {},
}

# Global config service instance
_config_service: Optional[ConfigService] = None


def get_config_service(config_path: Optional[Path] = None) -> ConfigService:
    """Get or create the global config service instance."""
    global _config_service
    if _config_service is None or config_path is not None:
        _config_service = ConfigService(config_path=config_path or CONFIG_PATH)
    return _config_service


def load_config() -> Dict[str, Any]:
    """
    Load the config file merged over DEFAULTS.
    Raises FileNotFoundError if the file is missing.
    """
    merged = copy.deepcopy(DEFAULTS)
    merged.update(get_config_service().load())
    return merged


def save_config(data: Dict[str, Any]) -> bool:
    """Write configuration back to the config file."""
    return get_config_service().save(data)


def get_setting(key: str) -> Any:
    """Dot-notation lookup falling back to DEFAULTS."""
    service = get_config_service()
    return service.get(key, DEFAULTS.get(key))
