"""
Configuration Service

JSON-backed settings for PatternChat: provider credentials, default
vendor/model and the storage locations for sessions, contexts, patterns
and strategies.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger("PatternChat.ConfigService")

DEFAULT_CONFIG_PATH = Path.home() / ".patternchat" / "config.json"
PROVIDERS_KEY = "providers"


class ConfigService:
    """
    Holds one configuration document in memory.

    Keys are addressed with dots, e.g. ``providers.anthropic.api_key``.
    Constructing the service never fails on a missing or unreadable file;
    `load()` is the strict entry point.
    """

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = Path(config_path or DEFAULT_CONFIG_PATH)
        self._config: Dict[str, Any] = {}

        if self.config_path.exists():
            try:
                self.load()
            except ValueError:
                logger.warning(f"Ignoring unreadable config at {self.config_path}")

    def load(self) -> Dict[str, Any]:
        """
        Read the file, replacing the in-memory document.

        Raises:
            FileNotFoundError: the file does not exist
            ValueError: the file is not a JSON object
        """
        if not self.config_path.exists():
            logger.error(f"Config file not found at: {self.config_path}")
            raise FileNotFoundError(f"Config file not found at: {self.config_path}")

        raw = self.config_path.read_text(encoding="utf-8")
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in {self.config_path}: {e}")
            raise ValueError(f"Invalid JSON in {self.config_path}: {e}") from e

        if not isinstance(data, dict):
            raise ValueError(f"{self.config_path} must contain a JSON object")

        self._config = data
        logger.info(f"Loaded {len(data)} settings from {self.config_path}")
        return dict(data)

    def save(self, data: Optional[Dict[str, Any]] = None) -> bool:
        """Write the document (or `data`, which then becomes the document). False on I/O failure."""
        if data is not None:
            self._config = data
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            self.config_path.write_text(json.dumps(self._config, indent=4), encoding="utf-8")
        except OSError as e:
            logger.error(f"Could not write {self.config_path}: {e}")
            return False
        logger.info(f"Settings written to {self.config_path}")
        return True

    def get(self, key: str, default: Any = None) -> Any:
        node: Any = self._config
        for part in key.split("."):
            if not isinstance(node, dict) or node.get(part) is None:
                return default
            node = node[part]
        return node

    def set(self, key: str, value: Any) -> None:
        *parents, leaf = key.split(".")
        node = self._config
        for part in parents:
            if not isinstance(node.get(part), dict):
                node[part] = {}
            node = node[part]
        node[leaf] = value

    def provider_section(self, vendor: str) -> Dict[str, Any]:
        """Settings for one vendor (``providers.<vendor>``), empty when absent."""
        section = self.get(f"{PROVIDERS_KEY}.{vendor.lower()}", {})
        return dict(section) if isinstance(section, dict) else {}

    def get_all(self) -> Dict[str, Any]:
        return dict(self._config)
