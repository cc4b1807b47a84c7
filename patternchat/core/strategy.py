"""
Strategy loader.

A strategy is a JSON file ``<strategies_dir>/<name>.json`` whose ``prompt``
field is prepended to the system message.
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from patternchat.core.errors import StrategyNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_STRATEGIES_DIR = Path("~/.patternchat/strategies")


@dataclass
class Strategy:
    name: str
    prompt: str = ""
    description: str = ""


class StrategyLoader:
    """Loads strategies by name from a directory of JSON files."""

    def __init__(self, strategies_dir: Optional[Union[str, Path]] = None):
        self.strategies_dir = Path(
            os.path.expanduser(str(strategies_dir or DEFAULT_STRATEGIES_DIR))
        )

    def load(self, name: str) -> Strategy:
        path = self.strategies_dir / f"{name}.json"
        if not path.is_file():
            raise StrategyNotFoundError(name)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise StrategyNotFoundError(name) from e
        if not isinstance(data, dict):
            raise StrategyNotFoundError(name)
        return Strategy(
            name=name,
            prompt=data.get("prompt") or "",
            description=data.get("description") or "",
        )

    def list_strategies(self) -> List[str]:
        if not self.strategies_dir.is_dir():
            return []
        return sorted(p.stem for p in self.strategies_dir.glob("*.json"))
