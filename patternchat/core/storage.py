# patternchat/core/storage.py
"""
Storage collaborator for sessions, contexts and patterns.

`Storage` is the interface the chat core depends on. `FileStorage` is a
plain directory-backed implementation:

    <root>/sessions/<name>.json
    <root>/contexts/<name>
    <root>/patterns/<name>/system.md
"""

from __future__ import annotations

import json
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from patternchat.core.chat import Session
from patternchat.core.errors import (
    ContextNotFoundError,
    PatternNotFoundError,
    SessionNotFoundError,
)
from patternchat.core.templates import apply_template, ensure_input_placeholder

logger = logging.getLogger(__name__)

PATTERN_FILE = "system.md"


class Storage(ABC):
    """Get/Save-by-name store used by the session assembler."""

    @abstractmethod
    def get_session(self, name: str) -> Session:
        """Return the named session or raise SessionNotFoundError."""

    @abstractmethod
    def save_session(self, session: Session) -> None:
        """Persist a named session (last write wins)."""

    @abstractmethod
    def get_context(self, name: str) -> str:
        """Return the named context text or raise ContextNotFoundError."""

    @abstractmethod
    def get_pattern(
        self,
        name: str,
        variables: Optional[Dict[str, str]],
        user_input: str,
        apply_variables: bool = True,
    ) -> str:
        """
        Return the named pattern with the user input incorporated.

        With `apply_variables` False the pattern's own placeholders stay
        literal and the input is appended verbatim.
        """


@dataclass
class FileStorage(Storage):
    """Directory-backed storage. Names map directly to file names."""

    root: Path

    def __post_init__(self) -> None:
        self.root = Path(os.path.expanduser(str(self.root)))

    @property
    def sessions_dir(self) -> Path:
        return self.root / "sessions"

    @property
    def contexts_dir(self) -> Path:
        return self.root / "contexts"

    @property
    def patterns_dir(self) -> Path:
        return self.root / "patterns"

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------
    def _session_path(self, name: str) -> Path:
        return self.sessions_dir / f"{name}.json"

    def get_session(self, name: str) -> Session:
        path = self._session_path(name)
        if not path.is_file():
            raise SessionNotFoundError(name)
        data = json.loads(path.read_text(encoding="utf-8"))
        return Session.from_dict(data, name=name)

    def save_session(self, session: Session) -> None:
        if not session.name:
            raise ValueError("cannot save an unnamed session")
        path = self._session_path(session.name)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(session.to_dict(), indent=2), encoding="utf-8")
        logger.debug(f"Saved session '{session.name}' ({len(session.messages)} messages)")

    def list_sessions(self) -> List[str]:
        if not self.sessions_dir.is_dir():
            return []
        return sorted(p.stem for p in self.sessions_dir.glob("*.json"))

    # ------------------------------------------------------------------
    # Contexts
    # ------------------------------------------------------------------
    def get_context(self, name: str) -> str:
        path = self.contexts_dir / name
        if not path.is_file():
            raise ContextNotFoundError(name)
        return path.read_text(encoding="utf-8")

    def save_context(self, name: str, content: str) -> None:
        self.contexts_dir.mkdir(parents=True, exist_ok=True)
        (self.contexts_dir / name).write_text(content, encoding="utf-8")

    # ------------------------------------------------------------------
    # Patterns
    # ------------------------------------------------------------------
    def _read_pattern(self, name: str) -> str:
        path = self.patterns_dir / name / PATTERN_FILE
        if not path.is_file():
            raise PatternNotFoundError(name)
        return path.read_text(encoding="utf-8")

    def get_pattern(
        self,
        name: str,
        variables: Optional[Dict[str, str]],
        user_input: str,
        apply_variables: bool = True,
    ) -> str:
        raw = self._read_pattern(name)
        if not apply_variables:
            if not user_input:
                return raw
            return raw + ("" if raw.endswith("\n") else "\n") + user_input
        return apply_template(ensure_input_placeholder(raw), variables, user_input)

    def save_pattern(self, name: str, content: str) -> None:
        target = self.patterns_dir / name
        target.mkdir(parents=True, exist_ok=True)
        (target / PATTERN_FILE).write_text(content, encoding="utf-8")
