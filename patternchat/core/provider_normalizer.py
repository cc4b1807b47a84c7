"""
Provider normalization layer for PatternChat.

Turns the canonical message sequence into the shape a specific backend
accepts:

  - StrictAlternationNormalizer: backends that require strict
    user/assistant alternation and take no system turns (Anthropic).
    System text is folded into the first user turn and synthetic turns
    are inserted to keep alternation.
  - PermissiveNormalizer: OpenAI-compatible backends that accept free-form
    role sequences and multi-part content.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from patternchat.core.chat import (
    Message,
    PART_TEXT,
    ROLE_ASSISTANT,
    ROLE_SYSTEM,
    ROLE_USER,
)

logger = logging.getLogger(__name__)

DEFAULT_FILLER_ASSISTANT = "Okay."
DEFAULT_FILLER_USER = "Hi"


@dataclass
class StrictAlternationNormalizer:
    """
    Single pass over the messages tracking pending system text, whether
    that text was consumed, and whether the last emitted turn was a user
    turn.
    """

    filler_assistant: str = DEFAULT_FILLER_ASSISTANT
    filler_user: str = DEFAULT_FILLER_USER
    system_separator: str = "\n"

    def normalize(self, messages: Sequence[Message]) -> List[Dict[str, str]]:
        emitted: List[Dict[str, str]] = []
        pending_system = ""
        system_consumed = False
        last_was_user = False

        for msg in messages:
            content = msg.text()
            if not content.strip():
                continue

            if msg.role == ROLE_SYSTEM:
                if pending_system:
                    pending_system += self.system_separator + content
                else:
                    pending_system = content
                system_consumed = False

            elif msg.role == ROLE_USER:
                if pending_system and not system_consumed:
                    content = pending_system + "\n\n" + content
                    system_consumed = True
                    pending_system = ""
                if last_was_user:
                    emitted.append({"role": ROLE_ASSISTANT, "content": self.filler_assistant})
                emitted.append({"role": ROLE_USER, "content": content})
                last_was_user = True

            elif msg.role == ROLE_ASSISTANT:
                if not emitted and pending_system and not system_consumed:
                    emitted.append({"role": ROLE_USER, "content": pending_system})
                    system_consumed = True
                    pending_system = ""
                elif emitted and not last_was_user:
                    emitted.append({"role": ROLE_USER, "content": self.filler_user})
                emitted.append({"role": ROLE_ASSISTANT, "content": content})
                last_was_user = False

            else:
                logger.debug(f"Dropping unsupported role '{msg.role}' for strict provider")

        if not emitted and pending_system:
            emitted.append({"role": ROLE_USER, "content": pending_system})
        elif pending_system:
            logger.debug("Dropping trailing system text that followed the last user turn")

        return emitted


@dataclass
class PermissiveNormalizer:
    """
    OpenAI-style messages. Roles outside `allowed_roles` are dropped,
    multi-part messages become content-part arrays when supported.
    """

    allowed_roles: tuple = (ROLE_SYSTEM, ROLE_USER, ROLE_ASSISTANT)
    supports_multi_part: bool = True

    def _parts(self, msg: Message) -> List[Dict[str, Any]]:
        parts: List[Dict[str, Any]] = []
        for part in msg.parts:
            if part.type == PART_TEXT:
                parts.append({"type": "text", "text": part.text})
            elif part.url:
                parts.append({"type": "image_url", "image_url": {"url": part.url}})
        return parts

    def normalize(self, messages: Sequence[Message]) -> List[Dict[str, Any]]:
        out: List[Dict[str, Any]] = []
        for msg in messages:
            if msg.role not in self.allowed_roles:
                continue
            if msg.is_multi_part and self.supports_multi_part:
                out.append({"role": msg.role, "content": self._parts(msg)})
                continue
            content = msg.text()
            if not content.strip():
                continue
            out.append({"role": msg.role, "content": content})
        return out


def render_messages(messages: Sequence[Dict[str, Any]], system: Optional[str] = None) -> str:
    """
    Plain-text rendering of normalized messages, used for previews.
    """
    lines: List[str] = []
    if system:
        lines.append(f"SYSTEM:\n{system}\n")
    for m in messages:
        role = (m.get("role") or "user").upper()
        content = m.get("content")
        if isinstance(content, list):
            rendered = []
            for part in content:
                if part.get("type") == "text":
                    rendered.append(part.get("text") or "")
                else:
                    rendered.append(f"[{part.get('type')}]")
            content = "\n".join(rendered)
        lines.append(f"{role}:\n{content or ''}\n")
    return "\n".join(lines)
