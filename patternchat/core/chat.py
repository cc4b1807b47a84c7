# patternchat/core/chat.py
"""
Chat message and session models.

Messages mirror the OpenAI message shape (role + content) with an optional
list of typed parts for multi-part (text + attachment) input.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

ROLE_SYSTEM = "system"
ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"
ROLE_META = "meta"

PART_TEXT = "text"
PART_IMAGE_URL = "image_url"


# ----------------------------------------------------------------------
# Messages
# ----------------------------------------------------------------------

@dataclass
class MessagePart:
    """One typed part of a multi-part message."""
    type: str
    text: str = ""
    url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.type}
        if self.type == PART_TEXT:
            data["text"] = self.text
        else:
            data["url"] = self.url
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MessagePart":
        return cls(
            type=data.get("type") or PART_TEXT,
            text=data.get("text") or "",
            url=data.get("url"),
        )


@dataclass
class Message:
    """
    Internal representation of a chat message.

    When `parts` is non-empty it is the authoritative representation and
    `content` is ignored by providers.
    """
    role: str
    content: str = ""
    parts: List[MessagePart] = field(default_factory=list)

    @property
    def is_multi_part(self) -> bool:
        return bool(self.parts)

    def text(self) -> str:
        """Return the textual payload, joining text parts for multi-part messages."""
        if self.parts:
            return "\n".join(p.text for p in self.parts if p.type == PART_TEXT and p.text)
        return self.content

    def attachments(self) -> List[MessagePart]:
        return [p for p in self.parts if p.type != PART_TEXT]

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"role": self.role, "content": self.content}
        if self.parts:
            data["parts"] = [p.to_dict() for p in self.parts]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Message":
        return cls(
            role=data.get("role") or ROLE_USER,
            content=data.get("content") or "",
            parts=[MessagePart.from_dict(p) for p in data.get("parts") or []],
        )


# ----------------------------------------------------------------------
# Session
# ----------------------------------------------------------------------

@dataclass
class Session:
    """
    Ordered, mutable conversation. Only named sessions are persisted.
    """
    name: str = ""
    messages: List[Message] = field(default_factory=list)

    def append(self, *messages: Message) -> None:
        for message in messages:
            self.messages.append(message)
            logger.debug(
                f"Session '{self.name}': appended role={message.role}, "
                f"content_len={len(message.text())}"
            )

    def is_empty(self) -> bool:
        return not self.messages

    def vendor_messages(self) -> List[Message]:
        """Messages a provider may see (meta entries are kept for providers that honor them)."""
        return list(self.messages)

    def has_provider_content(self) -> bool:
        return any(m.role != ROLE_META for m in self.messages)

    def last_message(self) -> Optional[Message]:
        return self.messages[-1] if self.messages else None

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "messages": [m.to_dict() for m in self.messages]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any], name: str = "") -> "Session":
        return cls(
            name=name or data.get("name") or "",
            messages=[Message.from_dict(m) for m in data.get("messages") or []],
        )
