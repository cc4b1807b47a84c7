# Core modules
from .chat import Message, MessagePart, Session
from .chatter import Chatter
from .domain import ChatOptions, ChatRequest
from .registry import ChatterRegistry

__all__ = [
    "Message",
    "MessagePart",
    "Session",
    "Chatter",
    "ChatOptions",
    "ChatRequest",
    "ChatterRegistry",
]
