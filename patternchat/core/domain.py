"""
Request and option types shared by the assembler, dispatcher and providers.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

from patternchat.core.chat import Message, ROLE_USER

DEFAULT_TEMPERATURE = 0.7
DEFAULT_TOP_P = 0.9
DEFAULT_LANGUAGE = "en"
DEFAULT_THINK_START_TAG = "<think>"
DEFAULT_THINK_END_TAG = "</think>"

# Pattern whose output carries structured file changes to apply locally.
CODING_FEATURE_PATTERN = "create_coding_feature"


class ThinkingLevel(str, Enum):
    """Reasoning effort requested from providers that support it."""
    OFF = "off"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


THINKING_BUDGETS: Dict[ThinkingLevel, int] = {
    ThinkingLevel.LOW: 1024,
    ThinkingLevel.MEDIUM: 2048,
    ThinkingLevel.HIGH: 4096,
}


@dataclass
class ChatRequest:
    """A single chat request as received from a front end."""
    message: Optional[Message] = None
    session_name: str = ""
    context_name: str = ""
    pattern_name: str = ""
    strategy_name: str = ""
    pattern_variables: Dict[str, str] = field(default_factory=dict)
    language: str = ""
    meta: str = ""
    input_has_vars: bool = False
    no_variable_replacement: bool = False

    def ensure_message(self) -> Message:
        if self.message is None:
            self.message = Message(role=ROLE_USER, content="")
        return self.message


@dataclass
class ChatOptions:
    """Per-call model options."""
    model: str = ""
    temperature: float = DEFAULT_TEMPERATURE
    top_p: float = DEFAULT_TOP_P
    frequency_penalty: float = 0.0
    presence_penalty: float = 0.0
    raw: bool = False
    thinking: str = ""
    suppress_think: bool = False
    think_start_tag: str = DEFAULT_THINK_START_TAG
    think_end_tag: str = DEFAULT_THINK_END_TAG
    search: bool = False
    search_location: str = ""
    model_context_length: int = 0

    def uses_top_p(self) -> bool:
        """True when the caller moved top-p away from its default."""
        return self.top_p != DEFAULT_TOP_P
