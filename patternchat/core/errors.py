"""
Exception hierarchy for PatternChat.

Lookup, assembly, provider and empty-result failures propagate to the
caller. Capability negotiation and file-change parsing failures are
absorbed where they happen and only logged.
"""

NO_SESSION_PATTERN_USER_MESSAGES = "no session, pattern or user messages provided"


class PatternChatError(RuntimeError):
    """Base class for all PatternChat errors."""


class NotFoundError(PatternChatError):
    """A named artifact does not exist in storage."""

    def __init__(self, kind: str, name: str):
        super().__init__(f"could not find {kind} {name}")
        self.kind = kind
        self.name = name


class SessionNotFoundError(NotFoundError):
    def __init__(self, name: str):
        super().__init__("session", name)


class ContextNotFoundError(NotFoundError):
    def __init__(self, name: str):
        super().__init__("context", name)


class PatternNotFoundError(NotFoundError):
    def __init__(self, name: str):
        super().__init__("pattern", name)


class StrategyNotFoundError(NotFoundError):
    def __init__(self, name: str):
        super().__init__("strategy", name)


class NoContentError(PatternChatError):
    """Assembly produced an empty session."""

    def __init__(self):
        super().__init__(NO_SESSION_PATTERN_USER_MESSAGES)


class NoMessagesError(PatternChatError):
    """The session holds nothing a provider can receive."""

    def __init__(self):
        super().__init__("cannot send chat request: no messages provided")


class TemplateError(PatternChatError):
    """Template substitution failed."""


class ProviderError(PatternChatError):
    """A provider call failed at the transport or API level."""

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class ProviderNotConfiguredError(PatternChatError):
    """
    Raised when a requested provider is unknown or not fully configured.
    """


class EmptyResponseError(PatternChatError):
    """The provider answered, but nothing usable was left after processing."""

    def __init__(self):
        super().__init__("empty response from AI model")


class FileChangesParseError(PatternChatError):
    """The structured file-changes region of a response is malformed."""
