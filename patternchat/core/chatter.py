# patternchat/core/chatter.py
"""
PatternChat Chatter

Responsibilities:
  - Assemble a session from a ChatRequest: stored session, meta content,
    context, pattern (with template variables), strategy prefix and the
    user's message, in either raw or normal mode
  - Dispatch the session to the provider, streaming or blocking
  - Post-process the answer (reasoning blocks, coding-feature file changes)
  - Append the answer to the session and persist named sessions
"""

import logging
from dataclasses import replace
from pathlib import Path
from typing import Awaitable, Callable, Optional, Union

from patternchat.core.ai.base import BaseAIProvider
from patternchat.core.chat import (
    Message,
    MessagePart,
    PART_TEXT,
    ROLE_ASSISTANT,
    ROLE_META,
    ROLE_SYSTEM,
    ROLE_USER,
    Session,
)
from patternchat.core.dispatcher import StreamingDispatcher
from patternchat.core.domain import (
    CODING_FEATURE_PATTERN,
    DEFAULT_LANGUAGE,
    ChatOptions,
    ChatRequest,
)
from patternchat.core.errors import EmptyResponseError, NoContentError, NoMessagesError
from patternchat.core.file_changes import apply_file_changes, extract_file_changes
from patternchat.core.storage import Storage
from patternchat.core.strategy import StrategyLoader
from patternchat.core.templates import apply_template
from patternchat.core.think import strip_think_blocks

logger = logging.getLogger(__name__)

FragmentCallback = Callable[[str], Awaitable[None]]

LANGUAGE_INSTRUCTION = (
    "IMPORTANT: First, execute the instructions provided in this prompt using the user's input. "
    "Second, ensure your entire final response, including any section headers or titles "
    "generated as part of executing the instructions, is written ONLY in the {language} language."
)


class Chatter:
    """
    Connects:
      - Storage (sessions, contexts, patterns)
      - StrategyLoader (system prompt prefixes)
      - StreamingDispatcher (provider exchange)
    """

    def __init__(
        self,
        storage: Storage,
        provider: BaseAIProvider,
        model: str,
        stream: bool = False,
        dry_run: bool = False,
        strategy_loader: Optional[StrategyLoader] = None,
        model_context_length: int = 0,
        project_root: Optional[Union[str, Path]] = None,
    ):
        self.storage = storage
        self.provider = provider
        self.model = model
        self.stream = stream
        self.dry_run = dry_run
        self.strategy_loader = strategy_loader or StrategyLoader()
        self.model_context_length = model_context_length
        self.project_root = Path(project_root) if project_root else None
        self.dispatcher = StreamingDispatcher(provider)

    # --------------------------------------------------------------------------------------
    # SEND
    # --------------------------------------------------------------------------------------

    async def send(
        self,
        request: ChatRequest,
        options: ChatOptions,
        on_fragment: Optional[FragmentCallback] = None,
    ) -> Session:
        """
        Run one full exchange and return the updated session, whose last
        message is the assistant's answer.
        """
        options = replace(options)
        if self.provider.needs_raw_mode(self.model):
            options.raw = True

        session = self.build_session(request, options.raw)

        if not session.has_provider_content():
            if session.name:
                self.storage.save_session(session)
            raise NoMessagesError()

        options.model = self.model
        if not options.model_context_length:
            options.model_context_length = self.model_context_length

        if self.stream:
            message = await self._send_streaming(session, options, on_fragment)
        else:
            message = await self.dispatcher.dispatch(session.vendor_messages(), options)

        if options.suppress_think and not self.dry_run:
            message = strip_think_blocks(message, options.think_start_tag, options.think_end_tag)

        if not message:
            raise EmptyResponseError()

        if request.pattern_name == CODING_FEATURE_PATTERN:
            message = self._apply_coding_feature_changes(message)

        session.append(Message(role=ROLE_ASSISTANT, content=message))

        if session.name:
            self.storage.save_session(session)
        return session

    async def _send_streaming(
        self,
        session: Session,
        options: ChatOptions,
        on_fragment: Optional[FragmentCallback],
    ) -> str:
        chunks = []
        async for fragment in self.dispatcher.stream(session.vendor_messages(), options):
            chunks.append(fragment)
            # Fragments may contain reasoning blocks; only forward when they are kept.
            if on_fragment is not None and not options.suppress_think:
                await on_fragment(fragment)
        return "".join(chunks)

    def _apply_coding_feature_changes(self, message: str) -> str:
        result = extract_file_changes(message)
        if not result.ok:
            logger.warning(f"Failed to parse file changes: {result.error}")
            return result.summary

        if result.changes:
            root = self.project_root or Path.cwd()
            applied = apply_file_changes(root, result.changes)
            failed = [a for a in applied if not a.success]
            if failed:
                logger.warning(
                    f"Applied {len(applied) - len(failed)}/{len(applied)} file changes under {root}"
                )
            else:
                logger.info(f"Successfully applied {len(applied)} file changes under {root}")
        return result.summary

    # --------------------------------------------------------------------------------------
    # SESSION ASSEMBLY
    # --------------------------------------------------------------------------------------

    def build_session(self, request: ChatRequest, raw: bool) -> Session:
        """
        Construct the session for `request`.

        Raises a NotFoundError subclass when a named session, context,
        pattern or strategy is missing, and NoContentError when nothing
        at all would be sent.
        """
        session = self._load_or_create_session(request)

        if request.meta:
            session.append(Message(role=ROLE_META, content=request.meta))

        context_content = self._load_context_content(request)
        self._process_message_template_variables(request)
        pattern_content, input_used = self._load_pattern_content(request)
        system_message = self._build_system_message(request, context_content, pattern_content)

        if raw:
            self._populate_raw_mode_messages(session, request, system_message)
        else:
            self._populate_normal_mode_messages(session, request, system_message, input_used)

        if session.is_empty():
            raise NoContentError()
        return session

    def _load_or_create_session(self, request: ChatRequest) -> Session:
        if request.session_name:
            return self.storage.get_session(request.session_name)
        return Session()

    def _load_context_content(self, request: ChatRequest) -> str:
        if not request.context_name:
            return ""
        return self.storage.get_context(request.context_name)

    def _process_message_template_variables(self, request: ChatRequest) -> None:
        message = request.ensure_message()
        if request.input_has_vars and not request.no_variable_replacement:
            message.content = apply_template(message.content, request.pattern_variables, "")

    def _load_pattern_content(self, request: ChatRequest):
        """Returns (pattern_text, input_used)."""
        if not request.pattern_name:
            return "", False
        pattern = self.storage.get_pattern(
            request.pattern_name,
            request.pattern_variables,
            request.ensure_message().text(),
            apply_variables=not request.no_variable_replacement,
        )
        return pattern, True

    def _build_system_message(self, request: ChatRequest, context_content: str, pattern_content: str) -> str:
        system_message = "\n".join(
            part for part in (context_content.strip(), pattern_content.strip()) if part
        )

        if request.strategy_name:
            strategy = self.strategy_loader.load(request.strategy_name)
            if strategy.prompt:
                system_message = f"{strategy.prompt}\n{system_message}"

        if request.language and request.language != DEFAULT_LANGUAGE:
            instruction = LANGUAGE_INSTRUCTION.format(language=request.language)
            system_message = f"{system_message}\n\n{instruction}"

        return system_message

    # --------------------------------------------------------------------------------------
    # RAW / NORMAL MODE
    # --------------------------------------------------------------------------------------

    def _populate_raw_mode_messages(self, session: Session, request: ChatRequest, system_message: str) -> None:
        message = request.ensure_message()
        if not system_message:
            if message.is_multi_part or message.text():
                session.append(message)
            return

        if request.pattern_name:
            # The pattern already carries the user's input.
            final_content = system_message
        else:
            final_content = f"{system_message}\n\n{message.text()}"

        if message.is_multi_part:
            parts = [MessagePart(type=PART_TEXT, text=final_content)] + message.attachments()
            request.message = Message(role=ROLE_USER, parts=parts)
        else:
            request.message = Message(role=ROLE_USER, content=final_content)
        session.append(request.message)

    def _populate_normal_mode_messages(
        self, session: Session, request: ChatRequest, system_message: str, input_used: bool
    ) -> None:
        if system_message:
            session.append(Message(role=ROLE_SYSTEM, content=system_message))

        message = request.ensure_message()
        if message.is_multi_part or (not input_used and message.text()):
            session.append(message)
