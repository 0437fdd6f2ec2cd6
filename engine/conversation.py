"""A conversation with one external party."""

import asyncio
import inspect
import logging
import time
from typing import Any, Callable, Dict, Optional, Set

from config.settings import Settings
from llm.base_client import BaseLLMClient
from memory.message_store import MessageStore
from schemas.events import ConversationEvent, MessageLimitHandoff
from schemas.webhook import WebhookMessage
from tools.base import ToolContext
from tools.dispatcher import ToolDispatcher
from utils.webhook import WebhookNotifier
from .events import EventEmitter, Listener
from .streaming import StreamingEngine

logger = logging.getLogger(__name__)


class Conversation:
    """
    Binds a message store and a streaming engine to one party.

    The party key is usually a phone number. Transport adapters subscribe
    with ``on_text``, ``on_handoff`` and ``on_language``, write inbound
    messages with ``add_message`` and start turns with ``run``.
    """

    def __init__(
        self,
        key: str,
        llm_client: BaseLLMClient,
        dispatcher: ToolDispatcher,
        settings: Optional[Settings] = None,
        is_voice: bool = False,
        notifier: Optional[WebhookNotifier] = None,
        tool_data: Optional[Dict[str, Any]] = None,
        close_handle: Optional[Callable[[], Any]] = None
    ):
        """
        Initialize conversation.

        Args:
            key: Party identifier (phone number or session key)
            llm_client: Streaming completion backend
            dispatcher: Tool dispatcher shared across conversations
            settings: Engine tunables (default: Settings())
            is_voice: Whether this is a live call (shorter expiry window)
            notifier: Webhook side-channel
            tool_data: Credentials/config bag handed to tools
            close_handle: Called once to release the transport on close

        Raises:
            ValueError: If no LLM client is provided
        """
        if llm_client is None:
            raise ValueError(f"[{key}] Cannot start conversation without an LLM client")

        self.key = key
        self.settings = settings or Settings()
        self.is_voice = is_voice
        self.notifier = notifier
        self.close_handle = close_handle
        self.expires_at = 0.0
        self.closed = False
        self._closing: Set[asyncio.Future] = set()

        self.events = EventEmitter(label=key)
        self.messages = MessageStore(
            limit=self.settings.message_limit,
            on_limit_exceeded=self._on_message_limit,
            label=key
        )
        self.tool_context = ToolContext(
            party_key=key,
            messages=self.messages,
            tool_data=dict(tool_data if tool_data is not None else self.settings.tool_data),
            notifier=notifier
        )
        self.engine = StreamingEngine(
            key=key,
            llm_client=llm_client,
            messages=self.messages,
            dispatcher=dispatcher,
            tool_context=self.tool_context,
            events=self.events,
            temperature=self.settings.temperature,
            max_tokens=self.settings.max_tokens,
            min_chunk_chars=self.settings.min_chunk_chars,
            sentence_endings=self.settings.sentence_endings
        )

    def on_text(self, listener: Listener) -> Listener:
        """Subscribe to ``(chunk, is_final, full_text)`` text events."""
        return self.events.on(ConversationEvent.TEXT, listener)

    def on_handoff(self, listener: Listener) -> Listener:
        return self.events.on(ConversationEvent.HANDOFF, listener)

    def on_language(self, listener: Listener) -> Listener:
        return self.events.on(ConversationEvent.LANGUAGE, listener)

    def _on_message_limit(self, message_count: int) -> None:
        payload = MessageLimitHandoff(messageCount=message_count).to_payload()
        self.events.emit(ConversationEvent.HANDOFF, payload)

    def add_message(self, role: str, content: str) -> "Conversation":
        self.messages.add(role, content)
        return self

    async def run(self, is_user_turn: bool = True) -> None:
        if self.closed:
            logger.warning(f"[{self.key}] Ignoring run on closed conversation")
            return
        await self.engine.run(is_user_turn)

    @property
    def current_response_id(self) -> Optional[str]:
        return self.engine.current_response_id

    async def notify_initial_call_params(
        self,
        instructions: Optional[str] = None,
        context: Optional[str] = None
    ) -> None:
        """Announce the conversation to the webhook and seed the system prompt."""
        if self.notifier is not None:
            try:
                await self.notifier.notify(WebhookMessage(
                    sender="begin",
                    message=self.key,
                    phone_number=self.key
                ))
            except Exception as e:
                logger.error(f"[{self.key}] Webhook notification failed: {e}")

        self.add_message("system", f"The customer's phone number is {self.key}.")
        if instructions:
            self.add_message("system", instructions)
        if context:
            self.add_message("system", context)

    def touch(self, now: Optional[float] = None) -> None:
        """Renew the expiry window after inbound activity."""
        now = time.monotonic() if now is None else now
        self.expires_at = now + self.settings.ttl_for(self.is_voice)

    def is_expired(self, now: Optional[float] = None) -> bool:
        now = time.monotonic() if now is None else now
        return self.expires_at < now

    def close(self) -> None:
        """Cancel any turn in flight and release the transport. Idempotent."""
        if self.closed:
            return
        self.closed = True
        self.engine.cancel()

        if self.close_handle is not None:
            try:
                result = self.close_handle()
                if inspect.isawaitable(result):
                    future = asyncio.ensure_future(result)
                    self._closing.add(future)
                    future.add_done_callback(self._on_transport_closed)
            except Exception as e:
                logger.error(f"[{self.key}] Failed to close transport: {e}")

        self.events.remove_all_listeners()
        logger.info(f"[{self.key}] Conversation closed")

    def _on_transport_closed(self, future: asyncio.Future) -> None:
        self._closing.discard(future)
        if not future.cancelled() and future.exception() is not None:
            logger.error(f"[{self.key}] Failed to close transport: {future.exception()}")

    async def wait_closed(self) -> None:
        """Wait for an asynchronous transport release to finish."""
        if self._closing:
            await asyncio.gather(*list(self._closing), return_exceptions=True)
