"""Main orchestrator wiring transports to the conversation engine."""

import logging
from typing import Any, Callable, Dict, List, Optional

from config.settings import Settings
from engine.conversation import Conversation
from engine.registry import ConversationRegistry
from llm.base_client import BaseLLMClient
from llm.factory import client_from_settings
from tools import Tool, ToolDispatcher, ToolRegistry, default_tools
from utils.webhook import WebhookNotifier

logger = logging.getLogger(__name__)


class AgentOrchestrator:
    """
    Facade used by transport adapters.

    Owns the completion client, the tool registry and dispatcher, the webhook
    notifier and the conversation registry. Voice relays call
    ``start_voice_call`` on setup and ``handle_voice_prompt`` / ``handle_dtmf``
    afterwards; SMS webhooks call ``handle_sms``.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        llm_client: Optional[BaseLLMClient] = None,
        tools: Optional[List[Tool]] = None,
        notifier: Optional[WebhookNotifier] = None,
        on_conversation: Optional[Callable[[Conversation], None]] = None
    ):
        """
        Initialize orchestrator.

        Args:
            settings: Application settings
            llm_client: Completion backend (default: built from settings)
            tools: Tools offered to the model (default: built-in tools)
            notifier: Webhook notifier (default: built from settings)
            on_conversation: Called with every newly created conversation,
                before its first turn, so the transport can subscribe

        Raises:
            ValueError: If the configured provider is unknown
            RuntimeError: If the provider's API key is missing
        """
        self.settings = settings or Settings()
        self.on_conversation = on_conversation

        self.llm_client = llm_client or client_from_settings(self.settings)

        if tools is None:
            tools = default_tools(self.settings.languages_path)
        self.tool_registry = ToolRegistry(tools)
        self.dispatcher = ToolDispatcher(self.tool_registry)
        logger.info(f"Tool registry initialized with {len(self.tool_registry)} tools")

        self.notifier = notifier or WebhookNotifier(
            url=self.settings.webhook_url,
            timeout=self.settings.webhook_timeout
        )

        self.registry = ConversationRegistry(
            factory=self._new_conversation,
            sweep_interval=self.settings.sweep_interval_seconds,
            activity_ttl=self.settings.text_ttl_seconds
        )

    def _new_conversation(self, key: str, is_voice: bool) -> Conversation:
        conversation = Conversation(
            key=key,
            llm_client=self.llm_client,
            dispatcher=self.dispatcher,
            settings=self.settings,
            is_voice=is_voice,
            notifier=self.notifier
        )
        if self.on_conversation is not None:
            self.on_conversation(conversation)
        return conversation

    async def start_voice_call(
        self,
        from_number: str,
        to_number: str,
        direction: str = "inbound",
        instructions: Optional[str] = None,
        context: Optional[str] = None,
        close_handle: Optional[Callable[[], Any]] = None,
        call_sid: Optional[str] = None
    ) -> Conversation:
        """
        Start a voice conversation from a relay setup message.

        Args:
            from_number: Calling number
            to_number: Called number
            direction: Call direction; outbound calls use ``to_number`` as
                the customer
            instructions: System prompt text
            context: Additional context text
            close_handle: Releases the relay connection on close
            call_sid: Telephony call identifier used for live agent transfer

        Returns:
            The new conversation
        """
        if direction and "outbound" in direction:
            customer_number = to_number
            logger.info(f"Outbound call detected. Customer number: {customer_number}")
        else:
            customer_number = from_number
            logger.info(f"Inbound call detected. Customer number: {customer_number}")

        conversation = self.registry.create(customer_number, is_voice=True)
        conversation.close_handle = close_handle
        if call_sid:
            conversation.tool_context.tool_data["call_sid"] = call_sid

        await conversation.notify_initial_call_params(instructions=instructions, context=context)
        await conversation.run()
        return conversation

    async def handle_voice_prompt(self, key: str, text: str) -> bool:
        """Add a transcribed caller utterance and run a turn."""
        conversation = self.registry.get(key)
        if conversation is None:
            logger.warning(f"[{key}] No active conversation for voice prompt, ignoring")
            return False

        self.registry.touch(key)
        conversation.add_message("user", text)
        await conversation.run()
        return True

    async def handle_dtmf(self, key: str, digit: str) -> bool:
        """Add a keypad press and run a turn."""
        return await self.handle_voice_prompt(key, f"DTMF: {digit}")

    async def handle_sms(self, from_number: str, to_number: str, body: str) -> Conversation:
        """
        Handle an inbound SMS or WhatsApp message.

        Args:
            from_number: Sender (the customer)
            to_number: Agent number
            body: Message text

        Returns:
            The conversation that handled the message

        Raises:
            ValueError: If the sender or body is missing
        """
        if not from_number or not body:
            raise ValueError("Missing required fields: from_number and body")

        channel = "whatsapp" if "whatsapp:" in f"{from_number}{to_number or ''}" else "sms"
        logger.info(f"[{from_number}] Received {channel} message: {body}")

        conversation = self.registry.get(from_number)
        if conversation is None:
            conversation = self.registry.create(from_number, is_voice=False)
            conversation.add_message(
                "system",
                f"The customer's phone number is {from_number}. "
                f"The agent's phone number is {to_number}. "
                f"This is an {channel} conversation."
            )
        else:
            self.registry.touch(from_number)

        conversation.add_message("user", body)
        await conversation.run()
        return conversation

    def end_session(self, key: str) -> bool:
        """Close the conversation for ``key`` when its transport goes away."""
        closed = self.registry.close(key)
        if not closed:
            logger.info(f"[{key}] No conversation to close")
        return closed

    def start(self) -> None:
        self.registry.start()

    async def stop(self) -> None:
        await self.registry.stop()

    def stats(self) -> Dict[str, Any]:
        return self.registry.stats()
