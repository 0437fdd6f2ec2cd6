"""Tests for Conversation and its event emitter."""

import asyncio
import logging

import pytest

from conftest import RecordingNotifier, ScriptedLLMClient, finish, text
from config.settings import Settings
from engine.conversation import Conversation
from engine.events import EventEmitter
from schemas.events import ConversationEvent
from tools.base import ToolRegistry
from tools.dispatcher import ToolDispatcher

KEY = "+15550001111"


class TestConversation:
    """Test conversation wiring and lifecycle."""

    def setup_method(self):
        """Set up test fixtures."""
        self.settings = Settings(openai_api_key="test-key", message_limit=5)
        self.notifier = RecordingNotifier()
        self.dispatcher = ToolDispatcher(ToolRegistry([]))

    def build(self, scripts=None, **kwargs):
        self.client = ScriptedLLMClient(scripts)
        return Conversation(
            key=KEY,
            llm_client=self.client,
            dispatcher=self.dispatcher,
            settings=self.settings,
            notifier=self.notifier,
            **kwargs
        )

    def test_requires_llm_client(self):
        with pytest.raises(ValueError, match="LLM client"):
            Conversation(key=KEY, llm_client=None, dispatcher=self.dispatcher)

    def test_message_limit_emits_handoff_once(self):
        conversation = self.build()
        handoffs = []
        conversation.on_handoff(handoffs.append)

        for i in range(8):
            conversation.add_message("user", f"message {i}")

        assert handoffs == [{
            "reasonCode": "message_limit_exceeded",
            "reason": "Conversation exceeded maximum message limit for safety",
            "messageCount": 6,
        }]

    @pytest.mark.asyncio
    async def test_run_streams_text_to_listeners(self):
        conversation = self.build([[text("Hi!"), finish()]])
        events = []
        conversation.on_text(lambda chunk, is_final, full_text: events.append((chunk, is_final, full_text)))

        conversation.add_message("user", "Hello")
        await conversation.run()

        assert events == [("Hi!", False, None), ("", True, "Hi!")]
        assert conversation.messages.last().content == "Hi!"

    @pytest.mark.asyncio
    async def test_initial_call_params(self):
        conversation = self.build()

        await conversation.notify_initial_call_params(
            instructions="You are a support agent.",
            context="Customer tier: gold."
        )

        assert [m.content for m in conversation.messages] == [
            f"The customer's phone number is {KEY}.",
            "You are a support agent.",
            "Customer tier: gold.",
        ]
        begin = self.notifier.sent[0]
        assert begin.sender == "begin"
        assert begin.message == KEY
        assert begin.phone_number == KEY

    @pytest.mark.asyncio
    async def test_closed_conversation_ignores_run(self):
        conversation = self.build([[text("Hi!"), finish()]])
        conversation.close()

        await conversation.run()

        assert self.client.calls == []

    @pytest.mark.asyncio
    async def test_close_awaits_async_handle(self):
        released = asyncio.Event()

        async def close_socket():
            released.set()

        conversation = self.build(close_handle=close_socket)
        conversation.close()
        conversation.close()

        await asyncio.wait_for(released.wait(), timeout=1)
        assert conversation.closed
        assert conversation.events.listener_count(ConversationEvent.TEXT) == 0

    @pytest.mark.asyncio
    async def test_failing_async_close_handle_is_logged(self, caplog):
        async def close_socket():
            raise ConnectionError("socket already gone")

        conversation = self.build(close_handle=close_socket)

        with caplog.at_level(logging.ERROR, logger="engine.conversation"):
            conversation.close()
            await conversation.wait_closed()

        assert f"[{KEY}] Failed to close transport: socket already gone" in caplog.text

    @pytest.mark.asyncio
    async def test_initial_call_params_survive_webhook_failure(self, caplog):
        self.notifier = RecordingNotifier(fail=True)
        conversation = self.build()

        with caplog.at_level(logging.ERROR, logger="engine.conversation"):
            await conversation.notify_initial_call_params(instructions="Be brief.")

        assert [m.content for m in conversation.messages] == [
            f"The customer's phone number is {KEY}.",
            "Be brief.",
        ]
        assert "Webhook notification failed: webhook down" in caplog.text

    def test_expiry_uses_channel_window(self):
        voice = self.build(is_voice=True)
        voice.touch(now=0)

        assert not voice.is_expired(now=self.settings.voice_ttl_seconds)
        assert voice.is_expired(now=self.settings.voice_ttl_seconds + 1)


class TestEventEmitter:
    """Test listener dispatch and isolation."""

    def setup_method(self):
        """Set up test fixtures."""
        self.emitter = EventEmitter(label=KEY)

    def test_failing_listener_does_not_stop_others(self):
        received = []

        def broken(*args):
            raise RuntimeError("listener bug")

        self.emitter.on("text", broken)
        self.emitter.on("text", lambda *args: received.append(args))

        assert self.emitter.emit(ConversationEvent.TEXT, "Hi", False, None) == 2
        assert received == [("Hi", False, None)]

    @pytest.mark.asyncio
    async def test_coroutine_listeners_are_scheduled(self):
        received = []

        async def listener(payload):
            received.append(payload)

        self.emitter.on(ConversationEvent.LANGUAGE, listener)
        self.emitter.emit(ConversationEvent.LANGUAGE, {"ttsLanguage": "es-ES"})
        await self.emitter.drain()

        assert received == [{"ttsLanguage": "es-ES"}]

    def test_off_and_counts(self):
        listener = self.emitter.on(ConversationEvent.HANDOFF, lambda payload: None)
        assert self.emitter.listener_count(ConversationEvent.HANDOFF) == 1

        self.emitter.off(ConversationEvent.HANDOFF, listener)
        assert self.emitter.listener_count(ConversationEvent.HANDOFF) == 0
        assert self.emitter.emit(ConversationEvent.HANDOFF, {}) == 0
