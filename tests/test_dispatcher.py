"""Tests for tool dispatch."""

import pytest

from conftest import (
    EchoTool, FailingTool, HandoffTool, RecordingNotifier, RejectingTool, make_context
)
from tools.base import ToolRegistry
from tools.dispatcher import ToolDispatcher, ToolOutcomeKind
from tools.switch_language import SwitchLanguageTool


class TestToolDispatcher:
    """Test outcome normalization and message-store side effects."""

    def setup_method(self):
        """Set up test fixtures."""
        self.echo = EchoTool()
        self.registry = ToolRegistry([
            self.echo, FailingTool(), RejectingTool(), HandoffTool(), SwitchLanguageTool()
        ])
        self.dispatcher = ToolDispatcher(self.registry)
        self.notifier = RecordingNotifier()
        self.context = make_context(notifier=self.notifier)

    def system_messages(self):
        return [m.content for m in self.context.messages if m.role == "system"]

    @pytest.mark.asyncio
    async def test_success_records_data_and_continue_prompt(self):
        outcome = await self.dispatcher.dispatch("lookupCustomer", {"phone": "+1"}, self.context)

        assert outcome.kind == ToolOutcomeKind.RESULT
        assert outcome.success
        assert outcome.data == {"found": True, "phone": "+1"}
        assert self.system_messages() == [
            'Tool call lookupCustomer succeeded with data: {"found": true, "phone": "+1"}',
            ToolDispatcher.CONTINUE_PROMPT,
        ]

    @pytest.mark.asyncio
    async def test_unknown_tool(self):
        outcome = await self.dispatcher.dispatch("launchRocket", {}, self.context)

        assert outcome.kind == ToolOutcomeKind.RESULT
        assert not outcome.success
        assert outcome.result.error == "Unknown tool: launchRocket"
        assert self.system_messages()[0] == "Tool call launchRocket failed: Unknown tool: launchRocket"

    @pytest.mark.asyncio
    async def test_executor_exception_is_contained(self):
        outcome = await self.dispatcher.dispatch("sendEmail", {}, self.context)

        assert not outcome.success
        assert outcome.result.error == "SMTP unreachable"
        assert self.system_messages() == [
            "Tool call sendEmail failed: SMTP unreachable",
            ToolDispatcher.CONTINUE_PROMPT,
        ]

    @pytest.mark.asyncio
    async def test_reported_failure(self):
        outcome = await self.dispatcher.dispatch("writeRecord", {}, self.context)

        assert not outcome.success
        assert "Tool call writeRecord failed: record is locked" in self.system_messages()

    @pytest.mark.asyncio
    async def test_handoff_kind_skips_continue_prompt(self):
        outcome = await self.dispatcher.dispatch("escalate", {"reason": "upset"}, self.context)

        assert outcome.kind == ToolOutcomeKind.HANDOFF
        assert outcome.data == {"reason": "upset"}
        assert ToolDispatcher.CONTINUE_PROMPT not in self.system_messages()

    @pytest.mark.asyncio
    async def test_language_kind(self):
        outcome = await self.dispatcher.dispatch(
            "switchLanguage",
            {"ttsLanguage": "fr", "transcriptionLanguage": "fr"},
            self.context
        )

        assert outcome.kind == ToolOutcomeKind.LANGUAGE
        assert outcome.data["ttsLanguage"] == "fr-FR"

    @pytest.mark.asyncio
    async def test_failed_control_tool_is_plain_result(self):
        outcome = await self.dispatcher.dispatch(
            "switchLanguage",
            {"ttsLanguage": "xx-XX", "transcriptionLanguage": "xx-XX"},
            self.context
        )

        assert outcome.kind == ToolOutcomeKind.RESULT
        assert not outcome.success

    @pytest.mark.asyncio
    async def test_webhook_messages(self):
        await self.dispatcher.dispatch("lookupCustomer", {"phone": "+1"}, self.context)

        messages = [m.message for m in self.notifier.sent]
        assert messages[0] == 'Executing lookupCustomer with args: {"phone": "+1"}'
        assert messages[1].startswith("Tool lookupCustomer succeeded: ")
        assert all(m.sender == "system:tool" for m in self.notifier.sent)
        assert all(m.phone_number == self.context.party_key for m in self.notifier.sent)

    @pytest.mark.asyncio
    async def test_webhook_failure_does_not_affect_outcome(self):
        context = make_context(notifier=RecordingNotifier(fail=True))

        outcome = await self.dispatcher.dispatch("lookupCustomer", {"phone": "+1"}, context)

        assert outcome.success
        assert len(context.messages) == 2

    @pytest.mark.asyncio
    async def test_large_results_are_truncated(self):
        outcome = await self.dispatcher.dispatch(
            "lookupCustomer", {"blob": "x" * 10000}, self.context
        )

        assert outcome.success
        assert self.system_messages()[0].endswith("... (truncated)")


class TestToolRegistry:
    """Test registry construction."""

    def test_duplicate_names_rejected(self):
        with pytest.raises(ValueError, match="Duplicate tool name"):
            ToolRegistry([EchoTool(), EchoTool()])

    def test_definitions_are_openai_format(self):
        registry = ToolRegistry([EchoTool()])

        definition = registry.definitions()[0]
        assert definition["type"] == "function"
        assert definition["function"]["name"] == "lookupCustomer"
        assert "lookupCustomer" in registry
        assert len(registry) == 1
