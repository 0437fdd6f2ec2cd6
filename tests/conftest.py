"""Shared fakes for conversation engine tests."""

import asyncio
from typing import Any, Dict, List, Optional

from llm.base_client import BaseLLMClient, StreamChunk, ToolCallFragment
from memory.message_store import MessageStore
from schemas.webhook import WebhookMessage
from tools.base import Tool, ToolContext, ToolControl, ToolResult
from utils.webhook import WebhookNotifier


def text(content: str) -> StreamChunk:
    return StreamChunk(content=content)


def tool_call(
    name: Optional[str] = None,
    arguments: Optional[str] = None,
    done: bool = False,
    index: int = 0
) -> StreamChunk:
    return StreamChunk(tool_calls=[ToolCallFragment(
        index=index, name=name, arguments=arguments, done=done
    )])


def finish(reason: str = "stop") -> StreamChunk:
    return StreamChunk(finish_reason=reason)


class Gate:
    """Pauses a scripted stream until the test releases it."""

    def __init__(self):
        self.reached = asyncio.Event()
        self.release = asyncio.Event()

    async def wait(self):
        self.reached.set()
        await self.release.wait()


class ScriptedLLMClient(BaseLLMClient):
    """
    Streams canned turns.

    Each call to ``stream_chat`` consumes the next script. Script items are
    StreamChunks (yielded), Gates (awaited) or Exceptions (raised). Calls
    beyond the scripts stream nothing.
    """

    def __init__(self, scripts: Optional[List[List[Any]]] = None):
        self.scripts = list(scripts or [])
        self.calls: List[Dict[str, Any]] = []

    async def stream_chat(
        self,
        messages,
        tools=None,
        temperature=0.1,
        max_tokens=1024,
        cancel_event=None
    ):
        self.calls.append({
            "messages": list(messages),
            "tools": tools,
            "temperature": temperature,
            "cancel_event": cancel_event,
        })
        script = self.scripts.pop(0) if self.scripts else []

        for item in script:
            if isinstance(item, Gate):
                await item.wait()
            elif isinstance(item, Exception):
                raise item
            else:
                yield item

    def get_provider_name(self) -> str:
        return "scripted"

    def get_model_name(self) -> str:
        return "scripted-model"


class EchoTool(Tool):
    """Ordinary tool that records its calls and echoes its arguments."""

    name = "lookupCustomer"
    description = "Look up a customer"
    parameters = {
        "type": "object",
        "properties": {"phone": {"type": "string"}},
    }

    def __init__(self):
        self.calls: List[Dict[str, Any]] = []

    async def execute(self, args: Dict[str, Any], context: ToolContext) -> ToolResult:
        self.calls.append(args)
        return self.success({"found": True, **args})


class FailingTool(Tool):
    name = "sendEmail"
    description = "Send an email"
    parameters = {"type": "object", "properties": {}}

    async def execute(self, args: Dict[str, Any], context: ToolContext) -> ToolResult:
        raise ConnectionError("SMTP unreachable")


class RejectingTool(Tool):
    name = "writeRecord"
    description = "Write a record"
    parameters = {"type": "object", "properties": {}}

    async def execute(self, args: Dict[str, Any], context: ToolContext) -> ToolResult:
        return self.failure("record is locked")


class HandoffTool(Tool):
    name = "escalate"
    description = "Hand off to a human"
    parameters = {"type": "object", "properties": {"reason": {"type": "string"}}}
    control = ToolControl.HANDOFF

    async def execute(self, args: Dict[str, Any], context: ToolContext) -> ToolResult:
        return self.success({"reason": args.get("reason", "asked")})


class RecordingNotifier(WebhookNotifier):
    """Notifier that records messages instead of posting them."""

    def __init__(self, fail: bool = False):
        super().__init__(url="http://webhook.test/hook")
        self.fail = fail
        self.sent: List[WebhookMessage] = []

    async def notify(self, message: WebhookMessage) -> bool:
        if self.fail:
            raise RuntimeError("webhook down")
        self.sent.append(message)
        return True


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_context(key: str = "+15550001111", notifier=None, tool_data=None) -> ToolContext:
    return ToolContext(
        party_key=key,
        messages=MessageStore(label=key),
        tool_data=tool_data or {},
        notifier=notifier
    )
