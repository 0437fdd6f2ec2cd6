"""Tool call dispatch with normalized outcomes."""

import json
import logging
from enum import Enum
from typing import Any, Dict

from pydantic import BaseModel

from schemas.webhook import WebhookMessage
from .base import ToolContext, ToolControl, ToolRegistry, ToolResult

logger = logging.getLogger(__name__)


class ToolOutcomeKind(str, Enum):
    """What the engine should do with a dispatched call."""
    RESULT = "result"
    HANDOFF = "handoff"
    LANGUAGE = "language"


_CONTROL_KINDS = {
    ToolControl.NONE: ToolOutcomeKind.RESULT,
    ToolControl.HANDOFF: ToolOutcomeKind.HANDOFF,
    ToolControl.LANGUAGE: ToolOutcomeKind.LANGUAGE,
}


class DispatchOutcome(BaseModel):
    """Outcome of one tool call. Control kinds only accompany a success."""
    tool_name: str
    kind: ToolOutcomeKind
    result: ToolResult

    @property
    def success(self) -> bool:
        return self.result.success

    @property
    def data(self) -> Any:
        return self.result.data


class ToolDispatcher:
    """
    Runs model-requested tool calls against a ToolRegistry.

    Every outcome, good or bad, is written back to the conversation as a
    system message so the model can adapt. Nothing an executor does (unknown
    name, exception, reported failure) propagates past ``dispatch``.
    """

    CONTINUE_PROMPT = "Please continue the conversation based on the gathered information."
    MAX_RESULT_CHARS = 4000

    def __init__(self, registry: ToolRegistry):
        """
        Initialize dispatcher.

        Args:
            registry: Tools available to the model
        """
        self.registry = registry

    async def dispatch(
        self,
        tool_name: str,
        args: Dict[str, Any],
        context: ToolContext
    ) -> DispatchOutcome:
        """
        Execute a tool call and record its outcome.

        Args:
            tool_name: Name requested by the model
            args: Parsed JSON arguments
            context: Conversation side data and message store

        Returns:
            DispatchOutcome tagged with the tool's control kind
        """
        key = context.party_key
        args_text = json.dumps(args, default=str)
        logger.info(f"[{key}] tool_call {tool_name} args={args_text}")

        await self._notify(context, f"Executing {tool_name} with args: {args_text}")

        tool = self.registry.get(tool_name)
        kind = ToolOutcomeKind.RESULT

        if tool is None:
            result = ToolResult(
                tool_name=tool_name,
                success=False,
                error=f"Unknown tool: {tool_name}"
            )
        else:
            try:
                result = await tool.execute(args, context)
            except Exception as e:
                logger.error(f"[{key}] Tool {tool_name} raised: {e}")
                result = ToolResult(
                    tool_name=tool_name,
                    success=False,
                    error=str(e) or "Tool execution failed"
                )
            if result.success:
                kind = _CONTROL_KINDS[tool.control]

        if result.success:
            data_text = self._format_data(result.data)
            logger.info(f"[{key}] tool_result {tool_name} - success")
            await self._notify(context, f"Tool {tool_name} succeeded: {data_text}")
            context.messages.add(
                "system",
                f"Tool call {tool_name} succeeded with data: {data_text}"
            )
        else:
            logger.warning(f"[{key}] tool_result {tool_name} - failed: {result.error}")
            await self._notify(context, f"Tool {tool_name} failed: {result.error}")
            context.messages.add(
                "system",
                f"Tool call {tool_name} failed: {result.error}"
            )

        # A handoff ends the turn, so there is nothing to continue
        if kind != ToolOutcomeKind.HANDOFF:
            context.messages.add("system", self.CONTINUE_PROMPT)

        return DispatchOutcome(tool_name=tool_name, kind=kind, result=result)

    def _format_data(self, data: Any) -> str:
        """Serialize tool data for the model, truncating large payloads."""
        data_text = json.dumps(data, default=str)
        if len(data_text) > self.MAX_RESULT_CHARS:
            data_text = data_text[:self.MAX_RESULT_CHARS] + "... (truncated)"
        return data_text

    async def _notify(self, context: ToolContext, message: str) -> None:
        if context.notifier is None:
            return
        try:
            await context.notifier.notify(WebhookMessage(
                sender="system:tool",
                message=message,
                phone_number=context.party_key
            ))
        except Exception as e:
            logger.error(f"[{context.party_key}] Webhook notification failed: {e}")
