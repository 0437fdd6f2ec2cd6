"""Tool for handing the conversation to a live agent."""

from typing import Any, Dict

from .base import Tool, ToolContext, ToolControl, ToolResult


class SendToLiveAgentTool(Tool):
    """Transfer the conversation to a human agent."""

    name = "sendToLiveAgent"
    description = """Transfer conversation to live agent.
Use this when the customer asks for a human or you cannot help them."""
    control = ToolControl.HANDOFF

    parameters = {
        "type": "object",
        "properties": {
            "reason": {
                "type": "string",
                "description": "Reason for handoff"
            },
            "priority": {
                "type": "string",
                "description": "Priority level",
                "enum": ["low", "medium", "high", "urgent"]
            },
            "conversationSummary": {
                "type": "string",
                "description": "Short summary of the conversation so far"
            }
        },
        "required": ["reason"]
    }

    async def execute(self, args: Dict[str, Any], context: ToolContext) -> ToolResult:
        """Build the handoff payload the transport uses to transfer the call."""
        call_sid = args.get("callSid") or context.tool_data.get("call_sid")
        if not call_sid:
            return self.failure("Call SID is required for live agent handoff")

        return self.success({
            "callSid": call_sid,
            "reason": args.get("reason") or "Customer requested live agent",
            "reasonCode": args.get("reasonCode") or "CUSTOMER_REQUEST",
            "conversationSummary": args.get("conversationSummary") or "No summary provided",
            "priority": args.get("priority") or "medium",
        })
