"""Tool interface and registry."""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional
from pydantic import BaseModel, ConfigDict, Field

from memory.message_store import MessageStore
from utils.webhook import WebhookNotifier

logger = logging.getLogger(__name__)


class ToolResult(BaseModel):
    """Result from tool execution."""
    tool_name: str
    success: bool
    data: Any = None
    error: Optional[str] = None


class ToolControl(str, Enum):
    """Conversation-level control a tool's successful outcome carries."""
    NONE = "none"
    HANDOFF = "handoff"
    LANGUAGE = "language"


class ToolContext(BaseModel):
    """Per-conversation side data shared with every tool executor."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    party_key: str
    messages: MessageStore
    tool_data: Dict[str, Any] = Field(default_factory=dict)
    notifier: Optional[WebhookNotifier] = None


class Tool(ABC):
    """Abstract base class for tools."""
    name: str
    description: str
    parameters: Dict[str, Any]
    control: ToolControl = ToolControl.NONE

    @abstractmethod
    async def execute(self, args: Dict[str, Any], context: ToolContext) -> ToolResult:
        """Execute the tool with parsed arguments."""
        pass

    def get_definition(self) -> Dict:
        """Get OpenAI-compatible tool definition."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters
            }
        }

    def success(self, data: Any) -> ToolResult:
        return ToolResult(tool_name=self.name, success=True, data=data)

    def failure(self, error: str) -> ToolResult:
        return ToolResult(tool_name=self.name, success=False, error=error)


class ToolRegistry:
    """Read-only mapping from tool name to tool."""

    def __init__(self, tools: Iterable[Tool] = ()):
        self._tools: Dict[str, Tool] = {}
        for tool in tools:
            if tool.name in self._tools:
                raise ValueError(f"Duplicate tool name: {tool.name}")
            self._tools[tool.name] = tool
        self._definitions = [tool.get_definition() for tool in self._tools.values()]
        logger.info(f"Tool registry loaded with {len(self._tools)} tools: {list(self._tools)}")

    def get(self, name: str) -> Optional[Tool]:
        return self._tools.get(name)

    def definitions(self) -> List[Dict]:
        """Tool schemas advertised to the model."""
        return list(self._definitions)

    def names(self) -> List[str]:
        return list(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)
