"""Tools the model can call during a conversation."""

from typing import List, Optional

from .base import Tool, ToolContext, ToolControl, ToolRegistry, ToolResult
from .dispatcher import DispatchOutcome, ToolDispatcher, ToolOutcomeKind
from .languages import Language, LanguageCatalog
from .live_agent import SendToLiveAgentTool
from .switch_language import SwitchLanguageTool


def default_tools(languages_path: Optional[str] = None) -> List[Tool]:
    """Built-in tools shipped with every agent."""
    return [
        SendToLiveAgentTool(),
        SwitchLanguageTool(LanguageCatalog.load(languages_path)),
    ]


__all__ = [
    "Tool",
    "ToolContext",
    "ToolControl",
    "ToolRegistry",
    "ToolResult",
    "DispatchOutcome",
    "ToolDispatcher",
    "ToolOutcomeKind",
    "Language",
    "LanguageCatalog",
    "SendToLiveAgentTool",
    "SwitchLanguageTool",
    "default_tools",
]
