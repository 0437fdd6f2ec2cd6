"""Streaming conversation engine."""

from .events import EventEmitter
from .streaming import StreamingEngine, InFlightRequest, ToolCallCandidate, APOLOGY_MESSAGE
from .conversation import Conversation
from .registry import ConversationRegistry, ActivityRecord

__all__ = [
    "EventEmitter",
    "StreamingEngine",
    "InFlightRequest",
    "ToolCallCandidate",
    "APOLOGY_MESSAGE",
    "Conversation",
    "ConversationRegistry",
    "ActivityRecord",
]
