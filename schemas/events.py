"""Conversation event schemas."""

from enum import Enum
from typing import Any, Dict

from pydantic import BaseModel


class ConversationEvent(str, Enum):
    """Events a transport adapter can subscribe to."""
    TEXT = "text"
    HANDOFF = "handoff"
    LANGUAGE = "language"


class MessageLimitHandoff(BaseModel):
    """Handoff payload emitted when the message safety ceiling trips."""
    reasonCode: str = "message_limit_exceeded"
    reason: str = "Conversation exceeded maximum message limit for safety"
    messageCount: int

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump()
