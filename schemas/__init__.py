"""Pydantic schemas for the conversation engine."""

from .events import ConversationEvent, MessageLimitHandoff
from .webhook import WebhookMessage

__all__ = [
    "ConversationEvent",
    "MessageLimitHandoff",
    "WebhookMessage",
]
