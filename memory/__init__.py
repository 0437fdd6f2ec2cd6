"""Conversation memory."""

from .message_store import MessageStore

__all__ = [
    "MessageStore",
]
