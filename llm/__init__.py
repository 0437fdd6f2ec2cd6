"""LLM client abstraction layer."""

from .base_client import BaseLLMClient, Message, StreamChunk, ToolCallFragment
from .factory import client_from_settings, create_llm_client, LLMProvider

__all__ = [
    "BaseLLMClient",
    "Message",
    "StreamChunk",
    "ToolCallFragment",
    "client_from_settings",
    "create_llm_client",
    "LLMProvider",
]
