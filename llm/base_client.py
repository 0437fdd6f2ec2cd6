"""Base LLM client interface."""

import asyncio
from abc import ABC, abstractmethod
from typing import AsyncIterator, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class Message(BaseModel):
    """Chat message. Immutable once created."""
    model_config = ConfigDict(frozen=True)

    role: Literal["system", "user", "assistant"]
    content: str


class ToolCallFragment(BaseModel):
    """Partial tool call carried by one stream increment."""
    index: int = 0
    name: Optional[str] = None
    arguments: Optional[str] = None  # Raw JSON text, possibly incomplete
    done: bool = False  # Backend signalled the arguments are complete


class StreamChunk(BaseModel):
    """One increment of a streamed completion."""
    content: Optional[str] = None
    tool_calls: List[ToolCallFragment] = Field(default_factory=list)
    finish_reason: Optional[str] = None


class BaseLLMClient(ABC):
    """Abstract base class for streaming LLM clients."""

    @abstractmethod
    def stream_chat(
        self,
        messages: List[Message],
        tools: Optional[List[Dict]] = None,
        temperature: float = 0.1,
        max_tokens: int = 1024,
        cancel_event: Optional[asyncio.Event] = None
    ) -> AsyncIterator[StreamChunk]:
        """
        Stream a chat completion.

        Args:
            messages: Conversation so far
            tools: Optional OpenAI-style tool definitions
            temperature: Sampling temperature (0-1)
            max_tokens: Maximum tokens in response
            cancel_event: Set by the caller to stop the stream early

        Returns:
            Async iterator of StreamChunk increments
        """
        pass

    @abstractmethod
    def get_provider_name(self) -> str:
        """Get the name of the LLM provider."""
        pass

    @abstractmethod
    def get_model_name(self) -> str:
        """Get the name of the model being used."""
        pass
