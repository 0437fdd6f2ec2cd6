"""OpenAI streaming client implementation."""

import os
import asyncio
import logging
from typing import AsyncIterator, Dict, List, Optional

from openai import AsyncOpenAI

from .base_client import BaseLLMClient, Message, StreamChunk, ToolCallFragment

logger = logging.getLogger(__name__)


class OpenAIClient(BaseLLMClient):
    """OpenAI chat completions client with streaming and tool calls."""

    DEFAULT_MODEL = "gpt-4o"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None
    ):
        """
        Initialize OpenAI client.

        Args:
            api_key: OpenAI API key (falls back to OPENAI_API_KEY env var)
            model: Model to use (falls back to OPENAI_MODEL, then gpt-4o)

        Raises:
            RuntimeError: If no API key is available
        """
        self.api_key = api_key or os.environ.get("OPENAI_API_KEY")
        self.model = model or os.environ.get("OPENAI_MODEL") or self.DEFAULT_MODEL

        if not self.api_key:
            raise RuntimeError("OpenAI client not initialized. Set OPENAI_API_KEY.")

        self.client = AsyncOpenAI(api_key=self.api_key)
        logger.info(f"OpenAI client initialized with model: {self.model}")

    async def stream_chat(
        self,
        messages: List[Message],
        tools: Optional[List[Dict]] = None,
        temperature: float = 0.1,
        max_tokens: int = 1024,
        cancel_event: Optional[asyncio.Event] = None
    ) -> AsyncIterator[StreamChunk]:
        """Stream a chat completion from OpenAI."""
        kwargs = {
            "model": self.model,
            "messages": [
                {"role": m.role, "content": m.content}
                for m in messages
                if m.content or m.role != "assistant"
            ],
            "temperature": temperature,
            "max_completion_tokens": max_tokens,
            "stream": True,
        }

        if tools:
            kwargs["tools"] = tools
            kwargs["tool_choice"] = "auto"

        stream = await self.client.chat.completions.create(**kwargs)
        try:
            async for event in stream:
                if cancel_event is not None and cancel_event.is_set():
                    logger.info("OpenAI stream cancelled by caller")
                    break

                if not event.choices:
                    continue

                choice = event.choices[0]
                delta = choice.delta

                fragments = []
                for tc in delta.tool_calls or []:
                    function = tc.function
                    fragments.append(ToolCallFragment(
                        index=tc.index or 0,
                        name=function.name if function else None,
                        arguments=function.arguments if function else None
                    ))

                yield StreamChunk(
                    content=delta.content or None,
                    tool_calls=fragments,
                    finish_reason=choice.finish_reason
                )
        finally:
            await stream.close()

    def get_provider_name(self) -> str:
        """Get the provider name."""
        return "openai"

    def get_model_name(self) -> str:
        """Get the model name."""
        return self.model
