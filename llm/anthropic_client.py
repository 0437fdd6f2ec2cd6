"""Anthropic Claude streaming client implementation."""

import os
import asyncio
import logging
from typing import AsyncIterator, Dict, List, Optional

from anthropic import AsyncAnthropic

from .base_client import BaseLLMClient, Message, StreamChunk, ToolCallFragment

logger = logging.getLogger(__name__)


class AnthropicClient(BaseLLMClient):
    """Anthropic Claude client with streaming and tool use."""

    DEFAULT_MODEL = "claude-sonnet-4-20250514"
    OPENING_PROMPT = "Begin the conversation."

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None
    ):
        """
        Initialize Anthropic client.

        Args:
            api_key: Anthropic API key (falls back to ANTHROPIC_API_KEY env var)
            model: Model to use (falls back to ANTHROPIC_MODEL, then claude-sonnet-4)

        Raises:
            RuntimeError: If no API key is available
        """
        self.api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        self.model = model or os.environ.get("ANTHROPIC_MODEL") or self.DEFAULT_MODEL

        if not self.api_key:
            raise RuntimeError("Anthropic client not initialized. Set ANTHROPIC_API_KEY.")

        self.client = AsyncAnthropic(api_key=self.api_key)
        logger.info(f"Anthropic client initialized with model: {self.model}")

    async def stream_chat(
        self,
        messages: List[Message],
        tools: Optional[List[Dict]] = None,
        temperature: float = 0.1,
        max_tokens: int = 1024,
        cancel_event: Optional[asyncio.Event] = None
    ) -> AsyncIterator[StreamChunk]:
        """Stream a chat completion from Anthropic."""
        system_content, conversation_messages = self.convert_messages(messages)

        kwargs = {
            "model": self.model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": conversation_messages,
        }

        if system_content:
            kwargs["system"] = system_content

        # Convert tools to Anthropic format
        if tools:
            anthropic_tools = []
            for tool in tools:
                if tool.get("type") == "function":
                    func = tool["function"]
                    anthropic_tools.append({
                        "name": func["name"],
                        "description": func.get("description", ""),
                        "input_schema": func.get("parameters", {})
                    })
            if anthropic_tools:
                kwargs["tools"] = anthropic_tools

        tool_blocks = set()

        async with self.client.messages.stream(**kwargs) as stream:
            async for event in stream:
                if cancel_event is not None and cancel_event.is_set():
                    logger.info("Anthropic stream cancelled by caller")
                    break

                if event.type == "content_block_start":
                    if event.content_block.type == "tool_use":
                        tool_blocks.add(event.index)
                        yield StreamChunk(tool_calls=[ToolCallFragment(
                            index=event.index,
                            name=event.content_block.name
                        )])

                elif event.type == "content_block_delta":
                    if event.delta.type == "text_delta":
                        yield StreamChunk(content=event.delta.text)
                    elif event.delta.type == "input_json_delta":
                        yield StreamChunk(tool_calls=[ToolCallFragment(
                            index=event.index,
                            arguments=event.delta.partial_json
                        )])

                elif event.type == "content_block_stop":
                    if event.index in tool_blocks:
                        yield StreamChunk(tool_calls=[ToolCallFragment(
                            index=event.index,
                            done=True
                        )])

                elif event.type == "message_delta":
                    if event.delta.stop_reason:
                        yield StreamChunk(finish_reason=event.delta.stop_reason)

    def convert_messages(self, messages: List[Message]):
        """
        Split messages into Anthropic's system prompt and turn list.

        Leading system messages become the system prompt. Later system
        messages (tool results, continuation prompts) are folded into user
        turns so they keep their position. Consecutive same-role turns are
        merged and empty turns dropped.

        Returns:
            Tuple of (system prompt, list of message dicts)
        """
        system_parts = []
        conversation_messages = []

        for msg in messages:
            if msg.role == "system" and not conversation_messages:
                system_parts.append(msg.content)
                continue

            if not msg.content:
                continue

            if msg.role == "system":
                role, content = "user", f"[System] {msg.content}"
            else:
                role, content = msg.role, msg.content

            if conversation_messages and conversation_messages[-1]["role"] == role:
                conversation_messages[-1]["content"] += "\n\n" + content
            else:
                conversation_messages.append({"role": role, "content": content})

        if not conversation_messages or conversation_messages[0]["role"] != "user":
            conversation_messages.insert(0, {"role": "user", "content": self.OPENING_PROMPT})

        return "\n".join(system_parts).strip(), conversation_messages

    def get_provider_name(self) -> str:
        """Get the provider name."""
        return "anthropic"

    def get_model_name(self) -> str:
        """Get the model name."""
        return self.model
