"""Streaming turn execution against a completion backend."""

import asyncio
import itertools
import json
import logging
import uuid
from contextlib import aclosing
from typing import Any, Dict, Optional

from pydantic import BaseModel

from llm.base_client import BaseLLMClient, ToolCallFragment
from memory.message_store import MessageStore
from schemas.events import ConversationEvent
from tools.base import ToolContext
from tools.dispatcher import ToolDispatcher, ToolOutcomeKind
from .events import EventEmitter

logger = logging.getLogger(__name__)

APOLOGY_MESSAGE = "I apologize, but I encountered an error. Could you please try again?"

_response_counter = itertools.count(1)


def new_response_id() -> str:
    """Process-unique turn identity: monotonic counter plus a random suffix."""
    return f"{next(_response_counter)}-{uuid.uuid4().hex[:9]}"


class ToolCallCandidate(BaseModel):
    """Tool call being assembled from stream fragments."""
    name: Optional[str] = None
    arguments: str = ""

    @property
    def pending(self) -> bool:
        return self.name is not None or bool(self.arguments)

    def try_parse(self) -> Optional[Dict[str, Any]]:
        """Parsed arguments, or None while the buffer is not yet a JSON object."""
        try:
            parsed = json.loads(self.arguments)
        except ValueError:
            return None
        return parsed if isinstance(parsed, dict) else None


class InFlightRequest:
    """Bookkeeping for one streamed turn."""

    def __init__(self, response_id: str):
        self.response_id = response_id
        self.cancel_event = asyncio.Event()
        self.full_text = ""
        self.pending_chunk = ""
        self.tool_call = ToolCallCandidate()
        self.tool_called = False

    def cancel(self) -> None:
        self.cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()


class StreamingEngine:
    """
    Executes model turns for one conversation.

    Each call to ``run`` streams one completion. Text is flushed to the
    ``text`` event in small chunks, tool calls are assembled from argument
    fragments and dispatched inline, and a turn that only called tools is
    followed by a continuation turn so the model can use the results.

    A new user turn cancels the one in flight. Every turn carries a response
    identity; only the turn whose identity is current may emit events or
    record its reply, so output from a superseded turn is dropped.
    """

    def __init__(
        self,
        key: str,
        llm_client: BaseLLMClient,
        messages: MessageStore,
        dispatcher: ToolDispatcher,
        tool_context: ToolContext,
        events: EventEmitter,
        temperature: float = 0.1,
        max_tokens: int = 1024,
        min_chunk_chars: int = 10,
        sentence_endings: str = ".?!"
    ):
        """
        Initialize streaming engine.

        Args:
            key: Party key used in log lines
            llm_client: Streaming completion backend
            messages: Conversation message store
            dispatcher: Tool dispatcher
            tool_context: Side data passed to tool executors
            events: Emitter for text/handoff/language events
            temperature: Sampling temperature
            max_tokens: Maximum tokens per completion
            min_chunk_chars: Flush pending text once it reaches this length
            sentence_endings: Flush pending text when a fragment contains any of these
        """
        self.key = key
        self.llm_client = llm_client
        self.messages = messages
        self.dispatcher = dispatcher
        self.tool_context = tool_context
        self.events = events
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.min_chunk_chars = min_chunk_chars
        self.sentence_endings = sentence_endings

        self.current_response_id: Optional[str] = None
        self._in_flight: Optional[InFlightRequest] = None

    @property
    def in_flight(self) -> Optional[InFlightRequest]:
        return self._in_flight

    def is_current(self, request: InFlightRequest) -> bool:
        return self.current_response_id == request.response_id

    def cancel(self) -> bool:
        """Cancel the in-flight turn. Returns False if nothing was running."""
        if self._in_flight is None:
            return False
        self._in_flight.cancel()
        return True

    async def run(self, is_user_turn: bool = True) -> None:
        """
        Execute one turn against the current message store.

        Args:
            is_user_turn: True for turns triggered by the party, which
                cancel any turn in flight. False for internal continuations.
        """
        if self._in_flight is not None and is_user_turn:
            self._in_flight.cancel()
            logger.info(f"[{self.key}] Cancelled previous request due to new prompt")

        request = InFlightRequest(new_response_id())
        self._in_flight = request
        self.current_response_id = request.response_id

        try:
            await self._stream_turn(request)
        except asyncio.CancelledError:
            request.cancel()
            raise
        except Exception as e:
            if request.cancelled:
                logger.info(f"[{self.key}] Request was aborted/cancelled")
            else:
                logger.error(f"[{self.key}] Conversation error: {type(e).__name__}: {e}")
                self.messages.add("assistant", APOLOGY_MESSAGE)
        finally:
            if self._in_flight is request:
                self._in_flight = None

    async def _stream_turn(self, request: InFlightRequest) -> None:
        stream = self.llm_client.stream_chat(
            messages=self.messages.as_list(),
            tools=self.dispatcher.registry.definitions() or None,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            cancel_event=request.cancel_event
        )

        async with aclosing(stream) as chunks:
            async for chunk in chunks:
                if request.cancelled:
                    logger.info(f"[{self.key}] Request was cancelled, stopping processing")
                    return

                for fragment in chunk.tool_calls:
                    if not await self._consume_tool_fragment(request, fragment):
                        return

                if chunk.finish_reason and request.tool_call.pending:
                    if not await self._finalize_tool_call(request):
                        return

                if chunk.content:
                    self._consume_text(request, chunk.content)

        if request.cancelled:
            logger.info(f"[{self.key}] Request was cancelled, stopping processing")
            return

        if request.tool_call.pending:
            if not await self._finalize_tool_call(request):
                return

        await self._complete_turn(request)

    async def _consume_tool_fragment(
        self,
        request: InFlightRequest,
        fragment: ToolCallFragment
    ) -> bool:
        """Buffer a tool call fragment. Returns False when the turn must stop."""
        request.tool_called = True
        candidate = request.tool_call

        if fragment.name:
            candidate.name = fragment.name

        if fragment.arguments:
            candidate.arguments += fragment.arguments
            args = candidate.try_parse()
            if args is not None:
                return await self._dispatch(request, args)

        if fragment.done and candidate.pending:
            return await self._finalize_tool_call(request)

        return True

    async def _finalize_tool_call(self, request: InFlightRequest) -> bool:
        """Settle a candidate the backend has declared complete."""
        candidate = request.tool_call

        if not candidate.arguments.strip():
            return await self._dispatch(request, {})

        args = candidate.try_parse()
        if args is not None:
            return await self._dispatch(request, args)

        logger.warning(
            f"[{self.key}] Discarding tool call {candidate.name}: "
            f"arguments are not valid JSON: {candidate.arguments[:200]}"
        )
        self.messages.add(
            "system",
            f"Tool call {candidate.name} failed: arguments were not valid JSON"
        )
        request.tool_call = ToolCallCandidate()
        return True

    async def _dispatch(self, request: InFlightRequest, args: Dict[str, Any]) -> bool:
        tool_name = request.tool_call.name or ""
        request.tool_call = ToolCallCandidate()

        outcome = await self.dispatcher.dispatch(tool_name, args, self.tool_context)

        if request.cancelled:
            logger.info(f"[{self.key}] Request was cancelled during {tool_name}, stopping processing")
            return False

        current = self.is_current(request)

        if outcome.kind == ToolOutcomeKind.HANDOFF:
            logger.info(f"[{self.key}] Handing off conversation via {tool_name}")
            if current:
                self.events.emit(ConversationEvent.HANDOFF, outcome.data)
            return False

        if outcome.kind == ToolOutcomeKind.LANGUAGE and current:
            logger.info(f"[{self.key}] Switching language via {tool_name}")
            self.events.emit(ConversationEvent.LANGUAGE, outcome.data)

        return True

    def _consume_text(self, request: InFlightRequest, content: str) -> None:
        request.full_text += content
        request.pending_chunk += content

        if (len(request.pending_chunk) >= self.min_chunk_chars
                or any(mark in content for mark in self.sentence_endings)):
            self._flush(request)

    def _flush(self, request: InFlightRequest) -> None:
        chunk, request.pending_chunk = request.pending_chunk, ""
        if not chunk:
            return

        if self.is_current(request):
            self.events.emit(ConversationEvent.TEXT, chunk, False, None)
        else:
            logger.info(
                f"[{self.key}] Ignoring text chunk from superseded response: {request.response_id}"
            )

    async def _complete_turn(self, request: InFlightRequest) -> None:
        self._flush(request)

        if not self.is_current(request):
            logger.info(f"[{self.key}] Response {request.response_id} was superseded, discarding")
            return

        if request.full_text:
            self.events.emit(ConversationEvent.TEXT, "", True, request.full_text)

        if request.full_text or request.tool_called:
            self.messages.add("assistant", request.full_text)

        if request.full_text:
            return

        if not request.tool_called:
            logger.warning(f"[{self.key}] Model returned an empty response")
            return

        if self.messages.limit_exceeded:
            logger.warning(f"[{self.key}] Message limit reached, not continuing after tool calls")
            return

        # Tool results are in the store; let the model continue with them
        await self.run(is_user_turn=False)
