"""Per-conversation event emitter."""

import asyncio
import inspect
import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional, Set, Union

from schemas.events import ConversationEvent

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]


class EventEmitter:
    """
    Synchronous event emitter for conversation events.

    Listeners may be plain callables or coroutine functions. Coroutines are
    scheduled on the running loop and tracked until they finish. A failing
    listener is logged and never interrupts the emitter or other listeners.
    """

    def __init__(self, label: str = "conversation"):
        self.label = label
        self._listeners: Dict[ConversationEvent, List[Listener]] = defaultdict(list)
        self._pending: Set[asyncio.Future] = set()

    def on(self, event: Union[ConversationEvent, str], listener: Listener) -> Listener:
        """Subscribe to an event. Returns the listener for use as a decorator."""
        self._listeners[ConversationEvent(event)].append(listener)
        return listener

    def off(self, event: Union[ConversationEvent, str], listener: Listener) -> None:
        listeners = self._listeners.get(ConversationEvent(event), [])
        if listener in listeners:
            listeners.remove(listener)

    def remove_all_listeners(self, event: Optional[Union[ConversationEvent, str]] = None) -> None:
        if event is None:
            self._listeners.clear()
        else:
            self._listeners.pop(ConversationEvent(event), None)

    def listener_count(self, event: Union[ConversationEvent, str]) -> int:
        return len(self._listeners.get(ConversationEvent(event), []))

    def emit(self, event: Union[ConversationEvent, str], *args: Any) -> int:
        """
        Call every listener for ``event`` with ``args``.

        Returns:
            Number of listeners notified
        """
        event = ConversationEvent(event)
        listeners = list(self._listeners.get(event, []))

        for listener in listeners:
            try:
                result = listener(*args)
                if inspect.isawaitable(result):
                    future = asyncio.ensure_future(result)
                    self._pending.add(future)
                    future.add_done_callback(self._on_listener_done)
            except Exception as e:
                logger.error(f"[{self.label}] {event.value} listener failed: {e}")

        return len(listeners)

    async def drain(self) -> None:
        """Wait for scheduled coroutine listeners to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _on_listener_done(self, future: asyncio.Future) -> None:
        self._pending.discard(future)
        if not future.cancelled() and future.exception() is not None:
            logger.error(f"[{self.label}] async listener failed: {future.exception()}")
