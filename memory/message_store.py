"""In-memory message log for a single conversation."""

import logging
from typing import Callable, Iterator, List, Optional

from llm.base_client import Message

logger = logging.getLogger(__name__)


class MessageStore:
    """
    Ordered, append-only log of role-tagged messages.

    Insertion order is conversational order. A hard ceiling on the message
    count acts as a circuit breaker against runaway tool/continuation loops:
    crossing it never drops the message or raises, it fires
    ``on_limit_exceeded`` once so the owner can end the interaction.
    """

    DEFAULT_LIMIT = 300

    def __init__(
        self,
        limit: int = DEFAULT_LIMIT,
        on_limit_exceeded: Optional[Callable[[int], None]] = None,
        label: str = "conversation"
    ):
        """
        Initialize message store.

        Args:
            limit: Maximum number of messages before the breaker trips
            on_limit_exceeded: Called once with the message count when tripped
            label: Prefix for log lines (usually the party key)
        """
        self.limit = limit
        self.on_limit_exceeded = on_limit_exceeded
        self.label = label
        self._messages: List[Message] = []
        self._limit_exceeded = False

    def append(self, message: Message) -> "MessageStore":
        """Append a message, tripping the safety ceiling if crossed."""
        self._messages.append(message)

        if len(self._messages) > self.limit and not self._limit_exceeded:
            self._limit_exceeded = True
            logger.error(
                f"[{self.label}] Message queue exceeded {self.limit} messages "
                f"({len(self._messages)}). Ending conversation for safety."
            )
            if self.on_limit_exceeded:
                self.on_limit_exceeded(len(self._messages))

        return self

    def add(self, role: str, content: str) -> "MessageStore":
        """Build and append a message."""
        return self.append(Message(role=role, content=content))

    @property
    def limit_exceeded(self) -> bool:
        """Whether the safety ceiling has tripped."""
        return self._limit_exceeded

    def as_list(self) -> List[Message]:
        """Snapshot of the messages in order."""
        return list(self._messages)

    def last(self) -> Optional[Message]:
        return self._messages[-1] if self._messages else None

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(list(self._messages))
