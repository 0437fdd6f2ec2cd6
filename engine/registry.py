"""Registry of live conversations keyed by party."""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from pydantic import BaseModel, Field

from .conversation import Conversation

logger = logging.getLogger(__name__)

ConversationFactory = Callable[[str, bool], Conversation]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ActivityRecord(BaseModel):
    """Most recent activity seen for a party."""
    phone_number: str
    last_activity: datetime = Field(default_factory=_utc_now)
    is_active: bool = True
    last_seen: float = Field(default=0.0, exclude=True)  # registry clock


class ConversationRegistry:
    """
    Maps party keys to conversations and evicts idle ones.

    Every lookup that creates or reuses a conversation renews its expiry.
    A periodic sweep closes and removes expired conversations. The sweep
    walks a snapshot of the map and only removes the exact conversation it
    inspected, so inserts racing with it are never lost and running it twice
    evicts nothing new.
    """

    DEFAULT_SWEEP_INTERVAL = 10 * 60
    DEFAULT_ACTIVITY_TTL = 60 * 60

    def __init__(
        self,
        factory: ConversationFactory,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL,
        activity_ttl: float = DEFAULT_ACTIVITY_TTL,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize registry.

        Args:
            factory: Builds a new Conversation from (key, is_voice)
            sweep_interval: Seconds between expiry sweeps (default: 10 minutes)
            activity_ttl: Seconds an inactive activity record is kept (default: 1 hour)
            clock: Monotonic time source in seconds
        """
        self.factory = factory
        self.sweep_interval = sweep_interval
        self.activity_ttl = activity_ttl
        self.clock = clock
        self._conversations: Dict[str, Conversation] = {}
        self._activity: Dict[str, ActivityRecord] = {}
        self._sweeper: Optional[asyncio.Task] = None

    def get(self, key: str) -> Optional[Conversation]:
        """Live conversation for ``key``, or None if absent or expired."""
        conversation = self._conversations.get(key)
        if conversation is None or conversation.is_expired(self.clock()):
            return None
        return conversation

    def get_or_create(self, key: str, is_voice: bool = False) -> Conversation:
        """Reuse the live conversation for ``key`` or start a new one."""
        conversation = self.get(key)
        if conversation is None:
            return self.create(key, is_voice=is_voice)

        self.touch(key)
        return conversation

    def create(self, key: str, is_voice: bool = False) -> Conversation:
        """Start a new conversation for ``key``, replacing any existing one."""
        existing = self._conversations.pop(key, None)
        if existing is not None:
            logger.info(f"[{key}] Replacing existing conversation")
            existing.close()

        conversation = self.factory(key, is_voice)
        conversation.touch(self.clock())
        self._conversations[key] = conversation
        self._record_activity(key, is_active=True)
        logger.info(f"[{key}] Conversation started ({'voice' if is_voice else 'text'})")
        return conversation

    def touch(self, key: str) -> bool:
        """Renew expiry after inbound activity. Returns False for unknown keys."""
        conversation = self._conversations.get(key)
        if conversation is None:
            return False
        conversation.touch(self.clock())
        self._record_activity(key, is_active=True)
        return True

    def close(self, key: str) -> bool:
        """Remove and close the conversation for ``key`` regardless of expiry."""
        conversation = self._conversations.pop(key, None)
        if conversation is None:
            return False
        conversation.close()
        self._record_activity(key, is_active=False)
        return True

    def sweep(self) -> int:
        """
        Close and remove expired conversations.

        Returns:
            Number of conversations evicted
        """
        now = self.clock()
        logger.info(f"Starting cleanup check - {len(self._conversations)} active conversations")

        expired_count = 0
        for key, conversation in list(self._conversations.items()):
            if not conversation.is_expired(now):
                continue
            if self._conversations.get(key) is not conversation:
                continue

            logger.info(f"[{key}] Closing expired conversation")
            del self._conversations[key]
            conversation.close()
            self._record_activity(key, is_active=False)
            expired_count += 1

        pruned = self._prune_activity(now)
        if pruned:
            logger.info(f"Pruned {pruned} stale activity records")

        logger.info(f"Cleanup complete - removed {expired_count} expired conversations")
        return expired_count

    async def _sweep_forever(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            try:
                self.sweep()
            except Exception as e:
                logger.error(f"Conversation sweep failed: {e}")

    def start(self) -> None:
        """Start the periodic sweeper on the running loop."""
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.get_running_loop().create_task(self._sweep_forever())

    async def stop(self) -> None:
        """Stop the sweeper and close every conversation."""
        if self._sweeper is not None:
            self._sweeper.cancel()
            try:
                await self._sweeper
            except asyncio.CancelledError:
                pass
            self._sweeper = None

        for key in list(self._conversations):
            self.close(key)

    def _record_activity(self, key: str, is_active: bool) -> None:
        record = self._activity.get(key)
        if record is None:
            self._activity[key] = ActivityRecord(
                phone_number=key,
                is_active=is_active,
                last_seen=self.clock()
            )
        else:
            record.last_activity = _utc_now()
            record.last_seen = self.clock()
            record.is_active = is_active

    def _prune_activity(self, now: float) -> int:
        """Drop inactive records older than the activity window."""
        stale = [
            key for key, record in self._activity.items()
            if not record.is_active and now - record.last_seen > self.activity_ttl
            and key not in self._conversations
        ]
        for key in stale:
            del self._activity[key]
        return len(stale)

    def recent_activity(self) -> List[ActivityRecord]:
        return sorted(self._activity.values(), key=lambda r: r.last_activity, reverse=True)

    def stats(self) -> Dict:
        return {
            "activeConversations": len(self._conversations),
            "totalRecentActivity": len(self._activity),
            "timestamp": _utc_now().isoformat(),
        }

    def keys(self) -> List[str]:
        return list(self._conversations)

    def __contains__(self, key: str) -> bool:
        return key in self._conversations

    def __len__(self) -> int:
        return len(self._conversations)
