"""In-process channel broker for real-time group chat delivery."""

import asyncio
import logging
from collections import defaultdict
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from studpal.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


def group_channel(group_id) -> str:
    """Channel name a study group's chat is published on."""
    return f"group-{group_id}"


class ChannelBroker:
    """
    Fan messages out to every subscriber of a channel.

    Delivery is at-most-once: nothing is persisted or replayed, and a
    subscriber whose queue is full misses the message. Per channel, messages
    reach each subscriber in publish order.
    """

    def __init__(self, queue_size: int = 100):
        self._queue_size = queue_size
        self._channels: dict[str, set[asyncio.Queue]] = defaultdict(set)

    async def publish(self, channel: str, event: str, data: Any) -> int:
        """Publish an event on a channel. Returns the number of subscribers reached."""
        message = {"event": event, "data": data}
        delivered = 0
        for queue in list(self._channels.get(channel, ())):
            try:
                queue.put_nowait(message)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning("Dropping %s event for slow subscriber on %s", event, channel)
        return delivered

    @asynccontextmanager
    async def subscribe(self, channel: str) -> AsyncIterator[asyncio.Queue]:
        """
        Subscribe to a channel for the duration of the context.

            async with broker.subscribe("group-123") as queue:
                message = await queue.get()
        """
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._queue_size)
        self._channels[channel].add(queue)
        try:
            yield queue
        finally:
            subscribers = self._channels.get(channel)
            if subscribers is not None:
                subscribers.discard(queue)
                if not subscribers:
                    del self._channels[channel]

    def subscriber_count(self, channel: str) -> int:
        return len(self._channels.get(channel, ()))


# Singleton instance
chat_broker = ChannelBroker(queue_size=settings.chat_subscriber_queue_size)
