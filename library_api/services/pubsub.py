"""
In-Process Publish/Subscribe Hub

Fans out events (such as "book added") to every GraphQL subscription that
is active in this process.

Features:
- Topic-keyed subscriber registry
- Non-blocking publish: each subscriber owns a bounded asyncio.Queue
- A full or broken subscriber queue never fails the publisher
- Unsubscribe on generator close (client disconnect, cancellation)

There is no persistence and no replay: an event reaches only the
subscribers registered when it is published.

Usage:
    from library_api.services.pubsub import BOOK_ADDED, PubSub

    pubsub = PubSub()

    async for book in pubsub.subscribe(BOOK_ADDED):
        ...

    pubsub.publish(BOOK_ADDED, book)
"""

import asyncio
import logging
from collections.abc import AsyncGenerator
from typing import Any

logger = logging.getLogger(__name__)


# =============================================================================
# Topics
# =============================================================================

BOOK_ADDED = "BOOK_ADDED"


# =============================================================================
# Hub
# =============================================================================


class PubSub:
    """
    Registry of subscriber queues per topic.

    One instance is created per application (see create_app) and handed to
    resolvers through the GraphQL context.
    """

    def __init__(self, queue_size: int = 100):
        self._queue_size = queue_size
        # Map of topic -> set of subscriber queues
        self._subscribers: dict[str, set[asyncio.Queue]] = {}

    def publish(self, topic: str, payload: Any) -> int:
        """
        Deliver a payload to every current subscriber of a topic.

        Never blocks and never raises because of a subscriber: a subscriber
        whose queue is full misses this event and a warning is logged.

        Args:
            topic: Topic name
            payload: Object handed to each subscriber as-is

        Returns:
            Number of subscribers the payload was queued for
        """
        delivered = 0
        for queue in list(self._subscribers.get(topic, ())):
            try:
                queue.put_nowait(payload)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning(f"Subscriber queue full on '{topic}', event dropped")

        logger.debug(f"Published to '{topic}': {delivered} subscribers")
        return delivered

    async def subscribe(self, topic: str) -> AsyncGenerator[Any, None]:
        """
        Yield every payload published to a topic until the consumer stops.

        The subscriber is registered when iteration starts and removed when
        the generator is closed or cancelled.
        """
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._queue_size)
        self._subscribers.setdefault(topic, set()).add(queue)
        logger.debug(
            f"Subscribed to '{topic}' (total={self.subscriber_count(topic)})"
        )
        try:
            while True:
                yield await queue.get()
        finally:
            self._unsubscribe(topic, queue)

    def _unsubscribe(self, topic: str, queue: asyncio.Queue) -> None:
        """Remove a subscriber queue and drop empty topics."""
        subscribers = self._subscribers.get(topic)
        if subscribers is None:
            return

        subscribers.discard(queue)
        if not subscribers:
            del self._subscribers[topic]

        logger.debug(
            f"Unsubscribed from '{topic}' (total={self.subscriber_count(topic)})"
        )

    def subscriber_count(self, topic: str) -> int:
        """Get the number of active subscribers for a topic."""
        return len(self._subscribers.get(topic, ()))

    def get_stats(self) -> dict[str, int]:
        """Get subscriber counts per topic."""
        return {
            topic: len(queues)
            for topic, queues in self._subscribers.items()
        }
