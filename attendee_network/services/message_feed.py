"""
Realtime message feed over Redis pub/sub.

Each receiver has one channel. Writers publish ``MessageEvent`` JSON after the
durable write; a subscription decodes what arrives and pushes it onto a
bounded queue without doing any other work, and the conversation patch loop
consumes that queue.
"""
import asyncio
import logging
import uuid
from typing import Awaitable, Callable, List, Optional

from pydantic import ValidationError
from redis.asyncio import Redis
from redis.exceptions import RedisError

from attendee_network.core.config import settings
from attendee_network.schemas.social import MessageEvent, MessageRead
from attendee_network.services.conversations import ConversationAggregator

logger = logging.getLogger(__name__)


class FeedSubscription:
    """Cancellable handle on one receiver's feed."""

    def __init__(self, user_id: uuid.UUID, pubsub, queue_size: int):
        self.user_id = user_id
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        # Set when an event had to be dropped; the consumer must rebuild
        self.overflowed = False
        self._pubsub = pubsub
        self._task: Optional[asyncio.Task] = None
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def deliver(self, raw) -> None:
        """Decode one payload and enqueue it. Never blocks."""
        try:
            event = MessageEvent.model_validate_json(raw)
        except ValidationError:
            logger.warning(f"Dropping malformed feed payload for {self.user_id}")
            return

        try:
            self.queue.put_nowait(event)
        except asyncio.QueueFull:
            self.overflowed = True
            logger.warning(f"Feed queue full for {self.user_id}, consumer will rebuild")

    async def _read(self):
        async for item in self._pubsub.listen():
            if item.get("type") != "message":
                continue
            self.deliver(item["data"])

    def start(self) -> None:
        self._task = asyncio.create_task(self._read())

    async def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        try:
            await self._pubsub.unsubscribe()
            await self._pubsub.aclose()
        except RedisError:
            logger.exception(f"Error closing feed subscription for {self.user_id}")


class MessageFeed:
    def __init__(self, redis: Optional[Redis] = None, queue_size: Optional[int] = None):
        self.redis = redis or Redis.from_url(str(settings.REDIS_URL))
        self.queue_size = queue_size or settings.FEED_QUEUE_SIZE

    @staticmethod
    def channel_for(user_id: uuid.UUID) -> str:
        return f"{settings.FEED_CHANNEL_PREFIX}:{user_id}"

    async def publish(self, receiver_id: uuid.UUID, event: MessageEvent) -> None:
        await self.redis.publish(self.channel_for(receiver_id), event.model_dump_json())

    async def subscribe(self, user_id: uuid.UUID) -> FeedSubscription:
        pubsub = self.redis.pubsub()
        await pubsub.subscribe(self.channel_for(user_id))
        subscription = FeedSubscription(user_id, pubsub, self.queue_size)
        subscription.start()
        logger.info(f"Subscribed to message feed for {user_id}")
        return subscription

    async def close(self) -> None:
        await self.redis.aclose()


def apply_event(aggregator: ConversationAggregator, event: MessageEvent) -> bool:
    if event.kind == "insert":
        return aggregator.apply_message(event.message)
    return aggregator.apply_read(event.message)


async def run_patch_loop(
    aggregator: ConversationAggregator,
    subscription: FeedSubscription,
    rebuild: Callable[[], Awaitable[List[MessageRead]]],
    on_change: Optional[Callable[[ConversationAggregator], Awaitable[None]]] = None,
) -> None:
    """
    Apply queued feed events to ``aggregator`` until cancelled.

    ``rebuild`` reloads the viewer's messages newest-first; it is used when the
    subscription overflowed and events were lost.
    """
    while True:
        event = await subscription.queue.get()

        if subscription.overflowed:
            subscription.overflowed = False
            while not subscription.queue.empty():
                subscription.queue.get_nowait()
            aggregator.rebuild(await rebuild())
            logger.info(f"Rebuilt conversations for {aggregator.viewer_id} after feed overflow")
            changed = True
        else:
            changed = apply_event(aggregator, event)

        if changed and on_change:
            await on_change(aggregator)


async def stop_patch_loop(task: asyncio.Task) -> None:
    """Cancel a patch loop task and wait for it, logging a failure it ended with."""
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
    except Exception:
        logger.exception("Conversation patch loop failed")
