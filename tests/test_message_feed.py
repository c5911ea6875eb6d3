import asyncio
import pytest
import uuid
from unittest.mock import AsyncMock, MagicMock

from attendee_network.services.message_feed import (
    FeedSubscription, MessageFeed, apply_event, run_patch_loop, stop_patch_loop,
)
from attendee_network.services.conversations import ConversationAggregator
from attendee_network.schemas.social import MessageEvent

VIEWER = uuid.uuid4()
BOB = uuid.uuid4()

def make_pubsub(items=()):
    pubsub = MagicMock()
    pubsub.subscribe = AsyncMock()
    pubsub.unsubscribe = AsyncMock()
    pubsub.aclose = AsyncMock()

    async def listen():
        for item in items:
            yield item
        # stay subscribed until cancelled
        await asyncio.Event().wait()

    pubsub.listen = listen
    return pubsub

def payload(kind, message):
    return MessageEvent(kind=kind, message=message).model_dump_json()

def test_deliver_enqueues_decoded_event(message_factory):
    message = message_factory(BOB, VIEWER)
    subscription = FeedSubscription(VIEWER, make_pubsub(), queue_size=4)

    subscription.deliver(payload("insert", message))

    event = subscription.queue.get_nowait()
    assert event.kind == "insert"
    assert event.message.id == message.id

def test_deliver_drops_malformed_payload():
    subscription = FeedSubscription(VIEWER, make_pubsub(), queue_size=4)

    subscription.deliver(b'{"kind": "unknown"}')

    assert subscription.queue.empty()
    assert subscription.overflowed is False

def test_deliver_marks_overflow_without_blocking(message_factory):
    subscription = FeedSubscription(VIEWER, make_pubsub(), queue_size=1)

    subscription.deliver(payload("insert", message_factory(BOB, VIEWER, minute=1)))
    subscription.deliver(payload("insert", message_factory(BOB, VIEWER, minute=2)))

    assert subscription.queue.qsize() == 1
    assert subscription.overflowed is True

def test_apply_event_dispatches_by_kind(message_factory):
    message = message_factory(BOB, VIEWER)
    aggregator = ConversationAggregator(VIEWER)

    assert apply_event(aggregator, MessageEvent(kind="insert", message=message)) is True
    read = message.model_copy(update={"read": True})
    assert apply_event(aggregator, MessageEvent(kind="read", message=read)) is True
    assert aggregator.total_unread == 0

@pytest.mark.asyncio
async def test_subscription_reads_pubsub_messages(message_factory):
    message = message_factory(BOB, VIEWER)
    pubsub = make_pubsub([
        {"type": "subscribe", "data": 1},
        {"type": "message", "data": payload("insert", message).encode()},
    ])
    subscription = FeedSubscription(VIEWER, pubsub, queue_size=4)

    subscription.start()
    event = await asyncio.wait_for(subscription.queue.get(), timeout=1)
    await subscription.cancel()

    assert event.message.id == message.id
    assert subscription.queue.empty()

@pytest.mark.asyncio
async def test_cancel_releases_pubsub_once():
    pubsub = make_pubsub()
    subscription = FeedSubscription(VIEWER, pubsub, queue_size=4)
    subscription.start()

    await subscription.cancel()
    await subscription.cancel()

    assert subscription.cancelled is True
    pubsub.unsubscribe.assert_called_once()
    pubsub.aclose.assert_called_once()

@pytest.mark.asyncio
async def test_message_feed_publish_and_subscribe(message_factory):
    pubsub = make_pubsub()
    redis = MagicMock()
    redis.publish = AsyncMock()
    redis.aclose = AsyncMock()
    redis.pubsub.return_value = pubsub
    feed = MessageFeed(redis=redis, queue_size=8)
    message = message_factory(VIEWER, BOB)

    await feed.publish(BOB, MessageEvent(kind="insert", message=message))

    channel, data = redis.publish.call_args.args
    assert channel == MessageFeed.channel_for(BOB)
    assert str(BOB) in channel
    assert MessageEvent.model_validate_json(data).message.id == message.id

    subscription = await feed.subscribe(VIEWER)
    pubsub.subscribe.assert_called_once_with(MessageFeed.channel_for(VIEWER))
    assert subscription.queue.maxsize == 8

    await subscription.cancel()
    await feed.close()
    redis.aclose.assert_called_once()

@pytest.mark.asyncio
async def test_patch_loop_applies_events_and_notifies(message_factory):
    aggregator = ConversationAggregator(VIEWER)
    subscription = FeedSubscription(VIEWER, make_pubsub(), queue_size=8)
    rebuild = AsyncMock(return_value=[])
    changed = asyncio.Event()

    async def on_change(agg):
        changed.set()

    message = message_factory(BOB, VIEWER)
    subscription.deliver(payload("insert", message))

    task = asyncio.create_task(run_patch_loop(aggregator, subscription, rebuild, on_change))
    await asyncio.wait_for(changed.wait(), timeout=1)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert aggregator.unread_count(BOB) == 1
    rebuild.assert_not_called()

@pytest.mark.asyncio
async def test_patch_loop_rebuilds_after_overflow(message_factory):
    aggregator = ConversationAggregator(VIEWER)
    subscription = FeedSubscription(VIEWER, make_pubsub(), queue_size=1)
    history = [message_factory(BOB, VIEWER, minute=m) for m in range(3)]
    rebuild = AsyncMock(return_value=list(reversed(history)))
    changed = asyncio.Event()

    async def on_change(agg):
        changed.set()

    for message in history[1:]:
        subscription.deliver(payload("insert", message))
    assert subscription.overflowed

    task = asyncio.create_task(run_patch_loop(aggregator, subscription, rebuild, on_change))
    await asyncio.wait_for(changed.wait(), timeout=1)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    rebuild.assert_called_once()
    assert subscription.overflowed is False
    assert aggregator.unread_count(BOB) == 3
    assert aggregator.get(BOB).last_message.id == history[-1].id

@pytest.mark.asyncio
async def test_stop_patch_loop_cancels_running_loop():
    subscription = FeedSubscription(VIEWER, make_pubsub(), queue_size=4)
    task = asyncio.create_task(run_patch_loop(ConversationAggregator(VIEWER), subscription, AsyncMock()))
    await asyncio.sleep(0)

    await stop_patch_loop(task)

    assert task.cancelled()

@pytest.mark.asyncio
async def test_stop_patch_loop_retrieves_push_failure(message_factory, caplog):
    subscription = FeedSubscription(VIEWER, make_pubsub(), queue_size=4)
    subscription.deliver(payload("insert", message_factory(BOB, VIEWER)))

    async def on_change(agg):
        raise RuntimeError("socket closed")

    task = asyncio.create_task(
        run_patch_loop(ConversationAggregator(VIEWER), subscription, AsyncMock(), on_change)
    )
    await asyncio.sleep(0)
    assert task.done()

    with caplog.at_level("ERROR"):
        await stop_patch_loop(task)

    assert "patch loop failed" in caplog.text
