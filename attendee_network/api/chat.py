"""Messaging endpoints and the live conversation list."""
import asyncio
import logging
import uuid
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from attendee_network.api.deps import get_current_user_id, get_feed
from attendee_network.db.session import get_db, AsyncSessionLocal
from attendee_network.schemas.social import ConversationRead, MessageRead
from attendee_network.services.conversations import ConversationAggregator
from attendee_network.services.message_feed import MessageFeed, run_patch_loop, stop_patch_loop
from attendee_network.services.message_service import MessageService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["chat"])


class SendMessageBody(BaseModel):
    receiver_id: uuid.UUID
    content: str


class MarkReadResponse(BaseModel):
    marked: int


@router.get("/conversations", response_model=List[ConversationRead])
async def list_conversations(
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db),
):
    return await MessageService(session).fetch_conversations(user_id)


@router.get("/messages/{other_id}", response_model=List[MessageRead])
async def list_messages(
    other_id: uuid.UUID,
    limit: int = Query(200, ge=1, le=1000),
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db),
):
    return await MessageService(session).fetch_messages(user_id, other_id, limit=limit)


@router.post("/messages", response_model=MessageRead, status_code=201)
async def send_message(
    body: SendMessageBody,
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db),
    feed: Optional[MessageFeed] = Depends(get_feed),
):
    return await MessageService(session, feed).send_message(user_id, body.receiver_id, body.content)


@router.post("/messages/{sender_id}/read", response_model=MarkReadResponse)
async def mark_messages_read(
    sender_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db),
    feed: Optional[MessageFeed] = Depends(get_feed),
):
    marked = await MessageService(session, feed).mark_read(user_id, sender_id)
    return MarkReadResponse(marked=marked)


def _snapshot(aggregator: ConversationAggregator) -> dict:
    return {
        "total_unread": aggregator.total_unread,
        "conversations": [c.model_dump(mode="json") for c in aggregator.conversations()],
    }


@router.websocket("/ws/conversations")
async def conversations_socket(websocket: WebSocket, user_id: uuid.UUID = Query(...)):
    """
    Push the user's conversation list on every change.

    Subscribes before loading history so nothing published in between is lost;
    events already included in the history are dropped by the aggregator.
    """
    feed: Optional[MessageFeed] = getattr(websocket.app.state, "feed", None)
    await websocket.accept()
    if feed is None:
        await websocket.close(code=1013)
        return

    subscription = await feed.subscribe(user_id)

    async def rebuild() -> List[MessageRead]:
        async with AsyncSessionLocal() as session:
            return await MessageService(session).list_user_messages(user_id)

    async def push(aggregator: ConversationAggregator):
        await websocket.send_json(_snapshot(aggregator))

    patch_task = None
    try:
        aggregator = ConversationAggregator(user_id)
        aggregator.rebuild(await rebuild())
        await push(aggregator)

        patch_task = asyncio.create_task(run_patch_loop(aggregator, subscription, rebuild, push))
        while True:
            # Client messages are only keep-alives
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info(f"Conversation socket closed for {user_id}")
    finally:
        if patch_task:
            await stop_patch_loop(patch_task)
        await subscription.cancel()
