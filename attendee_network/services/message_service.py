from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, or_, and_
from sqlalchemy.exc import SQLAlchemyError
from redis.exceptions import RedisError
from typing import List, Optional
from datetime import datetime, timezone
import uuid
import logging

from attendee_network.models.message import Message
from attendee_network.schemas.profile import ProfileSummary
from attendee_network.schemas.social import MessageRead, MessageEvent, ConversationRead
from attendee_network.services.conversations import ConversationAggregator
from attendee_network.services.message_feed import MessageFeed
from attendee_network.services.profile_service import ProfileService
from attendee_network.config.constants import MAX_MESSAGE_LENGTH
from attendee_network.core.errors import InvalidError, TransientError

logger = logging.getLogger(__name__)

class MessageService:
    def __init__(self, session: AsyncSession, feed: Optional[MessageFeed] = None):
        self.session = session
        self.feed = feed
        self.profiles = ProfileService(session)

    async def _publish(self, channel_user_id: uuid.UUID, kind: str, message: MessageRead) -> None:
        # The message is already durable; a lost notification is healed by the next rebuild
        if not self.feed:
            return
        try:
            await self.feed.publish(channel_user_id, MessageEvent(kind=kind, message=message))
        except RedisError:
            logger.exception(f"Failed to publish {kind} event for message {message.id}")

    async def send_message(self, sender_id: uuid.UUID, receiver_id: uuid.UUID, content: str) -> MessageRead:
        """
        Store a message and notify the receiver's feed.

        The returned message is what the sender patches into its own
        conversation list; the aggregator's duplicate guard makes a later feed
        echo of the same message harmless.
        """
        if not content or not content.strip():
            raise InvalidError("Message content cannot be empty")
        if len(content) > MAX_MESSAGE_LENGTH:
            raise InvalidError(f"Message is longer than {MAX_MESSAGE_LENGTH} characters")
        if sender_id == receiver_id:
            raise InvalidError("Cannot send a message to yourself")

        message = Message(
            id=uuid.uuid4(),
            sender_id=sender_id,
            receiver_id=receiver_id,
            content=content,
            read=False,
            created_at=datetime.now(timezone.utc),
        )
        self.session.add(message)
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.exception(f"Failed to store message from {sender_id} to {receiver_id}")
            raise TransientError("Could not send message") from e

        sent = MessageRead.model_validate(message)
        await self._publish(receiver_id, "insert", sent)
        return sent

    async def mark_read(self, user_id: uuid.UUID, sender_id: uuid.UUID) -> int:
        """
        Mark every unread message from ``sender_id`` to ``user_id`` as read.

        Only the receiver's read path sets the flag. Returns the number of
        messages flipped; messages from other senders are untouched.
        """
        stmt = (
            update(Message)
            .where(
                Message.receiver_id == user_id,
                Message.sender_id == sender_id,
                Message.read.is_(False),
            )
            .values(read=True)
            .returning(Message)
        )
        try:
            result = await self.session.execute(stmt)
            flipped = [MessageRead.model_validate(m) for m in result.scalars().all()]
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.exception(f"Failed to mark messages from {sender_id} read for {user_id}")
            raise TransientError("Could not mark messages as read") from e

        for message in flipped:
            await self._publish(user_id, "read", message)
        return len(flipped)

    async def fetch_messages(self, user_id: uuid.UUID, other_id: uuid.UUID, limit: int = 200) -> List[MessageRead]:
        """Thread between two users, oldest first."""
        stmt = (
            select(Message)
            .where(or_(
                and_(Message.sender_id == user_id, Message.receiver_id == other_id),
                and_(Message.sender_id == other_id, Message.receiver_id == user_id),
            ))
            .order_by(Message.created_at.desc(), Message.id.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        messages = [MessageRead.model_validate(m) for m in result.scalars().all()]
        messages.reverse()
        return messages

    async def list_user_messages(self, user_id: uuid.UUID) -> List[MessageRead]:
        """Every message the user sent or received, newest first."""
        stmt = (
            select(Message)
            .where(or_(Message.sender_id == user_id, Message.receiver_id == user_id))
            .order_by(Message.created_at.desc(), Message.id.desc())
        )
        result = await self.session.execute(stmt)
        return [MessageRead.model_validate(m) for m in result.scalars().all()]

    async def build_aggregator(self, user_id: uuid.UUID) -> ConversationAggregator:
        aggregator = ConversationAggregator(user_id)
        aggregator.rebuild(await self.list_user_messages(user_id))
        return aggregator

    async def fetch_conversations(self, user_id: uuid.UUID) -> List[ConversationRead]:
        aggregator = await self.build_aggregator(user_id)
        conversations = aggregator.conversations()

        profiles = await self.profiles.get_profiles(c.counterpart_id for c in conversations)
        for conversation in conversations:
            profile = profiles.get(conversation.counterpart_id)
            if profile:
                conversation.counterpart = ProfileSummary.model_validate(profile.model_dump())
        return conversations
