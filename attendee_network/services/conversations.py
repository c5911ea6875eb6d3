"""
In-memory conversation list of one viewer.

A conversation is one row per counterpart with the newest message exchanged
and the number of unread messages the counterpart sent to the viewer.

The list is built from the full message history (``rebuild``) and then kept
live with O(1) patches (``apply_message``, ``apply_read``). Patches are
idempotent and order-insensitive, so any interleaving of the same events ends
in the state a rebuild from the resulting messages would produce.
"""
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set

from attendee_network.config.constants import MAX_PENDING_READS
from attendee_network.schemas.social import MessageRead, ConversationRead


def _order_key(message: MessageRead):
    # Ties on created_at are broken by id so both paths pick the same message
    return (message.created_at, str(message.id))


@dataclass
class Conversation:
    counterpart_id: uuid.UUID
    last_message: MessageRead
    unread_ids: Set[uuid.UUID] = field(default_factory=set)

    @property
    def unread_count(self) -> int:
        return len(self.unread_ids)

    def to_read(self) -> ConversationRead:
        return ConversationRead(
            counterpart_id=self.counterpart_id,
            last_message=self.last_message,
            unread_count=self.unread_count,
        )


class ConversationAggregator:
    def __init__(self, viewer_id: uuid.UUID, max_pending_reads: int = MAX_PENDING_READS):
        self.viewer_id = viewer_id
        self.max_pending_reads = max_pending_reads
        self._conversations: Dict[uuid.UUID, Conversation] = {}
        self._seen_ids: Set[uuid.UUID] = set()
        # Read flips that arrived before the message itself, oldest first
        self._read_ids: "OrderedDict[uuid.UUID, None]" = OrderedDict()

    def _counterpart(self, message: MessageRead) -> Optional[uuid.UUID]:
        if message.sender_id == self.viewer_id:
            return message.receiver_id
        if message.receiver_id == self.viewer_id:
            return message.sender_id
        return None

    def rebuild(self, messages: Iterable[MessageRead]) -> None:
        """
        Replace the state with one computed from the full history.

        The store returns messages newest-first, so the first message seen per
        counterpart is normally its ``last_message``; timestamps are still
        compared in case the input is not sorted.
        """
        self._conversations = {}
        self._seen_ids = set()
        self._read_ids = OrderedDict()

        for message in messages:
            counterpart = self._counterpart(message)
            if counterpart is None or message.id in self._seen_ids:
                continue
            self._seen_ids.add(message.id)

            conversation = self._conversations.get(counterpart)
            if conversation is None:
                conversation = Conversation(counterpart_id=counterpart, last_message=message)
                self._conversations[counterpart] = conversation
            elif _order_key(message) > _order_key(conversation.last_message):
                conversation.last_message = message

            if message.receiver_id == self.viewer_id and not message.read:
                conversation.unread_ids.add(message.id)

    def apply_message(self, message: MessageRead) -> bool:
        """
        Patch in a newly created message, sent or received by the viewer.

        Returns False when the message was already applied or does not involve
        the viewer.
        """
        counterpart = self._counterpart(message)
        if counterpart is None or message.id in self._seen_ids:
            return False
        self._seen_ids.add(message.id)

        if message.id in self._read_ids:
            del self._read_ids[message.id]
            message = message.model_copy(update={"read": True})

        conversation = self._conversations.get(counterpart)
        if conversation is None:
            conversation = Conversation(counterpart_id=counterpart, last_message=message)
            self._conversations[counterpart] = conversation
        elif _order_key(message) > _order_key(conversation.last_message):
            conversation.last_message = message

        if message.receiver_id == self.viewer_id and not message.read:
            conversation.unread_ids.add(message.id)
        return True

    def apply_read(self, message: MessageRead) -> bool:
        """
        Patch in a read flip of one message the viewer received.

        Returns True when an unread message was cleared.
        """
        if message.receiver_id != self.viewer_id:
            return False

        if message.id not in self._seen_ids:
            self._read_ids[message.id] = None
            self._read_ids.move_to_end(message.id)
            if len(self._read_ids) > self.max_pending_reads:
                # A flip this old belongs to a message that is not coming
                self._read_ids.popitem(last=False)
            return False

        conversation = self._conversations.get(message.sender_id)
        if conversation is None:
            return False

        if conversation.last_message.id == message.id:
            conversation.last_message = conversation.last_message.model_copy(update={"read": True})

        if message.id in conversation.unread_ids:
            conversation.unread_ids.discard(message.id)
            return True
        return False

    def mark_conversation_read(self, counterpart_id: uuid.UUID) -> int:
        """Clear every unread message from one counterpart. Returns how many were cleared."""
        conversation = self._conversations.get(counterpart_id)
        if conversation is None:
            return 0
        cleared = conversation.unread_count
        conversation.unread_ids.clear()
        if conversation.last_message.receiver_id == self.viewer_id:
            conversation.last_message = conversation.last_message.model_copy(update={"read": True})
        return cleared

    def get(self, counterpart_id: uuid.UUID) -> Optional[Conversation]:
        return self._conversations.get(counterpart_id)

    def unread_count(self, counterpart_id: uuid.UUID) -> int:
        conversation = self._conversations.get(counterpart_id)
        return conversation.unread_count if conversation else 0

    @property
    def total_unread(self) -> int:
        return sum(c.unread_count for c in self._conversations.values())

    def conversations(self) -> List[ConversationRead]:
        ordered = sorted(
            self._conversations.values(),
            key=lambda c: _order_key(c.last_message),
            reverse=True,
        )
        return [c.to_read() for c in ordered]
