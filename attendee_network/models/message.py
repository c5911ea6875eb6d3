import uuid
from sqlalchemy import Column, Text, Boolean, ForeignKey, TIMESTAMP, Index, func, false
from sqlalchemy.dialects.postgresql import UUID
from attendee_network.db.base import Base

class Message(Base):
    __tablename__ = "messages"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    sender_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    receiver_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=False)
    read = Column(Boolean, default=False, server_default=false(), nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index('ix_messages_sender_created', 'sender_id', 'created_at'),
        Index('ix_messages_receiver_created', 'receiver_id', 'created_at'),
        Index('ix_messages_receiver_sender_read', 'receiver_id', 'sender_id', 'read'),
    )
