import uuid
import enum
from sqlalchemy import Column, String, ForeignKey, TIMESTAMP, CheckConstraint, Index, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from attendee_network.db.base import Base

class FriendshipStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"

class Friendship(Base):
    __tablename__ = "friendships"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    requester_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    addressee_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(50), default=FriendshipStatus.PENDING.value, nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), onupdate=func.now(), server_default=func.now())

    requester = relationship("User", foreign_keys=[requester_id])
    addressee = relationship("User", foreign_keys=[addressee_id])

    __table_args__ = (
        CheckConstraint('requester_id <> addressee_id', name='ck_friendship_not_self'),
        # One row per unordered pair, whichever side sent the request
        Index(
            'uq_friendship_pair',
            func.least(requester_id, addressee_id),
            func.greatest(requester_id, addressee_id),
            unique=True,
        ),
    )

    def other_party(self, user_id: uuid.UUID) -> uuid.UUID:
        return self.addressee_id if self.requester_id == user_id else self.requester_id

    def involves(self, user_id: uuid.UUID) -> bool:
        return user_id in (self.requester_id, self.addressee_id)
