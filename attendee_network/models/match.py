import uuid
from sqlalchemy import Column, Text, ForeignKey, TIMESTAMP, Integer, UniqueConstraint, CheckConstraint, Index, func
from sqlalchemy.dialects.postgresql import UUID, ARRAY
from attendee_network.db.base import Base

class Match(Base):
    """Directional introduction suggestion: ``user_id`` is the viewer."""
    __tablename__ = "ai_matches"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    matched_user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    event_id = Column(UUID(as_uuid=True), ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)

    score = Column(Integer, nullable=False, default=0)
    reasons = Column(ARRAY(Text), default=list, server_default="{}")

    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint('user_id', 'matched_user_id', 'event_id', name='uq_match_pair_event'),
        CheckConstraint('user_id <> matched_user_id', name='ck_match_not_self'),
        CheckConstraint('score >= 0 AND score <= 100', name='ck_match_score_range'),
        Index('ix_ai_matches_user_event_score', 'user_id', 'event_id', 'score'),
    )
