import uuid
import enum
from sqlalchemy import Column, String, Text, TIMESTAMP, func
from sqlalchemy.dialects.postgresql import UUID, ARRAY
from attendee_network.db.base import Base

class UserRole(str, enum.Enum):
    ATTENDEE = "attendee"
    ORGANIZER = "organizer"

class User(Base):
    """Attendee profile. Owned by the profile directory, read-only here."""
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    avatar_url = Column(String(500))
    bio = Column(Text)
    company = Column(String(255))
    position = Column(String(255))
    interests = Column(ARRAY(Text), default=list, server_default="{}")
    role = Column(String(50), default=UserRole.ATTENDEE.value, nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), onupdate=func.now(), server_default=func.now())
