from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional, Literal
from datetime import datetime
import uuid

from attendee_network.schemas.profile import ProfileSummary


# ========================
# Matches
# ========================

class MatchRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    matched_user_id: uuid.UUID
    event_id: uuid.UUID
    score: int
    reasons: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    matched_user: Optional[ProfileSummary] = None

class RecomputeResult(BaseModel):
    event_id: uuid.UUID
    attendees_processed: int
    matches_written: int
    unique_pairs: int


# ========================
# Friendships
# ========================

class FriendshipRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    requester_id: uuid.UUID
    addressee_id: uuid.UUID
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class FriendEntry(FriendshipRead):
    """A friendship row resolved to the other party's profile."""
    friend: Optional[ProfileSummary] = None

class FriendshipOverview(BaseModel):
    friends: List[FriendEntry] = Field(default_factory=list)
    incoming: List[FriendEntry] = Field(default_factory=list)
    outgoing: List[FriendEntry] = Field(default_factory=list)


# ========================
# Messages
# ========================

class MessageRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    sender_id: uuid.UUID
    receiver_id: uuid.UUID
    content: str
    read: bool = False
    created_at: datetime

class MessageEvent(BaseModel):
    """One notification on a receiver's message feed."""
    kind: Literal["insert", "read"]
    message: MessageRead

class ConversationRead(BaseModel):
    counterpart_id: uuid.UUID
    last_message: MessageRead
    unread_count: int = 0
    counterpart: Optional[ProfileSummary] = None


# ========================
# Posts
# ========================

class PostRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    event_id: Optional[uuid.UUID] = None
    content: str
    image_url: Optional[str] = None
    likes_count: int = 0
    comments_count: int = 0
    created_at: Optional[datetime] = None
    liked_by_me: bool = False

class CommentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    post_id: uuid.UUID
    user_id: uuid.UUID
    content: str
    created_at: Optional[datetime] = None
