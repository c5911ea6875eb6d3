from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional
import uuid

class AttendeeProfile(BaseModel):
    """Scoring input: the parts of a user profile the matcher looks at."""
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: uuid.UUID
    name: Optional[str] = None
    interests: List[str] = Field(default_factory=list)
    company: Optional[str] = None
    position: Optional[str] = None
    avatar_url: Optional[str] = None

    @field_validator("interests", mode="before")
    @classmethod
    def none_to_empty(cls, value):
        # Postgres arrays come back as None when never set
        if value is None:
            return []
        return value

class ProfileSummary(BaseModel):
    """Public card of another attendee, as shown next to a friend or a match."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    company: Optional[str] = None
    position: Optional[str] = None
