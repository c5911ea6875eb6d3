"""Shared FastAPI dependencies."""
import uuid
from typing import Optional
from fastapi import Header, HTTPException, Request

from attendee_network.services.message_feed import MessageFeed


def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> uuid.UUID:
    """Acting user, as asserted by the gateway in front of this service."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Authentication required")
    try:
        return uuid.UUID(x_user_id)
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid user id")


def get_feed(request: Request) -> Optional[MessageFeed]:
    return getattr(request.app.state, "feed", None)
