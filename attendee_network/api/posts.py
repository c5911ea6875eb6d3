"""Posts, likes and comments."""
import uuid
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from attendee_network.api.deps import get_current_user_id
from attendee_network.db.session import get_db
from attendee_network.schemas.social import PostRead, CommentRead
from attendee_network.services.engagement_service import EngagementService

router = APIRouter(prefix="/api", tags=["posts"])


class CreatePostBody(BaseModel):
    content: str
    event_id: Optional[uuid.UUID] = None
    image_url: Optional[str] = None

    @field_validator("image_url")
    @classmethod
    def blank_to_none(cls, v):
        return v or None


class CommentBody(BaseModel):
    content: str


class LikeResponse(BaseModel):
    post_id: uuid.UUID
    likes_count: int
    liked_by_me: bool


@router.get("/posts", response_model=List[PostRead])
async def list_posts(
    event_id: Optional[uuid.UUID] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db),
):
    return await EngagementService(session).fetch_posts(user_id, event_id, limit=limit, offset=offset)


@router.post("/posts", response_model=PostRead, status_code=201)
async def create_post(
    body: CreatePostBody,
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db),
):
    return await EngagementService(session).create_post(user_id, body.content, body.event_id, body.image_url)


@router.delete("/posts/{post_id}", status_code=204)
async def delete_post(
    post_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db),
):
    await EngagementService(session).delete_post(post_id, acting_user_id=user_id)


@router.post("/posts/{post_id}/like", response_model=LikeResponse)
async def like_post(
    post_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db),
):
    likes_count = await EngagementService(session).like(user_id, post_id)
    return LikeResponse(post_id=post_id, likes_count=likes_count, liked_by_me=True)


@router.delete("/posts/{post_id}/like", response_model=LikeResponse)
async def unlike_post(
    post_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db),
):
    likes_count = await EngagementService(session).unlike(user_id, post_id)
    return LikeResponse(post_id=post_id, likes_count=likes_count, liked_by_me=False)


@router.get("/posts/{post_id}/comments", response_model=List[CommentRead])
async def list_comments(
    post_id: uuid.UUID,
    session: AsyncSession = Depends(get_db),
):
    return await EngagementService(session).fetch_comments(post_id)


@router.post("/posts/{post_id}/comments", response_model=CommentRead, status_code=201)
async def add_comment(
    post_id: uuid.UUID,
    body: CommentBody,
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db),
):
    return await EngagementService(session).add_comment(user_id, post_id, body.content)


@router.delete("/comments/{comment_id}", status_code=204)
async def delete_comment(
    comment_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db),
):
    await EngagementService(session).delete_comment(comment_id, acting_user_id=user_id)


@router.post("/posts/{post_id}/recount", response_model=PostRead)
async def recount_post(
    post_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db),
):
    """Repair the denormalized counters from the like and comment rows."""
    return await EngagementService(session).recount_post(post_id)
