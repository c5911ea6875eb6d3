"""Friendship endpoints."""
import uuid
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from attendee_network.api.deps import get_current_user_id
from attendee_network.db.session import get_db
from attendee_network.schemas.social import FriendshipOverview, FriendshipRead
from attendee_network.services.friendship_service import FriendshipService

router = APIRouter(prefix="/api/friends", tags=["friends"])


class FriendRequestBody(BaseModel):
    addressee_id: uuid.UUID


@router.get("", response_model=FriendshipOverview)
async def list_friends(
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db),
):
    return await FriendshipService(session).list_friendships(user_id)


@router.post("/requests", response_model=FriendshipRead, status_code=201)
async def send_friend_request(
    body: FriendRequestBody,
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db),
):
    return await FriendshipService(session).send_request(user_id, body.addressee_id)


@router.post("/{friendship_id}/accept", response_model=FriendshipRead)
async def accept_friend_request(
    friendship_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db),
):
    return await FriendshipService(session).accept(friendship_id, acting_user_id=user_id)


@router.post("/{friendship_id}/reject", response_model=FriendshipRead)
async def reject_friend_request(
    friendship_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db),
):
    return await FriendshipService(session).reject(friendship_id, acting_user_id=user_id)


@router.delete("/{friendship_id}", status_code=204)
async def remove_friend(
    friendship_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db),
):
    await FriendshipService(session).remove(friendship_id, acting_user_id=user_id)
