"""Match suggestion endpoints."""
import logging
import uuid
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from attendee_network.api.deps import get_current_user_id
from attendee_network.core.scheduler import schedule_event_recompute
from attendee_network.db.session import get_db
from attendee_network.schemas.social import MatchRead, RecomputeResult
from attendee_network.services.match_service import MatchService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["matches"])


@router.get("/matches", response_model=List[MatchRead])
async def list_matches(
    event_id: Optional[uuid.UUID] = Query(None),
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db),
):
    """Suggestions for the current user, best score first."""
    return await MatchService(session).fetch_matches(user_id, event_id)


@router.get("/matches/top", response_model=List[MatchRead])
async def list_top_matches(
    event_id: Optional[uuid.UUID] = Query(None),
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db),
):
    return await MatchService(session).fetch_top_matches(user_id, event_id)


@router.post("/events/{event_id}/matches/recompute", response_model=RecomputeResult)
async def recompute_matches(
    event_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db),
):
    """Recompute the event's full match set synchronously."""
    service = MatchService(session)
    await service.authorize_recompute(event_id, user_id)
    logger.info(f"Match recompute for event {event_id} requested by {user_id}")
    return await service.recompute_event_matches(event_id)


@router.post("/events/{event_id}/matches/recompute/schedule", status_code=202)
async def schedule_matches_recompute(
    event_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db),
):
    """Queue a background recompute; repeated requests for one event collapse into one job."""
    await MatchService(session).authorize_recompute(event_id, user_id)
    logger.info(f"Background match recompute for event {event_id} requested by {user_id}")
    schedule_event_recompute(event_id)
    return {"event_id": str(event_id), "status": "scheduled"}
