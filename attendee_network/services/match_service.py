from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, insert
from sqlalchemy.exc import SQLAlchemyError
from typing import List, Dict, Any, Optional, Sequence
from datetime import datetime, timezone
import asyncio
import uuid
import logging

from attendee_network.models.match import Match
from attendee_network.models.user import User, UserRole
from attendee_network.models.event import Event
from attendee_network.schemas.profile import AttendeeProfile, ProfileSummary
from attendee_network.schemas.social import MatchRead, RecomputeResult
from attendee_network.services.profile_service import ProfileService
from attendee_network.services.scoring import score_pair
from attendee_network.core.config import settings
from attendee_network.core.errors import NotFoundError, TransientError, UnauthorizedError

logger = logging.getLogger(__name__)


def build_match_rows(
    event_id: uuid.UUID,
    profiles: Sequence[AttendeeProfile],
    threshold: int,
) -> List[Dict[str, Any]]:
    """
    Score every ordered pair of registrants and keep those at or above ``threshold``.

    Quadratic in the number of registrants: n * (n - 1) scorer calls. Rows are
    produced in a deterministic order (viewer, then candidate, by input order).
    """
    unique: Dict[uuid.UUID, AttendeeProfile] = {}
    for profile in profiles:
        unique.setdefault(profile.id, profile)
    attendees = list(unique.values())

    rows = []
    for viewer in attendees:
        for other in attendees:
            if viewer.id == other.id:
                continue
            result = score_pair(viewer, other)
            if result.score < threshold:
                continue
            rows.append({
                "id": uuid.uuid4(),
                "user_id": viewer.id,
                "matched_user_id": other.id,
                "event_id": event_id,
                "score": result.score,
                "reasons": list(result.reasons),
            })
    return rows


class MatchService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.profiles = ProfileService(session)

    async def authorize_recompute(self, event_id: uuid.UUID, user_id: uuid.UUID) -> None:
        """The event's organizer and organizer-role users may recompute its matches."""
        event = await self.session.get(Event, event_id)
        if not event:
            raise NotFoundError(f"Event {event_id} not found")
        if event.organizer_id == user_id:
            return
        user = await self.session.get(User, user_id)
        if user and user.role == UserRole.ORGANIZER.value:
            return
        raise UnauthorizedError("Only organizers can recompute matches")

    async def recompute_event_matches(self, event_id: uuid.UUID, threshold: Optional[int] = None) -> RecomputeResult:
        """
        Replace the event's match set with a fresh computation.

        The read/compute phase has no side effects. The write phase deletes the
        old set and inserts the new one in a single transaction, so readers see
        either the previous complete set or the new one.
        """
        if threshold is None:
            threshold = settings.MATCH_SCORE_THRESHOLD

        logger.info(f"Starting match recompute for event {event_id} (threshold {threshold})")

        try:
            profiles = await asyncio.wait_for(
                self.profiles.list_registrants(event_id),
                timeout=settings.STORE_TIMEOUT_SECONDS,
            )
        except (SQLAlchemyError, asyncio.TimeoutError) as e:
            # Leave the session usable for the next unit of work
            await self.session.rollback()
            logger.exception(f"Failed to load registrants for event {event_id}")
            raise TransientError(f"Could not load registrants for event {event_id}") from e

        rows = build_match_rows(event_id, profiles, threshold)

        try:
            await asyncio.wait_for(
                self._replace_event_matches(event_id, rows),
                timeout=settings.STORE_TIMEOUT_SECONDS,
            )
        except (SQLAlchemyError, asyncio.TimeoutError) as e:
            logger.exception(f"Match write failed for event {event_id}, previous set kept")
            raise TransientError(f"Could not store matches for event {event_id}") from e

        logger.info(
            f"Recompute for event {event_id}: {len(profiles)} attendees, {len(rows)} match rows"
        )
        pairs = {frozenset((row["user_id"], row["matched_user_id"])) for row in rows}
        return RecomputeResult(
            event_id=event_id,
            attendees_processed=len(profiles),
            matches_written=len(rows),
            unique_pairs=len(pairs),
        )

    async def _replace_event_matches(self, event_id: uuid.UUID, rows: List[Dict[str, Any]]) -> None:
        try:
            await self.session.execute(delete(Match).where(Match.event_id == event_id))
            if rows:
                await self.session.execute(insert(Match), rows)
            await self.session.commit()
        except BaseException:
            # Covers cancellation too: nothing of the new set becomes visible
            await self.session.rollback()
            raise

    async def fetch_matches(
        self,
        user_id: uuid.UUID,
        event_id: Optional[uuid.UUID] = None,
        min_score: Optional[int] = None,
    ) -> List[MatchRead]:
        """Matches shown to ``user_id``, best first, with the suggested attendee's card."""
        stmt = (
            select(Match, User)
            .join(User, User.id == Match.matched_user_id)
            .where(Match.user_id == user_id)
        )
        if event_id:
            stmt = stmt.where(Match.event_id == event_id)
        if min_score is not None:
            stmt = stmt.where(Match.score >= min_score)
        stmt = stmt.order_by(Match.score.desc(), Match.created_at.desc(), Match.matched_user_id)

        result = await self.session.execute(stmt)
        matches = []
        for match, matched_user in result.all():
            item = MatchRead.model_validate(match)
            item.matched_user = ProfileSummary.model_validate(matched_user)
            matches.append(item)
        return matches

    async def fetch_top_matches(self, user_id: uuid.UUID, event_id: Optional[uuid.UUID] = None) -> List[MatchRead]:
        return await self.fetch_matches(user_id, event_id, min_score=settings.TOP_MATCH_SCORE)

    async def get_match(self, match_id: uuid.UUID) -> Match:
        match = await self.session.get(Match, match_id)
        if not match:
            raise NotFoundError(f"Match {match_id} not found")
        return match

    async def get_running_event_ids(self, now: Optional[datetime] = None) -> List[uuid.UUID]:
        now = now or datetime.now(timezone.utc)
        stmt = select(Event.id).where(Event.start_date <= now, Event.end_date >= now)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
