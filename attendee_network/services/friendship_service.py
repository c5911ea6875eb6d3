from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_, and_
from sqlalchemy.exc import IntegrityError
from typing import Optional
from datetime import datetime, timezone
import uuid
import logging

from attendee_network.models.friendship import Friendship, FriendshipStatus
from attendee_network.schemas.profile import ProfileSummary
from attendee_network.schemas.social import FriendEntry, FriendshipOverview
from attendee_network.services.profile_service import ProfileService
from attendee_network.core.errors import ConflictError, NotFoundError, UnauthorizedError, InvalidError

logger = logging.getLogger(__name__)

# A row in one of these states blocks a new request between the same two users
BLOCKING_STATUSES = (FriendshipStatus.PENDING.value, FriendshipStatus.ACCEPTED.value)


def pair_clause(user_a: uuid.UUID, user_b: uuid.UUID):
    """Rows between the two users in either orientation."""
    return or_(
        and_(Friendship.requester_id == user_a, Friendship.addressee_id == user_b),
        and_(Friendship.requester_id == user_b, Friendship.addressee_id == user_a),
    )


class FriendshipService:
    """
    Lifecycle of a connection request between two attendees.

    none -> pending -> accepted | rejected, and removal from any state returns
    the pair to none. A rejected request can be sent again: the existing row is
    reset to pending with the new requester.
    """
    def __init__(self, session: AsyncSession):
        self.session = session
        self.profiles = ProfileService(session)

    async def get_between(self, user_a: uuid.UUID, user_b: uuid.UUID) -> Optional[Friendship]:
        result = await self.session.execute(select(Friendship).where(pair_clause(user_a, user_b)))
        return result.scalars().first()

    async def send_request(self, requester_id: uuid.UUID, addressee_id: uuid.UUID) -> Friendship:
        if requester_id == addressee_id:
            raise InvalidError("Cannot send a friend request to yourself")

        existing = await self.get_between(requester_id, addressee_id)
        if existing:
            if existing.status in BLOCKING_STATUSES:
                raise ConflictError("Friend request already exists")

            # Rejected: the new request supersedes the old one
            existing.requester_id = requester_id
            existing.addressee_id = addressee_id
            existing.status = FriendshipStatus.PENDING.value
            existing.updated_at = datetime.now(timezone.utc)
            await self.session.commit()
            await self.session.refresh(existing)
            logger.info(f"Friend request {existing.id} re-sent by {requester_id}")
            return existing

        friendship = Friendship(
            requester_id=requester_id,
            addressee_id=addressee_id,
            status=FriendshipStatus.PENDING.value,
        )
        self.session.add(friendship)
        try:
            await self.session.commit()
        except IntegrityError as e:
            # A concurrent request for the same pair won the unique index
            await self.session.rollback()
            raise ConflictError("Friend request already exists") from e
        await self.session.refresh(friendship)
        logger.info(f"Friend request {friendship.id} sent from {requester_id} to {addressee_id}")
        return friendship

    async def _get(self, friendship_id: uuid.UUID) -> Friendship:
        friendship = await self.session.get(Friendship, friendship_id)
        if not friendship:
            raise NotFoundError(f"Friendship {friendship_id} not found")
        return friendship

    async def _respond(
        self,
        friendship_id: uuid.UUID,
        status: FriendshipStatus,
        acting_user_id: Optional[uuid.UUID],
    ) -> Friendship:
        friendship = await self._get(friendship_id)
        if acting_user_id is not None and acting_user_id != friendship.addressee_id:
            raise UnauthorizedError("Only the addressee can respond to a friend request")
        if friendship.status != FriendshipStatus.PENDING.value:
            raise ConflictError(f"Friend request is already {friendship.status}")

        friendship.status = status.value
        friendship.updated_at = datetime.now(timezone.utc)
        await self.session.commit()
        await self.session.refresh(friendship)
        logger.info(f"Friend request {friendship_id} {status.value}")
        return friendship

    async def accept(self, friendship_id: uuid.UUID, acting_user_id: Optional[uuid.UUID] = None) -> Friendship:
        return await self._respond(friendship_id, FriendshipStatus.ACCEPTED, acting_user_id)

    async def reject(self, friendship_id: uuid.UUID, acting_user_id: Optional[uuid.UUID] = None) -> Friendship:
        return await self._respond(friendship_id, FriendshipStatus.REJECTED, acting_user_id)

    async def remove(self, friendship_id: uuid.UUID, acting_user_id: Optional[uuid.UUID] = None) -> None:
        friendship = await self._get(friendship_id)
        if acting_user_id is not None and not friendship.involves(acting_user_id):
            raise UnauthorizedError("Only a party to the friendship can remove it")
        await self.session.delete(friendship)
        await self.session.commit()
        logger.info(f"Friendship {friendship_id} removed")

    async def list_friendships(self, user_id: uuid.UUID) -> FriendshipOverview:
        """
        Partition every friendship touching ``user_id``.

        friends: accepted, incoming: pending where the user is the addressee,
        outgoing: pending where the user is the requester. Rejected rows are not
        listed. Each entry carries the other party's profile.
        """
        stmt = (
            select(Friendship)
            .where(or_(Friendship.requester_id == user_id, Friendship.addressee_id == user_id))
            .order_by(Friendship.updated_at.desc())
        )
        result = await self.session.execute(stmt)
        friendships = result.scalars().all()

        others = await self.profiles.get_profiles(f.other_party(user_id) for f in friendships)

        overview = FriendshipOverview()
        for friendship in friendships:
            entry = FriendEntry.model_validate(friendship)
            other = others.get(friendship.other_party(user_id))
            if other:
                entry.friend = ProfileSummary.model_validate(other.model_dump())

            if friendship.status == FriendshipStatus.ACCEPTED.value:
                overview.friends.append(entry)
            elif friendship.status == FriendshipStatus.PENDING.value:
                if friendship.requester_id == user_id:
                    overview.outgoing.append(entry)
                else:
                    overview.incoming.append(entry)
        return overview
