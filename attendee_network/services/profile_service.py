from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from pydantic import ValidationError
from typing import Dict, Iterable, List
import uuid
import logging

from attendee_network.models.user import User
from attendee_network.models.event import Registration, RegistrationStatus
from attendee_network.schemas.profile import AttendeeProfile
from attendee_network.core.errors import InvalidError, NotFoundError

logger = logging.getLogger(__name__)

class ProfileService:
    """
    Read-only view of attendee profiles.

    Profiles are owned by the profile directory; this service only reads them
    and converts rows into ``AttendeeProfile`` scoring inputs.
    """
    def __init__(self, session: AsyncSession):
        self.session = session

    @staticmethod
    def to_profile(user: User) -> AttendeeProfile:
        try:
            return AttendeeProfile.model_validate(user)
        except ValidationError as e:
            raise InvalidError(f"Malformed profile {getattr(user, 'id', None)}: {e}") from e

    async def get_profile(self, user_id: uuid.UUID) -> AttendeeProfile:
        user = await self.session.get(User, user_id)
        if not user:
            raise NotFoundError(f"User {user_id} not found")
        return self.to_profile(user)

    async def get_profiles(self, user_ids: Iterable[uuid.UUID]) -> Dict[uuid.UUID, AttendeeProfile]:
        """Batch lookup. Unknown ids are simply absent from the result."""
        ids = list(set(user_ids))
        if not ids:
            return {}
        result = await self.session.execute(select(User).where(User.id.in_(ids)))
        return {user.id: self.to_profile(user) for user in result.scalars().all()}

    async def list_registrants(self, event_id: uuid.UUID) -> List[AttendeeProfile]:
        """Profiles of users currently registered to the event, in a stable order."""
        stmt = (
            select(User)
            .join(Registration, Registration.user_id == User.id)
            .where(
                Registration.event_id == event_id,
                Registration.status == RegistrationStatus.REGISTERED.value,
            )
            .order_by(User.id)
        )
        result = await self.session.execute(stmt)
        profiles = [self.to_profile(user) for user in result.scalars().all()]
        logger.info(f"Found {len(profiles)} registrants for event {event_id}")
        return profiles
