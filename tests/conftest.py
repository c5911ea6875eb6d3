import pytest
import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

from attendee_network.schemas.profile import AttendeeProfile
from attendee_network.schemas.social import MessageRead

@pytest.fixture
def mock_session():
    session = AsyncMock()

    # Setup execute result
    mock_result = MagicMock()
    # Ensure scalar_one_or_none returns a value, not a coroutine
    mock_result.scalar_one_or_none.return_value = None
    mock_result.scalars.return_value.all.return_value = []
    mock_result.scalars.return_value.first.return_value = None
    mock_result.all.return_value = []

    # Configure session.execute to return this result when awaited
    session.execute.side_effect = None
    session.execute.return_value = mock_result

    # Configure session.get to return None by default
    session.get.return_value = None

    # Standard methods
    session.add = MagicMock()
    session.add_all = MagicMock()
    session.refresh = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.flush = AsyncMock()
    session.delete = AsyncMock()

    return session

def make_result(scalar=None, scalars=None, rows=None):
    """Build a mock execute() result."""
    result = MagicMock()
    result.scalar_one_or_none.return_value = scalar
    result.scalar_one.return_value = scalar
    result.scalars.return_value.all.return_value = scalars or []
    result.scalars.return_value.first.return_value = (scalars or [None])[0]
    result.all.return_value = rows or []
    return result

@pytest.fixture
def result_factory():
    return make_result

@pytest.fixture
def profile_factory():
    def _make(interests=None, company=None, position=None, name=None, id=None):
        return AttendeeProfile(
            id=id or uuid.uuid4(),
            name=name,
            interests=interests or [],
            company=company,
            position=position,
        )
    return _make

@pytest.fixture
def message_factory():
    base = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)

    def _make(sender_id, receiver_id, minute=0, read=False, content="hi", id=None):
        return MessageRead(
            id=id or uuid.uuid4(),
            sender_id=sender_id,
            receiver_id=receiver_id,
            content=content,
            read=read,
            created_at=base + timedelta(minutes=minute),
        )
    return _make
