import asyncio
import pytest
import uuid
from datetime import datetime, timezone
from sqlalchemy.exc import SQLAlchemyError, OperationalError

from attendee_network.services.match_service import MatchService, build_match_rows
from attendee_network.models.user import User, UserRole
from attendee_network.models.event import Event
from attendee_network.models.match import Match
from attendee_network.core.errors import TransientError, NotFoundError, UnauthorizedError

EVENT_ID = uuid.uuid4()

def make_user(interests=None, company=None, position=None, name="Attendee"):
    return User(
        id=uuid.uuid4(),
        name=name,
        email=f"{uuid.uuid4().hex[:8]}@example.com",
        interests=interests or [],
        company=company,
        position=position,
    )

def test_build_match_rows_scenario(profile_factory):
    a = profile_factory(interests=["x", "y", "z"], company="Acme", position="builder")
    b = profile_factory(interests=["y", "z"], company="Acme", position="design")

    rows = build_match_rows(EVENT_ID, [a, b], threshold=40)

    assert len(rows) == 2
    assert {(r["user_id"], r["matched_user_id"]) for r in rows} == {(a.id, b.id), (b.id, a.id)}
    assert all(r["score"] == 75 for r in rows)
    assert all(r["event_id"] == EVENT_ID for r in rows)
    assert all(len(r["reasons"]) == 3 for r in rows)

def test_build_match_rows_respects_threshold(profile_factory):
    base = profile_factory(interests=["ai", "golf"], company="Acme", position="Engineer")
    # company + complementary role = 45
    strong = profile_factory(interests=[], company="Acme", position="Designer")
    # two shared interests = 30
    weak = profile_factory(interests=["ai", "golf"], company="Globex", position="Engineer")

    rows = build_match_rows(EVENT_ID, [base, strong, weak], threshold=40)

    assert rows
    assert all(r["score"] >= 40 for r in rows)
    pairs = {(r["user_id"], r["matched_user_id"]) for r in rows}
    assert (base.id, strong.id) in pairs
    assert (base.id, weak.id) not in pairs
    assert all(r["user_id"] != r["matched_user_id"] for r in rows)

def test_build_match_rows_is_deterministic(profile_factory):
    profiles = [
        profile_factory(interests=["ai", "web3", "golf"], company="Acme", position="Engineer"),
        profile_factory(interests=["ai", "web3", "chess"], company="Acme", position="Designer"),
        profile_factory(interests=["golf", "ai", "web3"], company="Globex", position="Founder"),
        profile_factory(interests=["chess"], company="Globex", position="Investor"),
    ]

    def summary(rows):
        return [(r["user_id"], r["matched_user_id"], r["score"], tuple(r["reasons"])) for r in rows]

    first = build_match_rows(EVENT_ID, profiles, threshold=40)
    second = build_match_rows(EVENT_ID, profiles, threshold=40)

    assert summary(first) == summary(second)

def test_build_match_rows_ignores_duplicate_registrants(profile_factory):
    a = profile_factory(interests=["a", "b", "c"])
    b = profile_factory(interests=["a", "b", "c"])

    rows = build_match_rows(EVENT_ID, [a, b, a], threshold=40)

    assert len(rows) == 2

@pytest.mark.asyncio
async def test_recompute_replaces_event_matches(mock_session, result_factory):
    alice = make_user(interests=["x", "y", "z"], company="Acme", position="builder")
    bob = make_user(interests=["y", "z"], company="Acme", position="design")
    carol = make_user(interests=["knitting"])

    mock_session.execute.side_effect = [
        result_factory(scalars=[alice, bob, carol]),  # registrants
        result_factory(),  # delete old set
        result_factory(),  # insert new set
    ]

    service = MatchService(mock_session)
    result = await service.recompute_event_matches(EVENT_ID)

    assert result.attendees_processed == 3
    assert result.matches_written == 2
    assert result.unique_pairs == 1

    delete_stmt = mock_session.execute.call_args_list[1].args[0]
    assert delete_stmt.is_delete
    assert "ai_matches" in str(delete_stmt)

    inserted = mock_session.execute.call_args_list[2].args[1]
    assert {(r["user_id"], r["matched_user_id"]) for r in inserted} == {(alice.id, bob.id), (bob.id, alice.id)}
    assert all(r["score"] == 75 for r in inserted)

    mock_session.commit.assert_called_once()
    mock_session.rollback.assert_not_called()

@pytest.mark.asyncio
async def test_recompute_fifty_registrants_below_threshold(mock_session, result_factory):
    users = [make_user(interests=[f"topic-{i}"], position="Accountant") for i in range(50)]

    mock_session.execute.side_effect = [
        result_factory(scalars=users),
        result_factory(),
    ]

    service = MatchService(mock_session)
    result = await service.recompute_event_matches(EVENT_ID)

    assert result.attendees_processed == 50
    assert result.matches_written == 0
    # registrants + delete, no insert for an empty set
    assert mock_session.execute.call_count == 2
    mock_session.commit.assert_called_once()

@pytest.mark.asyncio
async def test_recompute_custom_threshold(mock_session, result_factory):
    a = make_user(interests=["ai"])
    b = make_user(interests=["ai"])

    mock_session.execute.side_effect = [
        result_factory(scalars=[a, b]),
        result_factory(),
        result_factory(),
    ]

    result = await MatchService(mock_session).recompute_event_matches(EVENT_ID, threshold=10)

    assert result.matches_written == 2

@pytest.mark.asyncio
async def test_recompute_store_failure_rolls_back(mock_session, result_factory):
    a = make_user(interests=["a", "b", "c"])
    b = make_user(interests=["a", "b", "c"])

    mock_session.execute.side_effect = [
        result_factory(scalars=[a, b]),
        result_factory(),
        OperationalError("INSERT", {}, Exception("connection lost")),
    ]

    with pytest.raises(TransientError):
        await MatchService(mock_session).recompute_event_matches(EVENT_ID)

    mock_session.rollback.assert_called_once()
    mock_session.commit.assert_not_called()

@pytest.mark.asyncio
async def test_recompute_registrant_load_failure_writes_nothing(mock_session):
    mock_session.execute.side_effect = SQLAlchemyError("timeout")

    with pytest.raises(TransientError):
        await MatchService(mock_session).recompute_event_matches(EVENT_ID)

    assert mock_session.execute.call_count == 1
    mock_session.commit.assert_not_called()
    mock_session.rollback.assert_called_once()

@pytest.mark.asyncio
async def test_recompute_cancelled_during_write_rolls_back(mock_session, result_factory):
    a = make_user(interests=["a", "b", "c"])
    b = make_user(interests=["a", "b", "c"])

    mock_session.execute.side_effect = [
        result_factory(scalars=[a, b]),
        result_factory(),
        asyncio.CancelledError(),
    ]

    with pytest.raises(asyncio.CancelledError):
        await MatchService(mock_session).recompute_event_matches(EVENT_ID)

    mock_session.rollback.assert_called_once()
    mock_session.commit.assert_not_called()

@pytest.mark.asyncio
async def test_fetch_matches_attaches_matched_profile(mock_session, result_factory):
    viewer_id = uuid.uuid4()
    bob = make_user(name="Bob", company="Acme", position="Designer")
    match = Match(
        id=uuid.uuid4(),
        user_id=viewer_id,
        matched_user_id=bob.id,
        event_id=EVENT_ID,
        score=75,
        reasons=["2 shared interests: y, z"],
    )
    mock_session.execute.return_value = result_factory(rows=[(match, bob)])

    matches = await MatchService(mock_session).fetch_matches(viewer_id, EVENT_ID)

    assert len(matches) == 1
    assert matches[0].score == 75
    assert matches[0].matched_user.name == "Bob"
    assert matches[0].matched_user.id == bob.id

    stmt = str(mock_session.execute.call_args.args[0])
    assert "ORDER BY ai_matches.score DESC" in stmt

@pytest.mark.asyncio
async def test_fetch_top_matches_filters_by_score(mock_session, result_factory):
    mock_session.execute.return_value = result_factory(rows=[])

    await MatchService(mock_session).fetch_top_matches(uuid.uuid4())

    stmt = mock_session.execute.call_args.args[0]
    compiled = stmt.compile()
    assert 80 in compiled.params.values()

@pytest.mark.asyncio
async def test_get_match_not_found(mock_session):
    with pytest.raises(NotFoundError):
        await MatchService(mock_session).get_match(uuid.uuid4())

def make_event(organizer_id=None):
    now = datetime.now(timezone.utc)
    return Event(id=EVENT_ID, title="DevConf", organizer_id=organizer_id, start_date=now, end_date=now)

@pytest.mark.asyncio
async def test_event_organizer_may_recompute(mock_session):
    organizer_id = uuid.uuid4()
    mock_session.get.return_value = make_event(organizer_id=organizer_id)

    await MatchService(mock_session).authorize_recompute(EVENT_ID, organizer_id)

    mock_session.get.assert_called_once_with(Event, EVENT_ID)

@pytest.mark.asyncio
async def test_organizer_role_may_recompute(mock_session):
    staff = make_user()
    staff.role = UserRole.ORGANIZER.value
    mock_session.get.side_effect = [make_event(organizer_id=uuid.uuid4()), staff]

    await MatchService(mock_session).authorize_recompute(EVENT_ID, staff.id)

@pytest.mark.asyncio
async def test_attendee_may_not_recompute(mock_session):
    attendee = make_user()
    attendee.role = UserRole.ATTENDEE.value
    mock_session.get.side_effect = [make_event(organizer_id=uuid.uuid4()), attendee]

    with pytest.raises(UnauthorizedError):
        await MatchService(mock_session).authorize_recompute(EVENT_ID, attendee.id)

@pytest.mark.asyncio
async def test_recompute_authorization_unknown_event(mock_session):
    with pytest.raises(NotFoundError):
        await MatchService(mock_session).authorize_recompute(EVENT_ID, uuid.uuid4())
