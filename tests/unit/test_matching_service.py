import asyncio
from datetime import timedelta

import pytest

from app.core.config import settings
from app.core.exceptions import AlreadyInRoom, InvalidRequest
from app.crud import block_crud, queue_entry_crud
from app.model.pairing import Pairing
from app.model.queue_entry import QueueEntry
from app.schema.matching import MatchFilters, ParticipantProfile
from app.service.friend_service import FriendService
from app.service.matching_service import MatchingService
from app.service.room_service import RoomService
from app.utils.time import utcnow


def _backdate(db, participant, enqueued_ago=None, seen_ago=None):
    values = {}
    if enqueued_ago is not None:
        values[QueueEntry.enqueued_at] = utcnow() - timedelta(seconds=enqueued_ago)
    if seen_ago is not None:
        values[QueueEntry.last_seen_at] = utcnow() - timedelta(seconds=seen_ago)
    db.query(QueueEntry).filter(QueueEntry.participant == participant).update(values, synchronize_session=False)
    db.commit()


def _queued(db):
    return db.query(QueueEntry).count()


@pytest.fixture
def service(db):
    return MatchingService(db)


@pytest.fixture
def no_fallback(monkeypatch):
    monkeypatch.setattr(settings, "MATCH_FILTER_FALLBACK_SECONDS", None)


def test_enter_queue_twice_keeps_one_entry(db, service, alice):
    service.enter_queue(alice)
    service.enter_queue(alice, filters=MatchFilters(country="FR"))
    assert _queued(db) == 1
    entry = db.query(QueueEntry).one()
    assert entry.filters["country"] == "fr"


def test_too_many_interest_tags_rejected(service, alice):
    tags = [f"tag{i}" for i in range(settings.MAX_INTEREST_TAGS + 1)]
    with pytest.raises(InvalidRequest):
        service.enter_queue(alice, filters=MatchFilters(interest_tags=tags))


def test_lonely_participant_is_not_matched(db, service, alice):
    service.enter_queue(alice)
    assert service.attempt_match(alice) is None
    assert _queued(db) == 1


def test_attempt_match_when_not_queued(service, alice):
    assert service.attempt_match(alice) is None


def test_two_waiting_participants_are_paired_once(db, service, alice, bob):
    service.enter_queue(alice)
    service.enter_queue(bob)

    pairing = service.attempt_match(alice)

    assert pairing is not None
    assert pairing.involves(alice) and pairing.involves(bob)
    assert pairing.partner_of(alice) == bob
    assert _queued(db) == 0
    # The partner's poll finds the same pairing instead of a new one.
    assert service.attempt_match(bob).id == pairing.id
    assert service.attempt_match(alice).id == pairing.id
    assert db.query(Pairing).count() == 1


def test_oldest_compatible_candidate_wins(db, service, alice, bob, carol):
    service.enter_queue(alice)
    service.enter_queue(bob)
    service.enter_queue(carol)
    _backdate(db, alice, enqueued_ago=3)
    _backdate(db, carol, enqueued_ago=2)
    _backdate(db, bob, enqueued_ago=1)

    pairing = service.attempt_match(bob)

    assert pairing.partner_of(bob) == alice
    assert service.attempt_match(carol) is None


def test_consumed_entry_cannot_be_claimed_again(db, service, alice, bob, carol, session_factory):
    service.enter_queue(alice)
    service.enter_queue(bob)
    first = service.attempt_match(alice)

    service.enter_queue(carol)
    other = MatchingService(session_factory())
    # bob's entry is gone; carol has no one to pair with.
    assert other.attempt_match(carol) is None
    assert db.query(Pairing).count() == 1
    assert first.partner_of(alice) == bob


def test_enter_queue_while_in_active_room(db, service, alice, bob):
    service.enter_queue(alice)
    service.enter_queue(bob)
    pairing = service.attempt_match(alice)
    room = RoomService(db).create_room_for_pairing(pairing.id, alice)

    with pytest.raises(AlreadyInRoom) as exc_info:
        service.enter_queue(alice)
    assert exc_info.value.detail["room_id"] == str(room.id)


def test_enter_queue_while_pairing_has_no_room(service, alice, bob):
    service.enter_queue(alice)
    service.enter_queue(bob)
    service.attempt_match(alice)

    with pytest.raises(AlreadyInRoom):
        service.enter_queue(bob)


def test_enter_queue_after_room_closed(db, service, alice, bob):
    service.enter_queue(alice)
    service.enter_queue(bob)
    pairing = service.attempt_match(alice)
    room = RoomService(db).create_room_for_pairing(pairing.id, bob)
    RoomService(db).close_room(room.id, bob)

    entry = service.enter_queue(alice)
    assert entry.participant == alice
    assert service.get_active_match(alice) is None


def test_blocked_pair_is_never_matched(db, service, alice, bob):
    FriendService(db).block(alice, bob)
    service.enter_queue(alice)
    service.enter_queue(bob)

    assert service.attempt_match(alice) is None
    assert service.attempt_match(bob) is None


def test_filters_must_hold_both_ways(service, alice, bob, no_fallback):
    service.enter_queue(
        alice,
        filters=MatchFilters(gender="female"),
        profile=ParticipantProfile(gender="male"),
    )
    service.enter_queue(
        bob,
        filters=MatchFilters(gender="female"),
        profile=ParticipantProfile(gender="female"),
    )
    # alice accepts bob, bob does not accept alice.
    assert service.attempt_match(alice) is None
    assert service.attempt_match(bob) is None


def test_mutually_compatible_filters_pair(service, alice, bob, no_fallback):
    service.enter_queue(
        alice,
        filters=MatchFilters(interest_tags=["Music", "chess"]),
        profile=ParticipantProfile(age=20, interest_tags=["chess"]),
    )
    service.enter_queue(
        bob,
        filters=MatchFilters(age_min=18, age_max=30),
        profile=ParticipantProfile(age=25, interest_tags=["music"]),
    )
    pairing = service.attempt_match(alice)
    assert pairing is not None
    assert pairing.partner_of(alice) == bob


def test_unknown_trait_fails_a_set_filter(service, alice, bob, no_fallback):
    service.enter_queue(alice, profile=ParticipantProfile(interest_tags=["chess"]))
    service.enter_queue(bob, filters=MatchFilters(age_min=18))
    # alice has no age, so bob's age filter rejects her.
    assert service.attempt_match(alice) is None


def test_unfiltered_searchers_fall_back_to_random(service, alice, bob, no_fallback):
    service.enter_queue(alice, profile=ParticipantProfile(gender="male"))
    service.enter_queue(bob)
    assert service.attempt_match(bob) is not None


def test_filters_relax_after_waiting(db, service, alice, bob, monkeypatch):
    monkeypatch.setattr(settings, "MATCH_FILTER_FALLBACK_SECONDS", 10.0)
    service.enter_queue(alice, filters=MatchFilters(gender="female"))
    service.enter_queue(bob, profile=ParticipantProfile(gender="male"))
    assert service.attempt_match(bob) is None

    _backdate(db, alice, enqueued_ago=20)

    pairing = service.attempt_match(bob)
    assert pairing is not None
    assert pairing.partner_of(bob) == alice


def test_stale_entries_are_purged_on_enter(db, service, alice, bob):
    service.enter_queue(alice)
    _backdate(db, alice, enqueued_ago=120, seen_ago=120)

    service.enter_queue(bob)

    assert service.queue_position(alice) is None
    assert service.attempt_match(bob) is None
    assert _queued(db) == 1


def test_queue_position_reports_rank(db, service, alice, bob):
    service.enter_queue(alice)
    service.enter_queue(bob)
    _backdate(db, alice, enqueued_ago=5)

    position = service.queue_position(bob)
    assert position.position == 2
    assert position.waiting == 2
    assert service.queue_position(alice).position == 1


def test_leave_queue(service, alice):
    service.enter_queue(alice)
    assert service.leave_queue(alice) is True
    assert service.leave_queue(alice) is False
    assert service.queue_position(alice) is None


def test_recent_partners_are_not_rematched(db, service, alice, bob, monkeypatch):
    monkeypatch.setattr(settings, "ANTI_REMATCH_MINUTES", 5)
    service.enter_queue(alice)
    service.enter_queue(bob)
    pairing = service.attempt_match(alice)
    room = RoomService(db).create_room_for_pairing(pairing.id, alice)
    RoomService(db).close_room(room.id, alice)

    service.enter_queue(alice)
    service.enter_queue(bob)
    assert service.attempt_match(alice) is None


def test_saved_filters(service, alice):
    assert service.get_saved_filters(alice) is None
    service.save_filters(alice, MatchFilters(country="DE", interest_tags=[" Hiking "]))
    saved = service.get_saved_filters(alice)
    assert saved.country == "de"
    assert saved.interest_tags == ["hiking"]

    service.save_filters(alice, MatchFilters())
    assert service.get_saved_filters(alice).is_empty()


def test_match_notification_callback(service, alice, bob):
    received = []
    unsubscribe = MatchingService.subscribe_match_notification(bob, received.append)
    service.enter_queue(alice)
    service.enter_queue(bob)
    pairing = service.attempt_match(alice)
    unsubscribe()

    assert len(received) == 1
    assert received[0]["pairing_id"] == str(pairing.id)


@pytest.mark.asyncio
async def test_await_match_returns_pushed_pairing(session_factory, alice, bob):
    waiter = MatchingService(session_factory())
    other = MatchingService(session_factory())
    waiter.enter_queue(alice)

    task = asyncio.create_task(waiter.await_match(alice, timeout=3))
    await asyncio.sleep(0.05)
    other.enter_queue(bob)
    pairing = other.attempt_match(bob)

    result = await asyncio.wait_for(task, timeout=5)
    assert pairing is not None
    assert result.id == pairing.id


@pytest.mark.asyncio
async def test_await_match_times_out(service, alice):
    service.enter_queue(alice)
    assert await service.await_match(alice, timeout=0.2) is None


def test_block_retires_roomless_pairing(db, service, alice, bob, carol):
    service.enter_queue(alice)
    service.enter_queue(bob)
    assert service.attempt_match(alice).partner_of(alice) == bob

    FriendService(db).block(alice, bob)

    assert service.get_active_match(alice) is None
    assert service.attempt_match(bob) is None
    entry = service.enter_queue(alice)
    assert entry.participant == alice
    service.enter_queue(bob)
    service.enter_queue(carol)
    assert service.attempt_match(alice).partner_of(alice) == carol


def test_block_landing_mid_resolve_prevents_pairing(db, service, alice, bob, session_factory, monkeypatch):
    service.enter_queue(alice)
    service.enter_queue(bob)
    read_blocks = block_crud.blocked_counterparts

    def read_then_block(db, *, participant):
        seen = read_blocks(db, participant=participant)
        FriendService(session_factory()).block(bob, alice)
        return seen

    monkeypatch.setattr(block_crud, "blocked_counterparts", read_then_block)

    assert service.attempt_match(alice) is None
    assert db.query(Pairing).count() == 0
    assert _queued(db) == 2


def test_lost_claim_converges_on_the_winning_pairing(db, service, alice, bob, carol, session_factory, monkeypatch):
    service.enter_queue(alice)
    service.enter_queue(bob)
    service.enter_queue(carol)
    _backdate(db, alice, enqueued_ago=3)
    _backdate(db, bob, enqueued_ago=2)
    _backdate(db, carol, enqueued_ago=1)
    real_claim = queue_entry_crud.claim
    raced = []

    def claim_after_rival(db, *, entry_ids):
        if not raced:
            raced.append(True)
            # carol's resolver takes alice while alice is still claiming bob.
            MatchingService(session_factory()).attempt_match(carol)
        return real_claim(db, entry_ids=entry_ids)

    monkeypatch.setattr(queue_entry_crud, "claim", claim_after_rival)

    pairing = service.attempt_match(alice)

    assert pairing.partner_of(alice) == carol
    assert db.query(Pairing).count() == 1
    # bob's entry survived the rolled-back claim.
    assert service.queue_position(bob) is not None


def test_queue_position_does_not_refresh_the_entry(db, service, alice):
    service.enter_queue(alice)
    _backdate(db, alice, seen_ago=10)
    before = db.query(QueueEntry.last_seen_at).scalar()

    service.queue_position(alice)

    assert db.query(QueueEntry.last_seen_at).scalar() == before


def test_heartbeat_keeps_entry_alive(db, service, alice, bob):
    service.enter_queue(alice)
    _backdate(db, alice, seen_ago=settings.QUEUE_ENTRY_TTL_SECONDS - 1)

    assert service.heartbeat(alice) is True
    service.enter_queue(bob)

    assert service.queue_position(alice) is not None
    assert service.heartbeat(bob) is True
    service.leave_queue(bob)
    assert service.heartbeat(bob) is False
