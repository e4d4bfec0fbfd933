import pytest

from app.core.exceptions import (
    AlreadyFriends,
    Blocked,
    InvalidPair,
    InvalidRequest,
    NotFriends,
    RequestPending,
    RoomClosed,
    Unauthorized,
)
from app.crud import chat_room_crud, report_crud
from app.model.block import Block
from app.model.chat_room import RoomState, RoomType
from app.model.friend_request import FriendRequestStatus
from app.model.friendship import FriendshipStatus
from app.model.report import ReportCategory
from app.schema.friend import FriendRequestResponseKind
from app.service.friend_service import FriendService
from app.service.message_service import MessageService
from app.service.room_service import RoomService

ACCEPT = FriendRequestResponseKind.ACCEPTED
REJECT = FriendRequestResponseKind.REJECTED


@pytest.fixture
def friends(db):
    return FriendService(db)


def _befriend(friends, a, b):
    req = friends.send_friend_request(a, b)
    _, friendship = friends.respond_to_request(req.id, ACCEPT, b)
    return friendship


def test_accepting_creates_friendship_and_open_room(db, friends, alice, bob):
    req = friends.send_friend_request(alice, bob, message="hi!")
    assert friends.count_pending_requests(bob) == 1
    assert [r.id for r in friends.list_sent_requests(alice)] == [req.id]

    req, friendship = friends.respond_to_request(req.id, ACCEPT, bob)

    assert req.status == FriendRequestStatus.ACCEPTED.value
    assert friendship.is_active
    room = chat_room_crud.get_by_id(db, room_id=friendship.chat_room_id)
    assert room.room_type == RoomType.FRIEND.value
    assert room.state == RoomState.OPEN
    assert friends.count_pending_requests(bob) == 0
    assert [f.friend for f in friends.list_friends(alice)] == [bob]


def test_request_guards(friends, alice, bob):
    with pytest.raises(InvalidPair):
        friends.send_friend_request(alice, alice)

    friends.send_friend_request(alice, bob)
    with pytest.raises(RequestPending):
        friends.send_friend_request(alice, bob)
    with pytest.raises(RequestPending):
        friends.send_friend_request(bob, alice)


def test_request_to_existing_friend(friends, alice, bob):
    _befriend(friends, alice, bob)
    with pytest.raises(AlreadyFriends):
        friends.send_friend_request(bob, alice)


def test_only_receiver_may_answer_once(friends, alice, bob, carol):
    req = friends.send_friend_request(alice, bob)
    with pytest.raises(Unauthorized):
        friends.respond_to_request(req.id, ACCEPT, carol)
    with pytest.raises(Unauthorized):
        friends.respond_to_request(req.id, ACCEPT, alice)

    req, friendship = friends.respond_to_request(req.id, REJECT, bob)
    assert req.status == FriendRequestStatus.REJECTED.value
    assert friendship is None
    with pytest.raises(InvalidRequest):
        friends.respond_to_request(req.id, ACCEPT, bob)

    # A rejected request does not stop a new one.
    assert friends.send_friend_request(alice, bob).status == FriendRequestStatus.PENDING.value


def test_request_from_room_requires_both_occupants(db, friends, alice, bob, carol):
    room = RoomService(db).create_room(alice, bob)
    req = friends.send_friend_request(alice, bob, room_id=room.id)
    assert req.chat_room_id == room.id
    with pytest.raises(Unauthorized):
        friends.send_friend_request(alice, carol, room_id=room.id)


def test_unfriend_then_refriend_reopens_same_room(db, friends, alice, bob):
    friendship = _befriend(friends, alice, bob)
    room_id = friendship.chat_room_id
    messages = MessageService(db)
    messages.send_message(room_id, alice, "before")

    friends.unfriend(friendship.id, bob)

    assert RoomService(db).get_room_state(room_id, alice) == RoomState.TEMP_CLOSED
    with pytest.raises(RoomClosed):
        messages.send_message(room_id, alice, "during")
    _, history, _ = messages.list_messages(room_id, alice)
    assert [m.content for m in history] == ["before"]
    with pytest.raises(NotFriends):
        friends.unfriend(friendship.id, alice)
    assert friends.list_friends(alice) == []
    assert friends.list_friends(alice, include_unfriended=True)[0].status == FriendshipStatus.UNFRIENDED

    again = _befriend(friends, alice, bob)

    assert again.id == friendship.id
    assert again.chat_room_id == room_id
    assert RoomService(db).get_room_state(room_id, bob) == RoomState.OPEN
    messages.send_message(room_id, bob, "after")
    _, history, _ = messages.list_messages(room_id, bob)
    assert [m.content for m in history] == ["before", "after"]


def test_outsider_cannot_unfriend(friends, alice, bob, carol):
    friendship = _befriend(friends, alice, bob)
    with pytest.raises(Unauthorized):
        friends.unfriend(friendship.id, carol)


def test_block_cascades(db, friends, alice, bob):
    friendship = _befriend(friends, alice, bob)
    random_room = RoomService(db).create_room(alice, bob)

    block = friends.block(alice, bob, reason="rude")

    assert block.reason == "rude"
    assert friends.list_friends(bob) == []
    for room_id in (friendship.chat_room_id, random_room.id):
        assert RoomService(db).get_room_state(room_id, bob) == RoomState.CLOSED
        with pytest.raises(RoomClosed):
            MessageService(db).send_message(room_id, bob, "still there?")
    with pytest.raises(Blocked):
        friends.send_friend_request(bob, alice)


def test_block_rejects_pending_requests(friends, alice, bob):
    req = friends.send_friend_request(bob, alice)
    friends.block(alice, bob)
    assert friends.count_pending_requests(alice) == 0
    with pytest.raises(InvalidRequest):
        friends.respond_to_request(req.id, ACCEPT, alice)


def test_block_closes_temp_closed_room_for_good(db, friends, alice, bob):
    friendship = _befriend(friends, alice, bob)
    friends.unfriend(friendship.id, alice)

    friends.block(bob, alice)

    assert RoomService(db).get_room_state(friendship.chat_room_id, alice) == RoomState.CLOSED
    with pytest.raises(InvalidRequest):
        RoomService(db).reopen_room(friendship.chat_room_id)


def test_block_is_idempotent(db, friends, alice, bob):
    first = friends.block(alice, bob)
    second = friends.block(alice, bob)
    assert first.id == second.id
    assert db.query(Block).count() == 1
    with pytest.raises(InvalidPair):
        friends.block(alice, alice)


def test_friendship_status(friends, alice, bob):
    status = friends.get_friendship_status(alice, bob)
    assert status.friendship_id is None and not status.blocked

    req = friends.send_friend_request(alice, bob)
    assert friends.get_friendship_status(alice, bob).pending_direction == "sent"
    assert friends.get_friendship_status(bob, alice).pending_request_id == req.id

    friends.respond_to_request(req.id, ACCEPT, bob)
    status = friends.get_friendship_status(bob, alice)
    assert status.friendship_status == FriendshipStatus.ACTIVE
    assert status.pending_request_id is None

    friends.block(bob, alice)
    assert friends.get_friendship_status(alice, bob).blocked


def test_report_leaves_room_open(db, friends, alice, bob):
    room = RoomService(db).create_room(alice, bob)

    report = friends.report(alice, bob, category=ReportCategory.SPAM, reason="ads", room_id=room.id)

    assert report.category == ReportCategory.SPAM.value
    assert [r.id for r in report_crud.list_by_reported(db, reported=bob)] == [report.id]
    assert RoomService(db).get_room_state(room.id, alice) == RoomState.OPEN
    with pytest.raises(InvalidPair):
        friends.report(alice, alice)
