"""
Relationship gate: friend requests, unfriend, block and report, with their
side effects on rooms.

Each operation changes the social graph and the affected rooms in a single
transaction; realtime events go out after the commit.
"""
from typing import List, Optional, Tuple
import uuid
import logging

from sqlalchemy.exc import IntegrityError

from app.chat.connection_manager import connection_manager
from app.core.exceptions import (
    AlreadyFriends,
    Blocked,
    InvalidPair,
    InvalidRequest,
    NotFound,
    NotFriends,
    RequestPending,
    Unauthorized,
)
from app.crud import (
    block_crud,
    chat_room_crud,
    friend_request_crud,
    friendship_crud,
    report_crud,
)
from app.model.block import Block
from app.model.chat_room import ChatRoom, RoomState, RoomType
from app.model.friend_request import FriendRequest, FriendRequestStatus
from app.model.friendship import Friendship, FriendshipStatus
from app.model.report import Report, ReportCategory
from app.schema.friend import FriendRequestResponseKind, FriendResponse, FriendshipStatusResponse
from app.schema.participant import Participant, canonical_pair, pair_key
from app.service.base import BaseService
from app.service.room_service import RoomService, room_payload
from app.utils.time import utcnow

logger = logging.getLogger(__name__)


def friend_request_payload(req: FriendRequest) -> dict:
    return {
        "request_id": str(req.id),
        "sender": req.sender.key,
        "receiver": req.receiver.key,
        "status": req.status,
        "chat_room_id": str(req.chat_room_id) if req.chat_room_id else None,
        "message": req.message,
    }


class FriendService(BaseService):
    """Friendship, block and report operations."""

    def __init__(self, db):
        super().__init__(db)
        self.rooms = RoomService(db)

    # --- friend requests ---

    def send_friend_request(
        self,
        sender: Participant,
        receiver: Participant,
        room_id: Optional[uuid.UUID] = None,
        message: Optional[str] = None,
    ) -> FriendRequest:
        if sender == receiver:
            raise InvalidPair("You cannot send a friend request to yourself.")
        if room_id:
            room = chat_room_crud.get_by_id(self.db, room_id=room_id)
            if not room:
                raise NotFound("Room")
            if not (room.has_participant(sender) and room.has_participant(receiver)):
                raise Unauthorized()
        if block_crud.exists_between(self.db, a=sender, b=receiver):
            raise Blocked()
        friendship = friendship_crud.get_by_pair(self.db, a=sender, b=receiver)
        if friendship and friendship.is_active:
            raise AlreadyFriends()
        if friend_request_crud.get_pending_between(self.db, a=sender, b=receiver):
            raise RequestPending()

        try:
            req = friend_request_crud.create_from_dict(
                self.db,
                obj_in={
                    "id": uuid.uuid4(),
                    "sender": sender,
                    "receiver": receiver,
                    "chat_room_id": room_id,
                    "message": message,
                    "status": FriendRequestStatus.PENDING.value,
                    "pending_key": pair_key(sender, receiver),
                },
            )
        except IntegrityError:
            # Crossed with a concurrent request for the same pair.
            self.db.rollback()
            raise RequestPending()
        logger.info(f"Friend request {req.id} sent from {sender} to {receiver}")
        connection_manager.publish_to_participants(
            (receiver,), "friend_request_received", friend_request_payload(req)
        )
        return req

    def respond_to_request(
        self,
        request_id: uuid.UUID,
        response: FriendRequestResponseKind,
        responder: Participant,
    ) -> Tuple[FriendRequest, Optional[Friendship]]:
        req = friend_request_crud.get_by_id(self.db, request_id=request_id)
        if not req:
            raise NotFound("Friend request")
        if req.receiver != responder:
            raise Unauthorized()
        if req.status != FriendRequestStatus.PENDING.value:
            raise InvalidRequest("This friend request was already answered.")

        if response == FriendRequestResponseKind.REJECTED:
            self._resolve(req, FriendRequestStatus.REJECTED)
            self._commit("reject friend request")
            req = friend_request_crud.get_by_id(self.db, request_id=request_id)
            logger.info(f"Friend request {req.id} rejected")
            self._publish_request(req)
            return req, None

        if block_crud.exists_between(self.db, a=req.sender, b=req.receiver):
            raise Blocked()
        self._resolve(req, FriendRequestStatus.ACCEPTED)
        friendship, reopened = self._activate_friendship(req.sender, req.receiver)
        self._commit("accept friend request")

        req = friend_request_crud.get_by_id(self.db, request_id=request_id)
        friendship = friendship_crud.get_by_id(self.db, friendship_id=friendship.id)
        logger.info(f"Friend request {req.id} accepted; friendship {friendship.id}")
        self._publish_request(req)
        if reopened:
            room = chat_room_crud.get_by_id(self.db, room_id=friendship.chat_room_id)
            connection_manager.publish_to_room(room.id, "room_reopened", room_payload(room))
            connection_manager.publish_to_participants(room.participants, "room_reopened", room_payload(room))
        return req, friendship

    def _resolve(self, req: FriendRequest, status: FriendRequestStatus) -> None:
        if not friend_request_crud.resolve_if_pending(self.db, request_id=req.id, status=status, now=utcnow()):
            self.db.rollback()
            raise InvalidRequest("This friend request was already answered.")

    def _activate_friendship(self, a: Participant, b: Participant) -> Tuple[Friendship, bool]:
        """
        Create or reactivate the pair's friendship and make sure it has an open
        friend room. Does not commit. Returns (friendship, room_was_reopened).
        """
        now = utcnow()
        friendship = friendship_crud.get_by_pair(self.db, a=a, b=b, for_update=True)
        if friendship and friendship.is_active:
            return friendship, False

        room = None
        reopened = False
        if friendship and friendship.chat_room_id:
            room = chat_room_crud.get_by_id(self.db, room_id=friendship.chat_room_id)
            if room and room.state == RoomState.TEMP_CLOSED:
                reopened = bool(chat_room_crud.reopen_if_temp_closed(self.db, room_id=room.id))
            elif room and room.state == RoomState.CLOSED:
                room = None
        if room is None:
            room = self.rooms._new_room(a, b, RoomType.FRIEND)

        if friendship is None:
            low, high = canonical_pair(a, b)
            friendship = friendship_crud.create_from_dict_no_commit(
                self.db,
                obj_in={
                    "id": uuid.uuid4(),
                    "participant_low": low,
                    "participant_high": high,
                    "status": FriendshipStatus.ACTIVE.value,
                    "chat_room_id": room.id,
                    "accepted_at": now,
                },
            )
        else:
            friendship.status = FriendshipStatus.ACTIVE.value
            friendship.chat_room_id = room.id
            friendship.accepted_at = now
            friendship.unfriended_at = None
            self.db.add(friendship)
            self.db.flush()
        return friendship, reopened

    def _publish_request(self, req: FriendRequest) -> None:
        connection_manager.publish_to_participants(
            (req.sender, req.receiver), "friend_request_updated", friend_request_payload(req)
        )

    # --- unfriend / block / report ---

    def unfriend(self, friendship_id: uuid.UUID, actor: Participant) -> Friendship:
        """End the friendship; its room is temporarily closed and keeps its history."""
        friendship = friendship_crud.get_by_id(self.db, friendship_id=friendship_id)
        if not friendship:
            raise NotFound("Friendship")
        if not friendship.involves(actor):
            raise Unauthorized()
        now = utcnow()
        if not friendship_crud.unfriend_if_active(self.db, friendship_id=friendship.id, now=now):
            self.db.rollback()
            raise NotFriends()
        room_id = friendship.chat_room_id
        closed = 0
        if room_id:
            closed = chat_room_crud.close_if_active(
                self.db, room_id=room_id, closed_by=actor, temporary=True, now=now
            )
        self._commit("unfriend")

        friendship = friendship_crud.get_by_id(self.db, friendship_id=friendship_id)
        logger.info(f"Friendship {friendship.id} ended by {actor}")
        connection_manager.publish_to_participants(
            (friendship.participant_low, friendship.participant_high),
            "friendship_ended",
            {"friendship_id": str(friendship.id), "by": actor.key},
        )
        if closed:
            self._publish_room_closed(chat_room_crud.get_by_id(self.db, room_id=room_id))
        return friendship

    def block(self, blocker: Participant, blocked: Participant, reason: Optional[str] = None) -> Block:
        """
        Record the block and cascade: an active friendship ends, pending requests
        between the pair are rejected and every shared room is closed for good.
        Blocking again is a no-op that returns the existing block.
        """
        if blocker == blocked:
            raise InvalidPair("You cannot block yourself.")
        now = utcnow()
        block = block_crud.get_by_pair(self.db, blocker=blocker, blocked=blocked)
        if block is None:
            try:
                block = block_crud.create_from_dict_no_commit(
                    self.db,
                    obj_in={"id": uuid.uuid4(), "blocker": blocker, "blocked": blocked, "reason": reason},
                )
            except IntegrityError:
                self.db.rollback()
                block = block_crud.get_by_pair(self.db, blocker=blocker, blocked=blocked)

        friendship = friendship_crud.get_by_pair(self.db, a=blocker, b=blocked, for_update=True)
        if friendship:
            friendship_crud.unfriend_if_active(self.db, friendship_id=friendship.id, now=now)
        friend_request_crud.reject_pending_between(self.db, a=blocker, b=blocked, now=now)

        closed_ids: List[uuid.UUID] = []
        for room in chat_room_crud.list_unclosed_shared(self.db, a=blocker, b=blocked):
            chat_room_crud.close_if_active(
                self.db, room_id=room.id, closed_by=blocker, temporary=False, now=now
            )
            chat_room_crud.finalize_if_temp_closed(self.db, room_id=room.id)
            closed_ids.append(room.id)
        self._commit("block")

        block = block_crud.get_by_pair(self.db, blocker=blocker, blocked=blocked)
        logger.info(f"{blocker} blocked {blocked}; closed {len(closed_ids)} room(s)")
        for room_id in closed_ids:
            self._publish_room_closed(chat_room_crud.get_by_id(self.db, room_id=room_id))
        return block

    def report(
        self,
        reporter: Participant,
        reported: Participant,
        category: ReportCategory = ReportCategory.OTHER,
        reason: Optional[str] = None,
        room_id: Optional[uuid.UUID] = None,
    ) -> Report:
        """Record a report for review. Rooms are not touched."""
        if reporter == reported:
            raise InvalidPair("You cannot report yourself.")
        if room_id:
            room = chat_room_crud.get_by_id(self.db, room_id=room_id)
            if not room:
                raise NotFound("Room")
            if not room.has_participant(reporter):
                raise Unauthorized()
        report = report_crud.create_from_dict(
            self.db,
            obj_in={
                "id": uuid.uuid4(),
                "reporter": reporter,
                "reported": reported,
                "category": ReportCategory(category).value,
                "reason": reason,
                "chat_room_id": room_id,
            },
        )
        logger.info(f"Report {report.id} filed by {reporter} against {reported} ({report.category})")
        return report

    def _publish_room_closed(self, room: ChatRoom) -> None:
        connection_manager.publish_to_room(room.id, "room_closed", room_payload(room))
        connection_manager.publish_to_participants(room.participants, "room_closed", room_payload(room))

    # --- reads ---

    def list_friends(self, participant: Participant, include_unfriended: bool = False) -> List[FriendResponse]:
        status = None if include_unfriended else FriendshipStatus.ACTIVE.value
        friendships = friendship_crud.list_for_participant(self.db, participant=participant, status=status)
        return [
            FriendResponse(
                friendship_id=f.id,
                friend=f.friend_of(participant),
                status=FriendshipStatus(f.status),
                chat_room_id=f.chat_room_id,
                created_at=f.created_at,
                accepted_at=f.accepted_at,
            )
            for f in friendships
        ]

    def list_pending_requests(self, participant: Participant) -> List[FriendRequest]:
        return friend_request_crud.list_pending_for_receiver(self.db, receiver=participant)

    def list_sent_requests(self, participant: Participant) -> List[FriendRequest]:
        return friend_request_crud.list_pending_by_sender(self.db, sender=participant)

    def count_pending_requests(self, participant: Participant) -> int:
        return friend_request_crud.count_pending_for_receiver(self.db, receiver=participant)

    def get_friendship_status(self, participant: Participant, other: Participant) -> FriendshipStatusResponse:
        result = FriendshipStatusResponse(blocked=block_crud.exists_between(self.db, a=participant, b=other))
        friendship = friendship_crud.get_by_pair(self.db, a=participant, b=other)
        if friendship:
            result.friendship_id = friendship.id
            result.friendship_status = FriendshipStatus(friendship.status)
        pending = friend_request_crud.get_pending_between(self.db, a=participant, b=other)
        if pending:
            result.pending_request_id = pending.id
            result.pending_direction = "sent" if pending.sender == participant else "received"
        return result
