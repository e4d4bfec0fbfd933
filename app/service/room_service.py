"""
Room manager: creation, close/reopen transitions and state reads.

Every transition is a conditional update against the stored row, so concurrent
callers cannot both win a transition and a losing close is a no-op.
"""
from datetime import timedelta
from typing import Optional
import uuid
import logging

from sqlalchemy.exc import IntegrityError

from app.chat.connection_manager import connection_manager
from app.core.config import settings
from app.core.exceptions import (
    AlreadyInRoom,
    Blocked,
    InvalidPair,
    InvalidRequest,
    NotFound,
    Transient,
    Unauthorized,
)
from app.crud import block_crud, chat_room_crud, pairing_crud
from app.model.chat_room import ChatRoom, RoomState, RoomType
from app.schema.participant import Participant
from app.service.base import BaseService
from app.utils.time import as_utc, utcnow

logger = logging.getLogger(__name__)


def room_payload(room: ChatRoom) -> dict:
    """Serialize room for realtime events."""
    return {
        "room_id": str(room.id),
        "room_type": room.room_type,
        "state": room.state.value,
        "pairing_id": str(room.pairing_id) if room.pairing_id else None,
        "closed_by": room.closed_by.key if room.closed_by else None,
        "closed_at": room.closed_at.isoformat() if room.closed_at else None,
    }


class RoomService(BaseService):
    """Owns the room lifecycle."""

    # --- reads ---

    def get_room(self, room_id: uuid.UUID, actor: Participant) -> ChatRoom:
        room = chat_room_crud.get_by_id(self.db, room_id=room_id)
        if not room:
            raise NotFound("Room")
        if not room.has_participant(actor):
            raise Unauthorized()
        return room

    def get_room_state(self, room_id: uuid.UUID, actor: Participant) -> RoomState:
        return self.get_room(room_id, actor).state

    def get_active_room(self, participant: Participant) -> Optional[ChatRoom]:
        """Current open random room, if any."""
        return chat_room_crud.get_active_random_for_participant(self.db, participant=participant)

    # --- creation ---

    def create_room(
        self,
        slot_a: Participant,
        slot_b: Participant,
        room_type: RoomType = RoomType.RANDOM,
        pairing_id: Optional[uuid.UUID] = None,
    ) -> ChatRoom:
        room = self._new_room(slot_a, slot_b, room_type, pairing_id)
        self._commit("create_room")
        self.db.refresh(room)
        logger.info(f"Room {room.id} created ({room.room_type}) for {slot_a} and {slot_b}")
        return room

    def _new_room(
        self,
        slot_a: Participant,
        slot_b: Participant,
        room_type: RoomType,
        pairing_id: Optional[uuid.UUID] = None,
    ) -> ChatRoom:
        """Insert without committing."""
        if slot_a == slot_b:
            raise InvalidPair()
        return chat_room_crud.create_from_dict_no_commit(
            self.db,
            obj_in={
                "id": uuid.uuid4(),
                "slot_1": slot_a,
                "slot_2": slot_b,
                "room_type": room_type.value,
                "pairing_id": pairing_id,
                "is_active": True,
            },
        )

    def create_room_for_pairing(self, pairing_id: uuid.UUID, actor: Participant) -> ChatRoom:
        """
        Create the room for a pairing, or return the one that already exists.
        Either matched participant may call this; concurrent calls converge on one room.
        """
        pairing = pairing_crud.get_by_id(self.db, pairing_id=pairing_id)
        if not pairing:
            raise NotFound("Pairing")
        if not pairing.involves(actor):
            raise Unauthorized()

        room = chat_room_crud.get_by_pairing(self.db, pairing_id=pairing.id)
        if room:
            self._backfill_pairing(pairing.id, room.id)
            return room

        live_since = utcnow() - timedelta(seconds=settings.QUEUE_ENTRY_TTL_SECONDS)
        if pairing.room_id is None and as_utc(pairing.created_at) < live_since:
            # Abandoned before a room was opened; the participants may have moved on.
            raise NotFound("Pairing")

        if block_crud.exists_between(self.db, a=pairing.participant_a, b=pairing.participant_b):
            raise Blocked()

        for slot in (pairing.participant_a, pairing.participant_b):
            active = chat_room_crud.get_active_random_for_participant(self.db, participant=slot)
            if active and active.pairing_id != pairing.id:
                raise AlreadyInRoom(room_id=active.id)

        try:
            room = self._new_room(pairing.participant_a, pairing.participant_b, RoomType.RANDOM, pairing.id)
            pairing_crud.set_room_if_unset(self.db, pairing_id=pairing.id, room_id=room.id)
            self.db.commit()
        except IntegrityError:
            # The partner's client created it first (unique pairing_id).
            self.db.rollback()
            room = chat_room_crud.get_by_pairing(self.db, pairing_id=pairing.id)
            if not room:
                raise Transient()
            self._backfill_pairing(pairing.id, room.id)
            logger.info(f"Reusing room {room.id} for pairing {pairing.id}")
            return room

        self.db.refresh(room)
        logger.info(f"Room {room.id} created for pairing {pairing.id}")
        connection_manager.publish_to_participants(
            room.participants, "room_created", room_payload(room)
        )
        return room

    def _backfill_pairing(self, pairing_id: uuid.UUID, room_id: uuid.UUID) -> None:
        if pairing_crud.set_room_if_unset(self.db, pairing_id=pairing_id, room_id=room_id):
            self._commit("backfill pairing room")
        else:
            self.db.rollback()

    # --- transitions ---

    def close_room(self, room_id: uuid.UUID, actor: Participant, temporary: bool = False) -> ChatRoom:
        """
        Close a room on behalf of an occupant. Closing an already closed room is a no-op
        and the first closer is kept in closed_by.
        """
        room = self.get_room(room_id, actor)
        if room.state == RoomState.CLOSED:
            return room
        if temporary and room.room_type != RoomType.FRIEND.value:
            raise InvalidRequest("Only friend rooms can be temporarily closed.")
        if not temporary and room.room_type == RoomType.FRIEND.value:
            raise InvalidRequest("Friend rooms are closed by unfriending or blocking.")
        return self._close(room.id, actor, temporary)

    def _close(self, room_id: uuid.UUID, actor: Participant, temporary: bool) -> ChatRoom:
        changed = chat_room_crud.close_if_active(
            self.db, room_id=room_id, closed_by=actor, temporary=temporary, now=utcnow()
        )
        self._commit("close_room")
        room = chat_room_crud.get_by_id(self.db, room_id=room_id)
        if changed:
            logger.info(f"Room {room_id} closed by {actor} (temporary={temporary})")
            connection_manager.publish_to_room(room.id, "room_closed", room_payload(room))
            connection_manager.publish_to_participants(room.participants, "room_closed", room_payload(room))
        return room

    def close_permanently(self, room_id: uuid.UUID, actor: Participant) -> ChatRoom:
        """OPEN or TEMP_CLOSED -> CLOSED. Used by the relationship gate on block."""
        room = self._close(room_id, actor, temporary=False)
        if room.state == RoomState.TEMP_CLOSED:
            if chat_room_crud.finalize_if_temp_closed(self.db, room_id=room_id):
                self._commit("finalize room")
                room = chat_room_crud.get_by_id(self.db, room_id=room_id)
                logger.info(f"Room {room_id} permanently closed by {actor}")
                connection_manager.publish_to_room(room.id, "room_closed", room_payload(room))
            else:
                self.db.rollback()
        return room

    def close_temporarily(self, room_id: uuid.UUID, actor: Participant) -> ChatRoom:
        """OPEN -> TEMP_CLOSED. Used by the relationship gate on unfriend."""
        return self._close(room_id, actor, temporary=True)

    def reopen_room(self, room_id: uuid.UUID) -> ChatRoom:
        """
        TEMP_CLOSED -> OPEN. Only the relationship gate calls this, after friendship
        is re-established. Reopening an open room is a no-op.
        """
        changed = chat_room_crud.reopen_if_temp_closed(self.db, room_id=room_id)
        self._commit("reopen_room")
        room = chat_room_crud.get_by_id(self.db, room_id=room_id)
        if not room:
            raise NotFound("Room")
        if changed:
            logger.info(f"Room {room_id} reopened")
            connection_manager.publish_to_room(room.id, "room_reopened", room_payload(room))
            connection_manager.publish_to_participants(room.participants, "room_reopened", room_payload(room))
        elif room.state == RoomState.CLOSED:
            raise InvalidRequest("Closed rooms cannot be reopened.")
        return room
