"""
Message channel: sends gated on live room state, and history reads.
"""
from typing import Callable, List, Optional, Tuple
import uuid
import logging

from app.chat.connection_manager import connection_manager, room_channel
from app.core.config import settings
from app.core.exceptions import InvalidRequest, NotFound, RoomClosed, Unauthorized
from app.crud import chat_message_crud, chat_room_crud
from app.model.chat_message import ChatMessage
from app.model.chat_room import ChatRoom
from app.schema.participant import Participant
from app.service.base import BaseService
from app.utils.time import utcnow

logger = logging.getLogger(__name__)

MESSAGE_CREATED = "message_created"


def message_payload(msg: ChatMessage) -> dict:
    """Serialize message for response and realtime broadcast."""
    return {
        "id": str(msg.id),
        "room_id": str(msg.room_id),
        "sender": msg.sender.key,
        "content": msg.content,
        "reply_to_id": str(msg.reply_to_id) if msg.reply_to_id else None,
        "seq": msg.seq,
        "created_at": msg.created_at.isoformat() if msg.created_at else None,
    }


class MessageService(BaseService):
    """Accepts messages only while the room is open, checked against the stored row."""

    def send_message(
        self,
        room_id: uuid.UUID,
        sender: Participant,
        content: str,
        reply_to_id: Optional[uuid.UUID] = None,
    ) -> ChatMessage:
        content = (content or "").strip()
        if not content:
            raise InvalidRequest("Message content cannot be empty or whitespace only.")
        if len(content) > settings.MESSAGE_MAX_LENGTH:
            raise InvalidRequest(f"Message content exceeds {settings.MESSAGE_MAX_LENGTH} characters.")

        # Lock the room row: a concurrent close either commits before this read or waits for us.
        room = chat_room_crud.get_for_update(self.db, room_id)
        if not room:
            self.db.rollback()
            raise NotFound("Room")
        if not room.has_participant(sender):
            self.db.rollback()
            raise Unauthorized()
        if not room.is_active:
            self.db.rollback()
            raise RoomClosed()
        if reply_to_id:
            quoted = chat_message_crud.get_by_id(self.db, message_id=reply_to_id)
            if not quoted or quoted.room_id != room.id:
                self.db.rollback()
                raise InvalidRequest("Quoted message must exist and belong to this room.")

        now = utcnow()
        msg = chat_message_crud.create_from_dict_no_commit(
            self.db,
            obj_in={
                "room_id": room.id,
                "sender": sender,
                "content": content,
                "reply_to_id": reply_to_id,
                "seq": chat_message_crud.next_seq(self.db, room_id=room.id),
                "created_at": now,
            },
        )
        room.last_message_at = now
        self.db.add(room)
        self._commit("send_message")
        self.db.refresh(msg)
        connection_manager.publish_to_room(room_id, MESSAGE_CREATED, message_payload(msg))
        return msg

    def list_messages(
        self,
        room_id: uuid.UUID,
        reader: Participant,
        before_seq: Optional[int] = None,
        limit: int = 50,
    ) -> Tuple[ChatRoom, List[ChatMessage], bool]:
        """History is readable by occupants in every room state."""
        room = chat_room_crud.get_by_id(self.db, room_id=room_id)
        if not room:
            raise NotFound("Room")
        if not room.has_participant(reader):
            raise Unauthorized()
        items, has_more = chat_message_crud.list_by_room(
            self.db, room_id=room_id, limit=limit, before_seq=before_seq
        )
        return room, items, has_more

    @staticmethod
    def subscribe_new_messages(room_id: uuid.UUID, callback: Callable[[dict], None]) -> Callable[[], None]:
        """Call `callback(payload)` for every message committed to the room. Returns an unsubscribe function."""

        def _on_event(event: str, payload) -> None:
            if event == MESSAGE_CREATED:
                callback(payload)

        return connection_manager.add_listener(room_channel(room_id), _on_event)
