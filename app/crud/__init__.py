from app.crud.queue_entry_crud import queue_entry_crud
from app.crud.pairing_crud import pairing_crud
from app.crud.chat_room_crud import chat_room_crud
from app.crud.chat_message_crud import chat_message_crud
from app.crud.friend_request_crud import friend_request_crud
from app.crud.friendship_crud import friendship_crud
from app.crud.block_crud import block_crud
from app.crud.report_crud import report_crud
from app.crud.saved_filters_crud import saved_filters_crud

__all__ = [
    "queue_entry_crud",
    "pairing_crud",
    "chat_room_crud",
    "chat_message_crud",
    "friend_request_crud",
    "friendship_crud",
    "block_crud",
    "report_crud",
    "saved_filters_crud",
]
