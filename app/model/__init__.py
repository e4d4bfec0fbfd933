from app.model.chat_room import ChatRoom, RoomState, RoomType
from app.model.chat_message import ChatMessage
from app.model.queue_entry import QueueEntry
from app.model.pairing import Pairing
from app.model.friend_request import FriendRequest, FriendRequestStatus
from app.model.friendship import Friendship, FriendshipStatus
from app.model.block import Block
from app.model.report import Report, ReportCategory
from app.model.saved_filters import SavedFilters

__all__ = [
    "ChatRoom",
    "RoomState",
    "RoomType",
    "ChatMessage",
    "QueueEntry",
    "Pairing",
    "FriendRequest",
    "FriendRequestStatus",
    "Friendship",
    "FriendshipStatus",
    "Block",
    "Report",
    "ReportCategory",
    "SavedFilters",
]
