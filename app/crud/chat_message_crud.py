"""
Chat message CRUD.
"""
from typing import Any, Dict, List, Optional, Tuple
import uuid
from sqlalchemy.orm import Session
from sqlalchemy import desc, func

from app.model.chat_message import ChatMessage
from app.crud.base import CRUDBase


class CRUDChatMessage(CRUDBase[ChatMessage, Dict[str, Any], Dict[str, Any]]):
    def get_by_id(self, db: Session, *, message_id: uuid.UUID) -> Optional[ChatMessage]:
        return db.query(self.model).filter(self.model.id == message_id).first()

    def next_seq(self, db: Session, *, room_id: uuid.UUID) -> int:
        """Next per-room sequence number. Call only while holding the room row lock."""
        current = (
            db.query(func.max(self.model.seq))
            .filter(self.model.room_id == room_id)
            .scalar()
        )
        return (current or 0) + 1

    def list_by_room(
        self,
        db: Session,
        *,
        room_id: uuid.UUID,
        limit: int = 50,
        before_seq: Optional[int] = None,
    ) -> Tuple[List[ChatMessage], bool]:
        """Latest `limit` messages before `before_seq`, returned oldest first, plus a has-more flag."""
        base = db.query(self.model).filter(self.model.room_id == room_id)
        if before_seq is not None:
            base = base.filter(self.model.seq < before_seq)
        rows = base.order_by(desc(self.model.seq)).limit(limit + 1).all()
        has_more = len(rows) > limit
        items = list(reversed(rows[:limit]))
        return items, has_more


chat_message_crud = CRUDChatMessage(ChatMessage)
