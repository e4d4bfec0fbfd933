"""
Friendship CRUD. Pairs are stored in canonical order.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
import uuid

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.crud.base import CRUDBase
from app.model.friendship import Friendship, FriendshipStatus
from app.schema.participant import Participant, canonical_pair


class CRUDFriendship(CRUDBase[Friendship, Dict[str, Any], Dict[str, Any]]):
    def get_by_id(self, db: Session, *, friendship_id: uuid.UUID) -> Optional[Friendship]:
        return (
            db.query(self.model)
            .filter(self.model.id == friendship_id)
            .populate_existing()
            .first()
        )

    def get_by_pair(
        self, db: Session, *, a: Participant, b: Participant, for_update: bool = False
    ) -> Optional[Friendship]:
        low, high = canonical_pair(a, b)
        query = db.query(self.model).filter(
            self.model.participant_low == low,
            self.model.participant_high == high,
        ).populate_existing()
        if for_update:
            query = query.with_for_update()
        return query.first()

    def list_for_participant(
        self, db: Session, *, participant: Participant, status: Optional[str] = None
    ) -> List[Friendship]:
        query = db.query(self.model).filter(
            or_(self.model.participant_low == participant, self.model.participant_high == participant)
        )
        if status:
            query = query.filter(self.model.status == status)
        return query.order_by(self.model.accepted_at.desc(), self.model.created_at.desc()).all()

    def unfriend_if_active(self, db: Session, *, friendship_id: uuid.UUID, now: datetime) -> int:
        """active -> unfriended. Returns 1 if this call made the transition."""
        return (
            db.query(self.model)
            .filter(self.model.id == friendship_id, self.model.status == FriendshipStatus.ACTIVE.value)
            .update(
                {self.model.status: FriendshipStatus.UNFRIENDED.value, self.model.unfriended_at: now},
                synchronize_session=False,
            )
        )


friendship_crud = CRUDFriendship(Friendship)
