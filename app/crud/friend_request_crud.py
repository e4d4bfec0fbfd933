"""
Friend request CRUD.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
import uuid

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session

from app.crud.base import CRUDBase
from app.model.friend_request import FriendRequest, FriendRequestStatus
from app.schema.participant import Participant


class CRUDFriendRequest(CRUDBase[FriendRequest, Dict[str, Any], Dict[str, Any]]):
    def get_by_id(self, db: Session, *, request_id: uuid.UUID) -> Optional[FriendRequest]:
        return (
            db.query(self.model)
            .filter(self.model.id == request_id)
            .populate_existing()
            .first()
        )

    def _between(self, a: Participant, b: Participant):
        return or_(
            and_(self.model.sender == a, self.model.receiver == b),
            and_(self.model.sender == b, self.model.receiver == a),
        )

    def get_pending_between(self, db: Session, *, a: Participant, b: Participant) -> Optional[FriendRequest]:
        return (
            db.query(self.model)
            .filter(self._between(a, b), self.model.status == FriendRequestStatus.PENDING.value)
            .order_by(self.model.created_at.desc())
            .first()
        )

    def list_pending_for_receiver(self, db: Session, *, receiver: Participant) -> List[FriendRequest]:
        return (
            db.query(self.model)
            .filter(self.model.receiver == receiver, self.model.status == FriendRequestStatus.PENDING.value)
            .order_by(self.model.created_at.desc())
            .all()
        )

    def list_pending_by_sender(self, db: Session, *, sender: Participant) -> List[FriendRequest]:
        return (
            db.query(self.model)
            .filter(self.model.sender == sender, self.model.status == FriendRequestStatus.PENDING.value)
            .order_by(self.model.created_at.desc())
            .all()
        )

    def count_pending_for_receiver(self, db: Session, *, receiver: Participant) -> int:
        return (
            db.query(func.count(self.model.id))
            .filter(self.model.receiver == receiver, self.model.status == FriendRequestStatus.PENDING.value)
            .scalar()
            or 0
        )

    def resolve_if_pending(
        self, db: Session, *, request_id: uuid.UUID, status: FriendRequestStatus, now: datetime
    ) -> int:
        """pending -> accepted|rejected. Returns 1 if this call made the transition."""
        return (
            db.query(self.model)
            .filter(self.model.id == request_id, self.model.status == FriendRequestStatus.PENDING.value)
            .update(
                {self.model.status: status.value, self.model.responded_at: now, self.model.pending_key: None},
                synchronize_session=False,
            )
        )

    def reject_pending_between(self, db: Session, *, a: Participant, b: Participant, now: datetime) -> int:
        return (
            db.query(self.model)
            .filter(self._between(a, b), self.model.status == FriendRequestStatus.PENDING.value)
            .update(
                {
                    self.model.status: FriendRequestStatus.REJECTED.value,
                    self.model.responded_at: now,
                    self.model.pending_key: None,
                },
                synchronize_session=False,
            )
        )


friend_request_crud = CRUDFriendRequest(FriendRequest)
