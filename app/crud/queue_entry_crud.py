"""
Queue entry CRUD. Claiming is a conditional delete so an entry is consumed at most once.
"""
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional
import uuid

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.crud.base import CRUDBase
from app.model.queue_entry import QueueEntry
from app.schema.participant import Participant


class CRUDQueueEntry(CRUDBase[QueueEntry, Dict[str, Any], Dict[str, Any]]):
    def get_by_participant(self, db: Session, *, participant: Participant) -> Optional[QueueEntry]:
        return (
            db.query(self.model)
            .filter(self.model.participant == participant)
            .populate_existing()
            .first()
        )

    def delete_by_participant(self, db: Session, *, participant: Participant) -> int:
        """Delete without committing. Returns rows removed (0 or 1)."""
        return (
            db.query(self.model)
            .filter(self.model.participant == participant)
            .delete(synchronize_session=False)
        )

    def touch(self, db: Session, *, participant: Participant, now: datetime) -> int:
        return (
            db.query(self.model)
            .filter(self.model.participant == participant)
            .update({self.model.last_seen_at: now}, synchronize_session=False)
        )

    def list_live_candidates(
        self,
        db: Session,
        *,
        exclude: Participant,
        live_since: datetime,
        excluded_partners: Iterable[Participant] = (),
        limit: int = 200,
    ) -> List[QueueEntry]:
        """Live entries other than `exclude`, oldest first. Rows locked by another matcher are skipped."""
        query = db.query(self.model).filter(
            self.model.participant != exclude,
            self.model.last_seen_at >= live_since,
        )
        excluded = list(excluded_partners)
        if excluded:
            query = query.filter(self.model.participant.notin_(excluded))
        return (
            query.order_by(self.model.enqueued_at, self.model.id)
            .limit(limit)
            .with_for_update(skip_locked=True)
            .all()
        )

    def claim(self, db: Session, *, entry_ids: List[uuid.UUID]) -> int:
        """Delete the given entries without committing. Caller compares the count to len(entry_ids)."""
        return (
            db.query(self.model)
            .filter(self.model.id.in_(entry_ids))
            .delete(synchronize_session=False)
        )

    def count_ahead(self, db: Session, *, entry: QueueEntry, live_since: datetime) -> int:
        return (
            db.query(func.count(self.model.id))
            .filter(
                self.model.last_seen_at >= live_since,
                self.model.enqueued_at < entry.enqueued_at,
            )
            .scalar()
            or 0
        )

    def count_live(self, db: Session, *, live_since: datetime) -> int:
        return (
            db.query(func.count(self.model.id))
            .filter(self.model.last_seen_at >= live_since)
            .scalar()
            or 0
        )

    def purge_stale(self, db: Session, *, live_since: datetime) -> int:
        """Delete entries not refreshed since `live_since`. Commits."""
        removed = (
            db.query(self.model)
            .filter(self.model.last_seen_at < live_since)
            .delete(synchronize_session=False)
        )
        db.commit()
        return removed


queue_entry_crud = CRUDQueueEntry(QueueEntry)
