"""
Shared plumbing for the services: commit with storage errors mapped to Transient.
"""
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
import logging

from app.core.exceptions import Transient

logger = logging.getLogger(__name__)


class BaseService:
    """Holds the request-scoped DB session."""

    def __init__(self, db: Session):
        self.db = db

    def _commit(self, action: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(f"Commit failed during {action}")
            raise Transient()
