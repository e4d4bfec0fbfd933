"""
Column types shared by the models.
"""
from sqlalchemy import String
from sqlalchemy.types import TypeDecorator

from app.schema.participant import Participant


class ParticipantType(TypeDecorator):
    """Stores a Participant as its "kind:id" key in one column."""

    impl = String(80)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, Participant):
            return value.key
        return Participant.from_key(value).key

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Participant.from_key(value)
