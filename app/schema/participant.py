"""
Participant reference: a guest or an authenticated identity.
"""
from enum import Enum
from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field


class ParticipantKind(str, Enum):
    GUEST = "guest"
    AUTHENTICATED = "authenticated"


class Participant(BaseModel):
    """Opaque identity reference. Immutable and hashable; `key` is its storage form."""
    model_config = ConfigDict(frozen=True)

    kind: ParticipantKind
    id: str = Field(..., min_length=1, max_length=64)

    @property
    def key(self) -> str:
        return f"{self.kind.value}:{self.id}"

    @classmethod
    def from_key(cls, key: str) -> "Participant":
        kind, _, pid = key.partition(":")
        return cls(kind=ParticipantKind(kind), id=pid)

    @classmethod
    def guest(cls, pid: str) -> "Participant":
        return cls(kind=ParticipantKind.GUEST, id=pid)

    @classmethod
    def authenticated(cls, pid: str) -> "Participant":
        return cls(kind=ParticipantKind.AUTHENTICATED, id=pid)

    def __str__(self) -> str:
        return self.key


def canonical_pair(a: Participant, b: Participant) -> Tuple[Participant, Participant]:
    """Order a pair deterministically so an unordered pair has one storage form."""
    return (a, b) if a.key <= b.key else (b, a)


def pair_key(a: Participant, b: Participant) -> str:
    low, high = canonical_pair(a, b)
    return f"{low.key}|{high.key}"
