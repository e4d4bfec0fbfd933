"""
Matching schemas: filters, queue entries, pairings.
"""
from datetime import datetime
from typing import List, Optional
import uuid

from pydantic import BaseModel, Field, field_validator, model_validator

from app.schema.participant import Participant


def _normalize_tags(tags: List[str]) -> List[str]:
    seen = []
    for tag in tags:
        t = tag.strip().lower()
        if t and t not in seen:
            seen.append(t)
    return seen


class MatchFilters(BaseModel):
    """What a searcher is looking for. Every field is optional; empty means "anyone"."""
    gender: Optional[str] = None
    age_min: Optional[int] = Field(None, ge=13, le=120)
    age_max: Optional[int] = Field(None, ge=13, le=120)
    country: Optional[str] = None
    interest_tags: List[str] = Field(default_factory=list)

    @field_validator("gender", "country")
    @classmethod
    def _lower(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip().lower()
        return v or None

    @field_validator("interest_tags")
    @classmethod
    def _tags(cls, v: List[str]) -> List[str]:
        return _normalize_tags(v)

    @model_validator(mode="after")
    def _age_range(self) -> "MatchFilters":
        if self.age_min is not None and self.age_max is not None and self.age_min > self.age_max:
            raise ValueError("age_min must not exceed age_max")
        return self

    def is_empty(self) -> bool:
        return not (self.gender or self.age_min or self.age_max or self.country or self.interest_tags)


class ParticipantProfile(BaseModel):
    """Traits of a searcher that other searchers' filters are checked against."""
    gender: Optional[str] = None
    age: Optional[int] = Field(None, ge=13, le=120)
    country: Optional[str] = None
    interest_tags: List[str] = Field(default_factory=list)

    @field_validator("gender", "country")
    @classmethod
    def _lower(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip().lower()
        return v or None

    @field_validator("interest_tags")
    @classmethod
    def _tags(cls, v: List[str]) -> List[str]:
        return _normalize_tags(v)


class QueueEnterBody(BaseModel):
    """Body for POST /queue."""
    filters: Optional[MatchFilters] = None
    profile: Optional[ParticipantProfile] = None
    connection_hint: Optional[str] = Field(None, max_length=255)


class QueueEntryResponse(BaseModel):
    id: uuid.UUID
    participant: Participant
    filters: MatchFilters
    enqueued_at: datetime

    class Config:
        from_attributes = True


class QueuePosition(BaseModel):
    """Cheap probe for UI polling."""
    entry_id: uuid.UUID
    position: int = Field(..., description="1-based FIFO rank among live entries.")
    waiting: int = Field(..., description="Live entries in the queue.")
    enqueued_at: datetime


class PairingResponse(BaseModel):
    id: uuid.UUID
    participant_a: Participant
    participant_b: Participant
    room_id: Optional[uuid.UUID] = None
    created_at: datetime

    class Config:
        from_attributes = True


class MatchResult(BaseModel):
    """attempt_match / active-match response. `pairing` is null while still waiting."""
    matched: bool
    pairing: Optional[PairingResponse] = None
    partner: Optional[Participant] = None


class QueueLeaveResponse(BaseModel):
    removed: bool = Field(..., description="False when there was no entry to remove.")


class QueueHeartbeatResponse(BaseModel):
    queued: bool = Field(..., description="False when the participant has no queue entry.")
