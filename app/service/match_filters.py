"""
Symmetric filter compatibility for the match resolver.

A pair is compatible when each side's filters are satisfied by the other
side's profile. A side with no filters accepts anyone, which is what makes
unfiltered searchers fall back to random matching. Filters of a side that has
waited past the fallback threshold are relaxed.
"""
from datetime import datetime, timedelta
from typing import Optional

from app.model.queue_entry import QueueEntry
from app.schema.matching import MatchFilters, ParticipantProfile
from app.utils.time import as_utc


def satisfies(filters: MatchFilters, profile: ParticipantProfile) -> bool:
    """Does `profile` meet every constraint set in `filters`? Unknown traits fail a set constraint."""
    if filters.gender and profile.gender != filters.gender:
        return False
    if filters.age_min is not None or filters.age_max is not None:
        if profile.age is None:
            return False
        if filters.age_min is not None and profile.age < filters.age_min:
            return False
        if filters.age_max is not None and profile.age > filters.age_max:
            return False
    if filters.country and profile.country != filters.country:
        return False
    if filters.interest_tags and not set(filters.interest_tags) & set(profile.interest_tags):
        return False
    return True


def filters_relaxed(entry: QueueEntry, now: datetime, fallback_after: Optional[float]) -> bool:
    if fallback_after is None:
        return False
    waited = now - as_utc(entry.enqueued_at)
    return waited >= timedelta(seconds=fallback_after)


def effective_filters(entry: QueueEntry, now: datetime, fallback_after: Optional[float]) -> MatchFilters:
    if filters_relaxed(entry, now, fallback_after):
        return MatchFilters()
    return MatchFilters.model_validate(entry.filters or {})


def compatible(
    seeker: QueueEntry,
    candidate: QueueEntry,
    now: datetime,
    fallback_after: Optional[float] = None,
) -> bool:
    seeker_profile = ParticipantProfile.model_validate(seeker.profile or {})
    candidate_profile = ParticipantProfile.model_validate(candidate.profile or {})
    return satisfies(effective_filters(seeker, now, fallback_after), candidate_profile) and satisfies(
        effective_filters(candidate, now, fallback_after), seeker_profile
    )
