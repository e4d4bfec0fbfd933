from datetime import timedelta

import pytest
from pydantic import ValidationError

from app.model.queue_entry import QueueEntry
from app.schema.matching import MatchFilters, ParticipantProfile
from app.service.match_filters import compatible, effective_filters, satisfies
from app.utils.time import utcnow


def _entry(filters=None, profile=None, waited=0):
    return QueueEntry(
        filters=(filters or MatchFilters()).model_dump(),
        profile=(profile or ParticipantProfile()).model_dump(),
        enqueued_at=utcnow() - timedelta(seconds=waited),
    )


def test_empty_filters_accept_anyone():
    assert satisfies(MatchFilters(), ParticipantProfile())
    assert satisfies(MatchFilters(), ParticipantProfile(gender="male", age=40))


def test_gender_and_country_are_case_insensitive():
    filters = MatchFilters(gender="Female", country="FR")
    assert satisfies(filters, ParticipantProfile(gender="female", country="fr"))
    assert not satisfies(filters, ParticipantProfile(gender="female", country="de"))


def test_age_range_is_inclusive():
    filters = MatchFilters(age_min=18, age_max=25)
    assert satisfies(filters, ParticipantProfile(age=18))
    assert satisfies(filters, ParticipantProfile(age=25))
    assert not satisfies(filters, ParticipantProfile(age=26))
    assert not satisfies(filters, ParticipantProfile())


def test_interest_tags_need_one_overlap():
    filters = MatchFilters(interest_tags=["chess", "music"])
    assert satisfies(filters, ParticipantProfile(interest_tags=["Music"]))
    assert not satisfies(filters, ParticipantProfile(interest_tags=["golf"]))


def test_inverted_age_range_is_rejected():
    with pytest.raises(ValidationError):
        MatchFilters(age_min=30, age_max=20)


def test_compatibility_is_symmetric():
    picky = _entry(MatchFilters(gender="female"), ParticipantProfile(gender="male"))
    open_minded = _entry(profile=ParticipantProfile(gender="female"))
    now = utcnow()
    assert compatible(picky, open_minded, now) == compatible(open_minded, picky, now)

    rejecting = _entry(MatchFilters(gender="female"), ParticipantProfile(gender="female"))
    assert not compatible(picky, rejecting, now)
    assert not compatible(rejecting, picky, now)


def test_filters_relaxed_after_threshold():
    entry = _entry(MatchFilters(country="fr"), waited=30)
    now = utcnow()
    assert effective_filters(entry, now, 10).is_empty()
    assert not effective_filters(entry, now, 60).is_empty()
    assert not effective_filters(entry, now, None).is_empty()
