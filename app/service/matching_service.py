"""
Matching queue and match resolver.

Claiming a pair is one transaction: both queue entries are deleted with a
conditional delete and the pairing is inserted only if both rows were still
there. A concurrent resolver that loses the race sees fewer rows deleted,
rolls back and moves on, so a queue entry feeds at most one pairing.
"""
from datetime import timedelta
from typing import Callable, Optional
import asyncio
import logging
import uuid

from sqlalchemy.exc import IntegrityError

from app.chat.connection_manager import connection_manager, participant_channel
from app.chat.match_watch import MatchWatch
from app.core.config import settings
from app.core.exceptions import AlreadyInRoom, InvalidRequest, Transient
from app.crud import (
    block_crud,
    chat_room_crud,
    pairing_crud,
    queue_entry_crud,
    saved_filters_crud,
)
from app.model.pairing import Pairing
from app.model.queue_entry import QueueEntry
from app.schema.matching import MatchFilters, ParticipantProfile, QueuePosition
from app.schema.participant import Participant
from app.service.base import BaseService
from app.service.match_filters import compatible
from app.utils.time import utcnow

logger = logging.getLogger(__name__)

MATCH_FOUND = "match_found"
# Rescans after losing a claim race before reporting "nothing yet".
MAX_CLAIM_ATTEMPTS = 3


def pairing_payload(pairing: Pairing) -> dict:
    return {
        "pairing_id": str(pairing.id),
        "participant_a": pairing.participant_a.key,
        "participant_b": pairing.participant_b.key,
        "room_id": str(pairing.room_id) if pairing.room_id else None,
        "created_at": pairing.created_at.isoformat() if pairing.created_at else None,
    }


class MatchingService(BaseService):
    """Queue operations and the match resolver."""

    def _live_since(self, now):
        return now - timedelta(seconds=settings.QUEUE_ENTRY_TTL_SECONDS)

    # --- queue ---

    def enter_queue(
        self,
        participant: Participant,
        filters: Optional[MatchFilters] = None,
        profile: Optional[ParticipantProfile] = None,
        connection_hint: Optional[str] = None,
    ) -> QueueEntry:
        """Upsert the participant's single queue entry. Re-entry replaces a stale one."""
        filters = filters or MatchFilters()
        profile = profile or ParticipantProfile()
        if len(filters.interest_tags) > settings.MAX_INTEREST_TAGS:
            raise InvalidRequest(f"At most {settings.MAX_INTEREST_TAGS} interest tags are allowed.")

        room = chat_room_crud.get_active_random_for_participant(self.db, participant=participant)
        if room:
            raise AlreadyInRoom(room_id=room.id)

        now = utcnow()
        live_since = self._live_since(now)
        pending = pairing_crud.get_live_for_participant(self.db, participant=participant, roomless_since=live_since)
        if pending:
            raise AlreadyInRoom(message="You have already been matched.")

        self.purge_stale_entries()

        obj_in = {
            "id": uuid.uuid4(),
            "participant": participant,
            "filters": filters.model_dump(),
            "profile": profile.model_dump(),
            "connection_hint": connection_hint,
            "enqueued_at": now,
            "last_seen_at": now,
        }
        for attempt in range(2):
            queue_entry_crud.delete_by_participant(self.db, participant=participant)
            try:
                entry = queue_entry_crud.create_from_dict_no_commit(self.db, obj_in=dict(obj_in))
                self.db.commit()
                break
            except IntegrityError:
                # Concurrent enter for the same participant; replace it.
                self.db.rollback()
                if attempt:
                    raise Transient()
        self.db.refresh(entry)
        logger.info(f"{participant} entered the queue")
        return entry

    def leave_queue(self, participant: Participant) -> bool:
        """Remove the entry. Absent entry is not an error; returns whether one was removed."""
        removed = queue_entry_crud.delete_by_participant(self.db, participant=participant)
        self._commit("leave_queue")
        if removed:
            logger.info(f"{participant} left the queue")
        return bool(removed)

    def heartbeat(self, participant: Participant) -> bool:
        """Refresh the entry's `last_seen_at`. Returns False when not queued."""
        if not queue_entry_crud.touch(self.db, participant=participant, now=utcnow()):
            self.db.rollback()
            return False
        self._commit("queue heartbeat")
        return True

    def queue_position(self, participant: Participant) -> Optional[QueuePosition]:
        """Existence and rank check. Read-only."""
        entry = queue_entry_crud.get_by_participant(self.db, participant=participant)
        if not entry:
            return None
        live_since = self._live_since(utcnow())
        ahead = queue_entry_crud.count_ahead(self.db, entry=entry, live_since=live_since)
        return QueuePosition(
            entry_id=entry.id,
            position=ahead + 1,
            waiting=queue_entry_crud.count_live(self.db, live_since=live_since),
            enqueued_at=entry.enqueued_at,
        )

    def purge_stale_entries(self) -> int:
        """Drop abandoned entries whose heartbeat is older than the TTL."""
        removed = queue_entry_crud.purge_stale(self.db, live_since=self._live_since(utcnow()))
        if removed:
            logger.info(f"Purged {removed} stale queue entries")
        return removed

    # --- saved filters ---

    def save_filters(self, participant: Participant, filters: MatchFilters) -> MatchFilters:
        if len(filters.interest_tags) > settings.MAX_INTEREST_TAGS:
            raise InvalidRequest(f"At most {settings.MAX_INTEREST_TAGS} interest tags are allowed.")
        row = saved_filters_crud.upsert(self.db, participant=participant, filters=filters.model_dump())
        return MatchFilters.model_validate(row.filters)

    def get_saved_filters(self, participant: Participant) -> Optional[MatchFilters]:
        row = saved_filters_crud.get_by_participant(self.db, participant=participant)
        if not row:
            return None
        return MatchFilters.model_validate(row.filters)

    # --- resolver ---

    def get_active_match(self, participant: Participant) -> Optional[Pairing]:
        """Latest pairing whose room is open or not created yet."""
        live_since = self._live_since(utcnow())
        return pairing_crud.get_live_for_participant(self.db, participant=participant, roomless_since=live_since)

    def attempt_match(self, participant: Participant) -> Optional[Pairing]:
        """
        Pair the participant with the oldest compatible waiting participant.
        Returns the existing pairing if the participant was already matched,
        or None if nothing is available yet.
        """
        existing = self.get_active_match(participant)
        if existing:
            return existing

        now = utcnow()
        if not self.heartbeat(participant):
            return None
        self.purge_stale_entries()

        excluded = block_crud.blocked_counterparts(self.db, participant=participant)
        if settings.ANTI_REMATCH_MINUTES > 0:
            since = now - timedelta(minutes=settings.ANTI_REMATCH_MINUTES)
            excluded |= pairing_crud.recent_partners(self.db, participant=participant, since=since)

        live_since = self._live_since(now)
        for _ in range(MAX_CLAIM_ATTEMPTS):
            me = queue_entry_crud.get_by_participant(self.db, participant=participant)
            if not me:
                # Another resolver consumed our entry.
                return self.get_active_match(participant)
            candidates = queue_entry_crud.list_live_candidates(
                self.db,
                exclude=participant,
                live_since=live_since,
                excluded_partners=excluded,
            )
            candidate = next(
                (c for c in candidates if compatible(me, c, now, settings.MATCH_FILTER_FALLBACK_SECONDS)),
                None,
            )
            if candidate is None:
                self.db.rollback()
                return None
            if block_crud.exists_between(self.db, a=participant, b=candidate.participant):
                # Blocked after the exclusion list was read.
                self.db.rollback()
                excluded.add(candidate.participant)
                continue
            pairing = self._claim(me, candidate)
            if pairing:
                return pairing
        return None

    def _claim(self, me: QueueEntry, candidate: QueueEntry) -> Optional[Pairing]:
        claimed = queue_entry_crud.claim(self.db, entry_ids=[me.id, candidate.id])
        if claimed != 2:
            self.db.rollback()
            return None
        pairing = pairing_crud.create_from_dict_no_commit(
            self.db,
            obj_in={
                "id": uuid.uuid4(),
                "participant_a": me.participant,
                "participant_b": candidate.participant,
                "created_at": utcnow(),
            },
        )
        self._commit("attempt_match")
        self.db.refresh(pairing)
        logger.info(f"Paired {pairing.participant_a} with {pairing.participant_b} ({pairing.id})")
        connection_manager.publish_to_participants(
            (pairing.participant_a, pairing.participant_b), MATCH_FOUND, pairing_payload(pairing)
        )
        return pairing

    # --- notification ---

    @staticmethod
    def subscribe_match_notification(
        participant: Participant, callback: Callable[[dict], None]
    ) -> Callable[[], None]:
        """Call `callback(payload)` when the participant is matched. Returns an unsubscribe function."""

        def _on_event(event: str, payload) -> None:
            if event == MATCH_FOUND:
                callback(payload)

        return connection_manager.add_listener(participant_channel(participant), _on_event)

    async def await_match(self, participant: Participant, timeout: float) -> Optional[Pairing]:
        """
        Wait up to `timeout` seconds for a match, listening for the push event
        and polling the resolver as a fallback. The first path to report wins.
        """
        watch = MatchWatch()
        unsubscribe = self.subscribe_match_notification(
            participant, lambda payload: watch.observe(uuid.UUID(payload["pairing_id"]), "push")
        )
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        try:
            while not watch.observed:
                try:
                    pairing = self.attempt_match(participant)
                except Transient:
                    logger.warning(f"Match poll for {participant} failed; retrying")
                    pairing = None
                if pairing:
                    watch.observe(pairing.id, "poll")
                    break
                remaining = deadline - loop.time()
                if remaining <= 0:
                    break
                await watch.wait(min(settings.MATCH_POLL_INTERVAL_SECONDS, remaining))
        finally:
            unsubscribe()
        if not watch.observed:
            return None
        return pairing_crud.get_by_id(self.db, pairing_id=watch.result)
