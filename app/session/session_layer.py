"""
Session layer - Redis-based token store and validation.

The session is the participant registry seen from this service: a bearer token
maps to {participant_kind, participant_id}. Issuing tokens is the identity
provider's job; it writes sessions through create_session.
"""
from typing import Optional, Dict, Any
import logging
import json
import redis

from app.schema.participant import Participant, ParticipantKind

logger = logging.getLogger(__name__)

# Redis connection pool and client
_redis_pool: Optional[redis.ConnectionPool] = None
_redis_client: Optional[redis.Redis] = None
_session_ttl: int = 86400


def init_redis(host: str, port: int, db: int, session_ttl: int = 86400) -> None:
    """Initialize Redis connection pool. Call once at app startup."""
    global _redis_pool, _redis_client, _session_ttl
    _redis_pool = redis.ConnectionPool(
        host=host,
        port=port,
        db=db,
        decode_responses=True,
        max_connections=10
    )
    _redis_client = redis.Redis(connection_pool=_redis_pool)
    _session_ttl = session_ttl
    logger.info(f"Redis initialized: {host}:{port}/{db}, TTL: {session_ttl}s")


def set_redis_client(client: Optional[redis.Redis]) -> None:
    """Swap the client (tests use fakeredis)."""
    global _redis_client
    _redis_client = client


def _get_redis_client() -> redis.Redis:
    """Get Redis client. Raises if not initialized."""
    if _redis_client is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis_client


def create_session(token: str, participant: Participant, extra: Optional[Dict[str, Any]] = None) -> None:
    """Store token and participant in Redis session with TTL."""
    client = _get_redis_client()
    session_key = f"session:{token}"
    data = dict(extra or {})
    data["participant_kind"] = participant.kind.value
    data["participant_id"] = participant.id
    client.setex(session_key, _session_ttl, json.dumps(data))
    logger.info(f"Session created for {participant}")


def get_session(token: str) -> Optional[Dict[str, Any]]:
    """Get session data from Redis if token exists."""
    client = _get_redis_client()
    session_key = f"session:{token}"
    data = client.get(session_key)
    if data:
        return json.loads(data)
    return None


def participant_from_session(data: Optional[Dict[str, Any]]) -> Optional[Participant]:
    """Build the Participant stored in a session, or None if the session is malformed."""
    if not data:
        return None
    kind = data.get("participant_kind")
    pid = data.get("participant_id")
    if not kind or not pid:
        return None
    try:
        return Participant(kind=ParticipantKind(kind), id=str(pid))
    except ValueError:
        logger.warning("Session holds an invalid participant")
        return None


def extract_token(auth_header: Optional[str]) -> Optional[str]:
    """Extract bearer token from Authorization header."""
    if not auth_header:
        return None

    parts = auth_header.split(" ")
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None

    return parts[1]
