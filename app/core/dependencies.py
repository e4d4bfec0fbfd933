"""
FastAPI dependencies for route protection.
"""
from fastapi import Request, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.core.exceptions import NotAuthenticated, SessionExpired
from app.schema.participant import Participant

# Security scheme for OpenAPI docs (shows lock icon and Authorization header)
bearer_scheme = HTTPBearer(
    scheme_name="Bearer",
    description="Session token issued by the identity provider",
    auto_error=False,
)


async def validate_session(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme)
) -> Participant:
    """
    Returns the calling Participant (guest or authenticated) resolved by SessionMiddleware.

    Raises:
        NotAuthenticated: No bearer token sent
        SessionExpired: Token unknown to Redis, or its session holds no valid participant
    """
    if credentials is None:
        raise NotAuthenticated()
    participant = getattr(request.state, "participant", None)
    if participant is None:
        raise SessionExpired()
    return participant
