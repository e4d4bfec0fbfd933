"""
Session Middleware - resolves the calling participant from Redis for each request.
"""
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from typing import Callable
from app.session import extract_token, get_session, participant_from_session


class SessionMiddleware(BaseHTTPMiddleware):
    """
    Loads the session named by the Authorization header and the Participant it holds.
    A token whose session is missing or holds no valid participant leaves
    request.state.participant unset; validate_session turns that into a 401.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request.state.session = {}
        request.state.token = None
        request.state.participant = None

        token = extract_token(request.headers.get("authorization"))
        if token:
            session_data = get_session(token)
            if session_data:
                request.state.session = session_data
                request.state.token = token
                request.state.participant = participant_from_session(session_data)

        return await call_next(request)
