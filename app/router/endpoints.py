"""
API Router - all endpoints.
"""
from fastapi import APIRouter
from app.router.api.v1 import chat, friends, matches, queue, safety

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(
    queue.router,
    prefix="/queue",
    tags=["Queue"],
)

api_router.include_router(
    matches.router,
    prefix="/matches",
    tags=["Matches"],
)

api_router.include_router(
    chat.router,
    prefix="/chat",
    tags=["Chat"],
)

api_router.include_router(
    friends.router,
    prefix="/friends",
    tags=["Friends"],
)

api_router.include_router(
    safety.router,
    tags=["Safety"],
)
