"""
Application exceptions.

Every error raised by the services is an HTTPException with a structured
detail: {"code", "message", "retryable"}. `retryable` is true only for
storage/transport failures where repeating an idempotent call is safe.
"""
from typing import Optional

from fastapi import HTTPException, status


class AppError(HTTPException):
    """Base for all domain errors."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "ERROR"
    default_message: str = "Request failed."
    retryable: bool = False

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(
            status_code=self.status_code,
            detail={"code": self.code, "message": self.message, "retryable": self.retryable},
        )


# --- Session ---

class NotAuthenticated(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "NOT_AUTHENTICATED"
    default_message = "Authentication required."


class SessionExpired(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "SESSION_EXPIRED"
    default_message = "Session expired or invalid. Please sign in again."


# --- Lookup / authorization ---

class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"

    def __init__(self, resource: str = "Resource", message: Optional[str] = None):
        self.resource = resource
        super().__init__(message or f"{resource} not found.")


class Unauthorized(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "UNAUTHORIZED"
    default_message = "You are not a party to this resource."


# --- Matching / rooms ---

class AlreadyInRoom(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "ALREADY_IN_ROOM"
    default_message = "You are already in an active chat."

    def __init__(self, room_id=None, message: Optional[str] = None):
        self.room_id = room_id
        super().__init__(message)
        if room_id is not None:
            self.detail["room_id"] = str(room_id)


class InvalidPair(AppError):
    code = "INVALID_PAIR"
    default_message = "A participant cannot be paired with themselves."


class RoomClosed(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "ROOM_CLOSED"
    default_message = "This chat has ended."


class InvalidRequest(AppError):
    code = "INVALID_REQUEST"
    default_message = "Invalid request."


# --- Relationships ---

class AlreadyFriends(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "ALREADY_FRIENDS"
    default_message = "You are already friends."


class RequestPending(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "REQUEST_PENDING"
    default_message = "A friend request is already pending."


class NotFriends(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "NOT_FRIENDS"
    default_message = "You are not friends."


class Blocked(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "BLOCKED"
    default_message = "This user is not available."


# --- Infrastructure ---

class Transient(AppError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "TRANSIENT"
    default_message = "Service temporarily unavailable. Please try again."
    retryable = True
