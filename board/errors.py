"""Domain exceptions raised by services and rendered as ``{"error": ...}`` responses."""
from __future__ import annotations

from fastapi import status

from .constants import INVALID_CREDENTIALS_DETAIL, NOT_AUTHENTICATED_DETAIL


class BoardError(Exception):
    """Base class for failures reported to API clients."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Something went wrong"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(BoardError):
    """A required field is missing, empty or malformed."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class ConflictError(BoardError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Resource already exists"


class AuthError(BoardError):
    """Bad credentials. The message never says which part was wrong."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = INVALID_CREDENTIALS_DETAIL


class SessionError(BoardError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = NOT_AUTHENTICATED_DETAIL


class ForbiddenError(BoardError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Not allowed"


class NotFoundError(BoardError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class UnexpectedError(BoardError):
    """Store or upload failure. Details stay in the server log."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


__all__ = [
    "BoardError",
    "ValidationError",
    "ConflictError",
    "AuthError",
    "SessionError",
    "ForbiddenError",
    "NotFoundError",
    "UnexpectedError",
]
