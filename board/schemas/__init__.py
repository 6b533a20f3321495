"""Pydantic schema exports."""
from .auth import AuthResponse, CredentialsRequest, SessionStatusResponse, SuccessResponse, UserPublic
from .posts import AuthorSummary, PostEnvelope, PostResponse, ReplyCreate, ReplyResponse

__all__ = [
    "AuthResponse",
    "CredentialsRequest",
    "SessionStatusResponse",
    "SuccessResponse",
    "UserPublic",
    "AuthorSummary",
    "PostEnvelope",
    "PostResponse",
    "ReplyCreate",
    "ReplyResponse",
]
