"""Convenience exports for ORM models."""
from .post import Post, PostLike, PostReply
from .session import UserSession
from .user import User

__all__ = [
    "Post",
    "PostLike",
    "PostReply",
    "User",
    "UserSession",
]
