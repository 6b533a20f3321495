"""Pydantic schemas for post resources."""
from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from ..constants import MAX_REPLY_LENGTH
from ..stores import PostRecord, ReplyRecord


class AuthorSummary(BaseModel):
    id: UUID
    username: str | None = None


class ReplyCreate(BaseModel):
    content: str = Field(default="", max_length=MAX_REPLY_LENGTH)


class ReplyResponse(BaseModel):
    id: UUID
    content: str
    author: AuthorSummary
    created_at: datetime

    @classmethod
    def from_record(cls, reply: ReplyRecord) -> "ReplyResponse":
        return cls(
            id=reply.id,
            content=reply.content,
            author=AuthorSummary(id=reply.author_id, username=reply.author_username),
            created_at=reply.created_at,
        )


class PostResponse(BaseModel):
    """Serialized post with author and reply authors resolved."""

    id: UUID
    title: str
    content: str
    image: str | None = None
    author: AuthorSummary
    replies: list[ReplyResponse] = Field(default_factory=list)
    like_count: int = 0
    liked_by_me: bool = False
    created_at: datetime

    @classmethod
    def from_record(cls, post: PostRecord, *, viewer_id: UUID | None = None) -> "PostResponse":
        return cls(
            id=post.id,
            title=post.title,
            content=post.content,
            image=post.image_url,
            author=AuthorSummary(id=post.author_id, username=post.author_username),
            replies=[ReplyResponse.from_record(reply) for reply in post.replies],
            like_count=post.like_count,
            liked_by_me=viewer_id is not None and viewer_id in post.liked_by,
            created_at=post.created_at,
        )


class PostEnvelope(BaseModel):
    """Envelope returned by mutating post endpoints."""

    success: bool = True
    post: PostResponse


__all__ = [
    "AuthorSummary",
    "ReplyCreate",
    "ReplyResponse",
    "PostResponse",
    "PostEnvelope",
]
