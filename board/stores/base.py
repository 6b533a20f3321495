"""Record types and the storage protocol the services are written against."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol
from uuid import UUID


@dataclass(frozen=True)
class UserRecord:
    id: UUID
    username: str
    hashed_password: str
    created_at: datetime


@dataclass(frozen=True)
class SessionRecord:
    id: str
    user_id: UUID
    created_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class ReplyRecord:
    id: UUID
    post_id: UUID
    author_id: UUID
    author_username: str | None
    content: str
    created_at: datetime


@dataclass(frozen=True)
class PostRecord:
    """A post with its author and reply authors already resolved to usernames."""

    id: UUID
    title: str
    content: str
    author_id: UUID
    author_username: str | None
    image_url: str | None
    image_key: str | None
    created_at: datetime
    replies: tuple[ReplyRecord, ...] = ()
    liked_by: frozenset[UUID] = field(default_factory=frozenset)

    @property
    def like_count(self) -> int:
        return len(self.liked_by)


class RecordStore(Protocol):
    """Create/find/update/delete access to users, sessions and posts.

    Mutations on a single post (reply append, like toggle, delete) must be atomic:
    concurrent replies to the same post are never lost.
    """

    def create_user(self, *, username: str, hashed_password: str) -> UserRecord:
        """Persist a user or raise ``ConflictError`` when the username is taken."""

    def get_user(self, user_id: UUID) -> UserRecord | None: ...

    def find_user_by_username(self, username: str) -> UserRecord | None: ...

    def create_session(self, *, session_id: str, user_id: UUID, expires_at: datetime) -> SessionRecord: ...

    def get_session(self, session_id: str) -> SessionRecord | None: ...

    def delete_session(self, session_id: str) -> bool: ...

    def create_post(
        self,
        *,
        author_id: UUID,
        title: str,
        content: str,
        image_url: str | None = None,
        image_key: str | None = None,
    ) -> PostRecord: ...

    def get_post(self, post_id: UUID) -> PostRecord | None: ...

    def list_posts(self) -> list[PostRecord]:
        """Return every post, newest first."""

    def delete_post(self, post_id: UUID) -> bool: ...

    def append_reply(self, post_id: UUID, *, author_id: UUID, content: str) -> PostRecord | None:
        """Append a reply and return the updated post, or ``None`` when the post is gone."""

    def toggle_like(self, post_id: UUID, user_id: UUID) -> PostRecord | None:
        """Flip ``user_id``'s membership in the post's like set."""


__all__ = [
    "UserRecord",
    "SessionRecord",
    "ReplyRecord",
    "PostRecord",
    "RecordStore",
]
