"""Thread-safe in-process record store used by tests and local demos."""
from __future__ import annotations

import itertools
import threading
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from uuid import UUID

from ..errors import ConflictError
from ..models.base import utcnow
from .base import PostRecord, ReplyRecord, SessionRecord, UserRecord


@dataclass
class _PostRow:
    record: PostRecord
    sequence: int
    replies: list[ReplyRecord] = field(default_factory=list)
    liked_by: set[UUID] = field(default_factory=set)


class MemoryRecordStore:
    """``RecordStore`` keeping everything in dictionaries behind one lock."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._sequence = itertools.count()
        self._users: dict[UUID, UserRecord] = {}
        self._usernames: dict[str, UUID] = {}
        self._sessions: dict[str, SessionRecord] = {}
        self._posts: dict[UUID, _PostRow] = {}

    def create_user(self, *, username: str, hashed_password: str) -> UserRecord:
        with self._lock:
            if username in self._usernames:
                raise ConflictError("Username already exists")
            user = UserRecord(id=uuid.uuid4(), username=username, hashed_password=hashed_password, created_at=utcnow())
            self._users[user.id] = user
            self._usernames[username] = user.id
            return user

    def get_user(self, user_id: UUID) -> UserRecord | None:
        with self._lock:
            return self._users.get(user_id)

    def find_user_by_username(self, username: str) -> UserRecord | None:
        with self._lock:
            user_id = self._usernames.get(username)
            return self._users.get(user_id) if user_id else None

    def create_session(self, *, session_id: str, user_id: UUID, expires_at: datetime) -> SessionRecord:
        with self._lock:
            record = SessionRecord(id=session_id, user_id=user_id, created_at=utcnow(), expires_at=expires_at)
            self._sessions[session_id] = record
            return record

    def get_session(self, session_id: str) -> SessionRecord | None:
        with self._lock:
            return self._sessions.get(session_id)

    def delete_session(self, session_id: str) -> bool:
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def _snapshot(self, row: _PostRow) -> PostRecord:
        return replace(row.record, replies=tuple(row.replies), liked_by=frozenset(row.liked_by))

    def _username(self, user_id: UUID) -> str | None:
        user = self._users.get(user_id)
        return user.username if user else None

    def create_post(
        self,
        *,
        author_id: UUID,
        title: str,
        content: str,
        image_url: str | None = None,
        image_key: str | None = None,
    ) -> PostRecord:
        with self._lock:
            record = PostRecord(
                id=uuid.uuid4(),
                title=title,
                content=content,
                author_id=author_id,
                author_username=self._username(author_id),
                image_url=image_url,
                image_key=image_key,
                created_at=utcnow(),
            )
            row = _PostRow(record=record, sequence=next(self._sequence))
            self._posts[record.id] = row
            return self._snapshot(row)

    def get_post(self, post_id: UUID) -> PostRecord | None:
        with self._lock:
            row = self._posts.get(post_id)
            return self._snapshot(row) if row else None

    def list_posts(self) -> list[PostRecord]:
        with self._lock:
            rows = sorted(self._posts.values(), key=lambda row: (row.record.created_at, row.sequence), reverse=True)
            return [self._snapshot(row) for row in rows]

    def delete_post(self, post_id: UUID) -> bool:
        with self._lock:
            return self._posts.pop(post_id, None) is not None

    def append_reply(self, post_id: UUID, *, author_id: UUID, content: str) -> PostRecord | None:
        with self._lock:
            row = self._posts.get(post_id)
            if row is None:
                return None
            row.replies.append(
                ReplyRecord(
                    id=uuid.uuid4(),
                    post_id=post_id,
                    author_id=author_id,
                    author_username=self._username(author_id),
                    content=content,
                    created_at=utcnow(),
                )
            )
            return self._snapshot(row)

    def toggle_like(self, post_id: UUID, user_id: UUID) -> PostRecord | None:
        with self._lock:
            row = self._posts.get(post_id)
            if row is None:
                return None
            if user_id in row.liked_by:
                row.liked_by.discard(user_id)
            else:
                row.liked_by.add(user_id)
            return self._snapshot(row)


__all__ = ["MemoryRecordStore"]
