"""Record store backed by SQLAlchemy."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Generator
from uuid import UUID

from fastapi import Depends
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ..database import get_session
from ..errors import ConflictError, UnexpectedError
from ..models import Post, PostLike, PostReply, User, UserSession
from .base import PostRecord, ReplyRecord, SessionRecord, UserRecord

logger = logging.getLogger(__name__)


def _aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _user_record(user: User) -> UserRecord:
    return UserRecord(
        id=user.id,
        username=user.username,
        hashed_password=user.hashed_password,
        created_at=_aware(user.created_at),
    )


def _session_record(row: UserSession) -> SessionRecord:
    return SessionRecord(
        id=row.id,
        user_id=row.user_id,
        created_at=_aware(row.created_at),
        expires_at=_aware(row.expires_at),
    )


def _post_record(post: Post) -> PostRecord:
    replies = tuple(
        ReplyRecord(
            id=reply.id,
            post_id=post.id,
            author_id=reply.user_id,
            author_username=reply.author.username if reply.author else None,
            content=reply.content,
            created_at=_aware(reply.created_at),
        )
        for reply in post.replies
    )
    return PostRecord(
        id=post.id,
        title=post.title,
        content=post.content,
        author_id=post.user_id,
        author_username=post.author.username if post.author else None,
        image_url=post.image_url,
        image_key=post.image_key,
        created_at=_aware(post.created_at),
        replies=replies,
        liked_by=frozenset(like.user_id for like in post.likes),
    )


def _post_query():
    return select(Post).options(
        selectinload(Post.author),
        selectinload(Post.replies).selectinload(PostReply.author),
        selectinload(Post.likes),
    )


class SqlRecordStore:
    """``RecordStore`` implementation over a request-scoped ORM session."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def _commit(self, action: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Database commit failed while trying to %s", action)
            raise UnexpectedError(f"Unable to {action}") from exc

    def _load_post(self, post_id: UUID) -> Post | None:
        stmt = _post_query().where(Post.id == post_id).execution_options(populate_existing=True)
        return self.db.scalars(stmt).first()

    # Users

    def create_user(self, *, username: str, hashed_password: str) -> UserRecord:
        user = User(username=username, hashed_password=hashed_password)
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError("Username already exists") from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Failed to register user")
            raise UnexpectedError("Unable to register user") from exc
        self.db.refresh(user)
        return _user_record(user)

    def get_user(self, user_id: UUID) -> UserRecord | None:
        user = self.db.get(User, user_id)
        return _user_record(user) if user else None

    def find_user_by_username(self, username: str) -> UserRecord | None:
        user = self.db.scalar(select(User).where(User.username == username))
        return _user_record(user) if user else None

    # Sessions

    def create_session(self, *, session_id: str, user_id: UUID, expires_at: datetime) -> SessionRecord:
        row = UserSession(id=session_id, user_id=user_id, expires_at=expires_at)
        self.db.add(row)
        self._commit("open session")
        return _session_record(row)

    def get_session(self, session_id: str) -> SessionRecord | None:
        row = self.db.get(UserSession, session_id)
        return _session_record(row) if row else None

    def delete_session(self, session_id: str) -> bool:
        result = self.db.execute(delete(UserSession).where(UserSession.id == session_id))
        self._commit("close session")
        return bool(result.rowcount)

    # Posts

    def create_post(
        self,
        *,
        author_id: UUID,
        title: str,
        content: str,
        image_url: str | None = None,
        image_key: str | None = None,
    ) -> PostRecord:
        post = Post(user_id=author_id, title=title, content=content, image_url=image_url, image_key=image_key)
        self.db.add(post)
        self._commit("create post")
        loaded = self._load_post(post.id)
        assert loaded is not None
        return _post_record(loaded)

    def get_post(self, post_id: UUID) -> PostRecord | None:
        post = self._load_post(post_id)
        return _post_record(post) if post else None

    def list_posts(self) -> list[PostRecord]:
        stmt = _post_query().order_by(Post.created_at.desc()).execution_options(populate_existing=True)
        return [_post_record(post) for post in self.db.scalars(stmt)]

    def delete_post(self, post_id: UUID) -> bool:
        post = self.db.get(Post, post_id)
        if post is None:
            return False
        self.db.delete(post)
        self._commit("delete post")
        return True

    def append_reply(self, post_id: UUID, *, author_id: UUID, content: str) -> PostRecord | None:
        if self.db.get(Post, post_id) is None:
            return None
        # A plain insert; concurrent replies land as separate rows.
        self.db.add(PostReply(post_id=post_id, user_id=author_id, content=content))
        self._commit("add reply")
        return self.get_post(post_id)

    def toggle_like(self, post_id: UUID, user_id: UUID) -> PostRecord | None:
        if self.db.get(Post, post_id) is None:
            return None

        existing = self.db.scalar(select(PostLike).where(PostLike.post_id == post_id, PostLike.user_id == user_id))
        if existing is not None:
            self.db.delete(existing)
        else:
            self.db.add(PostLike(post_id=post_id, user_id=user_id))

        try:
            self.db.commit()
        except IntegrityError:
            # Lost a race with an identical like; the set already holds this user.
            self.db.rollback()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Failed to update like for post %s", post_id)
            raise UnexpectedError("Failed to update like") from exc

        return self.get_post(post_id)


def get_record_store(db: Session = Depends(get_session)) -> Generator[SqlRecordStore, None, None]:
    """FastAPI dependency yielding the request's record store."""

    yield SqlRecordStore(db)


__all__ = ["SqlRecordStore", "get_record_store"]
