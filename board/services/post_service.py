"""Business logic for posts, replies and likes."""
from __future__ import annotations

import logging
from uuid import UUID

from fastapi import UploadFile

from ..constants import MAX_CONTENT_LENGTH, MAX_REPLY_LENGTH, MAX_TITLE_LENGTH
from ..errors import ForbiddenError, NotFoundError, ValidationError
from ..stores import PostRecord, RecordStore
from .media_service import (
    ImageStorage,
    StoredImage,
    get_image_storage,
    upload_is_present,
    validate_image_upload,
    validate_image_url,
)

logger = logging.getLogger(__name__)


def _required_text(value: str | None, field: str, max_length: int) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationError(f"{field} is required")
    if len(text) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return text


def _get_post_or_404(store: RecordStore, post_id: UUID) -> PostRecord:
    post = store.get_post(post_id)
    if post is None:
        raise NotFoundError("Post not found")
    return post


def _discard_image(storage: ImageStorage, key: str, *, post_id: UUID | None = None) -> None:
    try:
        storage.delete(key)
    except Exception:
        logger.exception("Failed to remove stored image %s (post %s)", key, post_id)


async def create_post_record(
    store: RecordStore,
    *,
    author_id: UUID,
    title: str | None,
    content: str | None,
    image: UploadFile | None = None,
    image_url: str | None = None,
    storage: ImageStorage | None = None,
) -> PostRecord:
    """Validate and persist a new post, storing the attached image first when present.

    Every check, including the image allow-list, runs before anything is written.
    If the post cannot be saved the stored image is removed again.
    """

    clean_title = _required_text(title, "Title", MAX_TITLE_LENGTH)
    clean_content = _required_text(content, "Content", MAX_CONTENT_LENGTH)

    if store.get_user(author_id) is None:
        raise NotFoundError("User not found")

    has_upload = upload_is_present(image)
    external_url = validate_image_url(image_url)
    if has_upload and external_url:
        raise ValidationError("Provide either an image upload or an image_url, not both")

    stored: StoredImage | None = None
    backend: ImageStorage | None = None
    if has_upload:
        assert image is not None
        upload = await validate_image_upload(image)
        backend = storage or get_image_storage()
        stored = await backend.save(upload)

    try:
        post = store.create_post(
            author_id=author_id,
            title=clean_title,
            content=clean_content,
            image_url=stored.url if stored else external_url,
            image_key=stored.key if stored else None,
        )
    except Exception:
        if stored is not None and backend is not None:
            _discard_image(backend, stored.key)
        raise

    logger.info("User %s created post %s", author_id, post.id)
    return post


def list_post_records(store: RecordStore) -> list[PostRecord]:
    """Return all posts, newest first."""

    return store.list_posts()


def get_post_record(store: RecordStore, *, post_id: UUID) -> PostRecord:
    return _get_post_or_404(store, post_id)


def delete_post_record(
    store: RecordStore,
    *,
    post_id: UUID,
    requester_id: UUID,
    storage: ImageStorage | None = None,
) -> None:
    """Delete a post when the requester is its author, then drop any image we stored for it."""

    post = _get_post_or_404(store, post_id)
    if post.author_id != requester_id:
        raise ForbiddenError("Not allowed to delete this post")

    if not store.delete_post(post_id):
        raise NotFoundError("Post not found")
    logger.info("User %s deleted post %s", requester_id, post_id)

    if post.image_key:
        _discard_image(storage or get_image_storage(), post.image_key, post_id=post_id)


def add_reply(store: RecordStore, *, post_id: UUID, author_id: UUID, content: str | None) -> PostRecord:
    """Append a reply to an existing post and return the updated post."""

    _get_post_or_404(store, post_id)
    text = _required_text(content, "Content", MAX_REPLY_LENGTH)

    post = store.append_reply(post_id, author_id=author_id, content=text)
    if post is None:
        raise NotFoundError("Post not found")
    return post


def toggle_post_like(store: RecordStore, *, post_id: UUID, user_id: UUID) -> PostRecord:
    """Add ``user_id`` to the post's likes, or remove it when already present."""

    post = store.toggle_like(post_id, user_id)
    if post is None:
        raise NotFoundError("Post not found")
    return post


__all__ = [
    "create_post_record",
    "list_post_records",
    "get_post_record",
    "delete_post_record",
    "add_reply",
    "toggle_post_like",
]
