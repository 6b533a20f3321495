"""Service-level tests run against the in-memory record store."""
from __future__ import annotations

import asyncio
import threading
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from io import BytesIO
from uuid import uuid4

import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from board.errors import (
    AuthError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UnexpectedError,
    ValidationError,
)
from board.services import auth_service, post_service
from board.services.media_service import ImageUpload, StoredImage, validate_image_upload
from board.stores import MemoryRecordStore


def _upload(filename: str, data: bytes, content_type: str = "image/png") -> UploadFile:
    return UploadFile(file=BytesIO(data), filename=filename, headers=Headers({"content-type": content_type}))


class RecordingStorage:
    def __init__(self) -> None:
        self.saved: list[str] = []
        self.deleted: list[str] = []

    async def save(self, image: ImageUpload) -> StoredImage:
        key = f"posts/{len(self.saved)}{image.extension}"
        self.saved.append(key)
        return StoredImage(url=f"/media/{key}", key=key)

    def delete(self, key: str) -> None:
        self.deleted.append(key)


class FailingPostStore(MemoryRecordStore):
    def create_post(self, **kwargs):
        raise UnexpectedError("Unable to create post")


@pytest.fixture
def store() -> MemoryRecordStore:
    return MemoryRecordStore()


@pytest.fixture
def alice(store):
    return auth_service.signup(store, username="alice", password="pw1")


def _create(store, author, title="T", content="C", **kwargs):
    return asyncio.run(
        post_service.create_post_record(store, author_id=author.id, title=title, content=content, **kwargs)
    )


def test_signup_conflict_regardless_of_password(store, alice):
    with pytest.raises(ConflictError):
        auth_service.signup(store, username="alice", password="different")


def test_authenticate_errors_are_indistinguishable(store, alice):
    with pytest.raises(AuthError) as unknown:
        auth_service.authenticate(store, username="nobody", password="pw1")
    with pytest.raises(AuthError) as wrong:
        auth_service.authenticate(store, username="alice", password="nope")

    assert unknown.value.message == wrong.value.message
    assert unknown.value.status_code == wrong.value.status_code == 401


def test_authenticate_returns_user(store, alice):
    assert auth_service.authenticate(store, username=" alice ", password="pw1").id == alice.id


def test_session_round_trip_and_close(store, alice):
    session, token = auth_service.open_session(store, alice)

    current = auth_service.resolve_session(store, token)
    assert current is not None
    assert current.user_id == alice.id
    assert current.public_profile() == {"id": str(alice.id), "username": "alice"}

    auth_service.close_session(store, token)
    auth_service.close_session(store, token)
    assert auth_service.resolve_session(store, token) is None
    assert store.get_session(session.id) is None


def test_expired_session_is_discarded(store, alice):
    expired = store.create_session(
        session_id="expired-session",
        user_id=alice.id,
        expires_at=datetime.now(timezone.utc) + timedelta(minutes=5),
    )
    token = auth_service.create_session_token(expired)
    # The cookie stays valid while the server-side row has lapsed.
    store._sessions[expired.id] = replace(expired, expires_at=datetime.now(timezone.utc) - timedelta(seconds=1))

    assert auth_service.resolve_session(store, token) is None
    assert store.get_session(expired.id) is None


@pytest.mark.parametrize("token", [None, "", "garbage", "a.b.c"])
def test_unusable_tokens_resolve_to_nothing(store, token):
    assert auth_service.resolve_session(store, token) is None


def test_posts_listed_newest_first(store, alice):
    created = [_create(store, alice, title=f"post {i}") for i in range(5)]

    listed = post_service.list_post_records(store)

    assert [post.id for post in listed] == [post.id for post in reversed(created)]


def test_create_post_requires_existing_author(store):
    ghost = auth_service.signup(MemoryRecordStore(), username="ghost", password="pw")

    with pytest.raises(NotFoundError):
        _create(store, ghost)
    assert post_service.list_post_records(store) == []


def test_replies_keep_order(store, alice):
    post = _create(store, alice)
    for text in ["one", "two", "three"]:
        post_service.add_reply(store, post_id=post.id, author_id=alice.id, content=text)

    replies = post_service.get_post_record(store, post_id=post.id).replies

    assert [reply.content for reply in replies] == ["one", "two", "three"]
    assert {reply.author_username for reply in replies} == {"alice"}


def test_concurrent_replies_are_not_lost(store, alice):
    post = _create(store, alice)

    def _reply(n: int) -> None:
        post_service.add_reply(store, post_id=post.id, author_id=alice.id, content=f"reply {n}")

    threads = [threading.Thread(target=_reply, args=(n,)) for n in range(20)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(post_service.get_post_record(store, post_id=post.id).replies) == 20


def test_reply_to_missing_post(store, alice):
    with pytest.raises(NotFoundError):
        post_service.add_reply(store, post_id=uuid4(), author_id=alice.id, content="hi")


def test_like_toggle(store, alice):
    bob = auth_service.signup(store, username="bob", password="pw2")
    post = _create(store, alice)

    post_service.toggle_post_like(store, post_id=post.id, user_id=alice.id)
    liked = post_service.toggle_post_like(store, post_id=post.id, user_id=bob.id)
    assert liked.like_count == 2

    unliked = post_service.toggle_post_like(store, post_id=post.id, user_id=alice.id)
    assert unliked.liked_by == frozenset({bob.id})


def test_only_author_may_delete(store, alice):
    bob = auth_service.signup(store, username="bob", password="pw2")
    post = _create(store, alice)
    storage = RecordingStorage()

    with pytest.raises(ForbiddenError):
        post_service.delete_post_record(store, post_id=post.id, requester_id=bob.id, storage=storage)
    assert store.get_post(post.id) is not None

    post_service.delete_post_record(store, post_id=post.id, requester_id=alice.id, storage=storage)
    assert store.get_post(post.id) is None
    assert storage.deleted == []


def test_stored_image_removed_with_post(store, alice):
    storage = RecordingStorage()
    post = _create(store, alice, image=_upload("cat.png", b"png-bytes"), storage=storage)

    assert post.image_key == storage.saved[0]

    post_service.delete_post_record(store, post_id=post.id, requester_id=alice.id, storage=storage)
    assert storage.deleted == [post.image_key]


def test_image_removed_when_post_write_fails():
    store = FailingPostStore()
    user = auth_service.signup(store, username="alice", password="pw1")
    storage = RecordingStorage()

    with pytest.raises(UnexpectedError):
        _create(store, user, image=_upload("cat.gif", b"gif-bytes", "image/gif"), storage=storage)

    assert storage.deleted == storage.saved
    assert len(storage.saved) == 1


def test_rejected_upload_is_never_stored(store, alice):
    storage = RecordingStorage()

    with pytest.raises(ValidationError):
        _create(store, alice, image=_upload("notes.txt", b"text", "text/plain"), storage=storage)

    assert storage.saved == []
    assert post_service.list_post_records(store) == []


def test_oversized_image_is_rejected():
    with pytest.raises(ValidationError) as excinfo:
        asyncio.run(validate_image_upload(_upload("big.jpg", b"x" * 11, "image/jpeg"), max_bytes=10))

    assert "maximum size" in excinfo.value.message


def test_generic_content_type_falls_back_to_extension():
    image = asyncio.run(validate_image_upload(_upload("photo.JPEG", b"jpeg", "application/octet-stream")))

    assert image.extension == ".jpeg"
    assert image.content_type == "image/jpeg"


class FakeS3Client:
    def __init__(self) -> None:
        self.uploads: list[tuple[bytes, str, str, dict]] = []
        self.deleted: list[tuple[str, str]] = []

    def upload_fileobj(self, fileobj, bucket, key, ExtraArgs=None):
        self.uploads.append((fileobj.read(), bucket, key, ExtraArgs or {}))

    def delete_object(self, Bucket, Key):
        self.deleted.append((Bucket, Key))


def test_spaces_storage_uploads_public_image_and_deletes_it():
    from board.services.spaces_service import SpacesConfig, SpacesImageStorage

    config = SpacesConfig(
        key="k",
        secret="s",
        region="ams3",
        bucket="board",
        public_endpoint="https://board.ams3.cdn.digitaloceanspaces.com",
    )
    client = FakeS3Client()
    storage = SpacesImageStorage(client=client, config=config)
    image = ImageUpload(filename="cat.png", extension=".png", content_type="image/png", data=b"png")

    stored = asyncio.run(storage.save(image))

    data, bucket, key, extra = client.uploads[0]
    assert (data, bucket, key) == (b"png", "board", stored.key)
    assert extra == {"ACL": "public-read", "ContentType": "image/png"}
    assert stored.key.startswith("posts/") and stored.key.endswith(".png")
    assert stored.url == f"https://board.ams3.cdn.digitaloceanspaces.com/{stored.key}"

    storage.delete(stored.key)
    assert client.deleted == [("board", stored.key)]


def test_spaces_storage_without_configuration_fails_cleanly():
    from board.services.spaces_service import SpacesImageStorage, load_spaces_config

    load_spaces_config.cache_clear()
    storage = SpacesImageStorage(client=FakeS3Client())
    image = ImageUpload(filename="cat.png", extension=".png", content_type="image/png", data=b"png")

    with pytest.raises(UnexpectedError):
        asyncio.run(storage.save(image))
    load_spaces_config.cache_clear()


def test_password_hashes_cover_the_whole_password():
    hashed = auth_service.hash_password("b" * 80 + "1")

    assert hashed.startswith("$bcrypt-sha256$")
    assert auth_service.verify_password("b" * 80 + "1", hashed)
    assert not auth_service.verify_password("b" * 80 + "2", hashed)


def test_plain_bcrypt_hashes_still_verify():
    from passlib.hash import bcrypt

    legacy = bcrypt.hash("pw1")

    assert auth_service.verify_password("pw1", legacy)
    assert not auth_service.verify_password("pw2", legacy)


def test_overlong_title_is_rejected_before_storing(store, alice):
    storage = RecordingStorage()

    with pytest.raises(ValidationError):
        _create(store, alice, title="t" * 201, image=_upload("cat.png", b"png"), storage=storage)

    assert storage.saved == []
    assert post_service.list_post_records(store) == []
