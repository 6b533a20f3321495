"""Post, reply and like routes. Every route requires a live session."""
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from ..errors import NotFoundError
from ..schemas import PostEnvelope, PostResponse, ReplyCreate, SuccessResponse
from ..services import (
    AuthenticatedSession,
    ImageStorage,
    add_reply,
    create_post_record,
    delete_post_record,
    get_current_session,
    get_image_storage,
    get_post_record,
    list_post_records,
    toggle_post_like,
)
from ..stores import PostRecord, RecordStore, get_record_store

router = APIRouter(tags=["posts"])


def _parse_post_id(raw: str) -> UUID:
    # Ids that cannot exist are reported like any other missing post.
    try:
        return UUID(raw)
    except ValueError as exc:
        raise NotFoundError("Post not found") from exc


def _envelope(post: PostRecord, current: AuthenticatedSession) -> PostEnvelope:
    return PostEnvelope(post=PostResponse.from_record(post, viewer_id=current.user_id))


@router.get("/posts", response_model=list[PostResponse])
async def list_posts_endpoint(
    store: RecordStore = Depends(get_record_store),
    current: AuthenticatedSession = Depends(get_current_session),
) -> list[PostResponse]:
    return [PostResponse.from_record(post, viewer_id=current.user_id) for post in list_post_records(store)]


@router.get("/posts/{post_id}", response_model=PostResponse)
async def get_post_endpoint(
    post_id: str,
    store: RecordStore = Depends(get_record_store),
    current: AuthenticatedSession = Depends(get_current_session),
) -> PostResponse:
    post = get_post_record(store, post_id=_parse_post_id(post_id))
    return PostResponse.from_record(post, viewer_id=current.user_id)


@router.post("/post", response_model=PostEnvelope, status_code=status.HTTP_201_CREATED)
async def create_post_endpoint(
    title: str = Form(""),
    content: str = Form(""),
    image_url: str | None = Form(None),
    image: UploadFile | None = File(None),
    store: RecordStore = Depends(get_record_store),
    storage: ImageStorage = Depends(get_image_storage),
    current: AuthenticatedSession = Depends(get_current_session),
) -> PostEnvelope:
    """Create a post from ``multipart/form-data`` (or a plain urlencoded form without an image)."""

    post = await create_post_record(
        store,
        author_id=current.user_id,
        title=title,
        content=content,
        image=image,
        image_url=image_url,
        storage=storage,
    )
    return _envelope(post, current)


@router.delete("/posts/{post_id}", response_model=SuccessResponse)
async def delete_post_endpoint(
    post_id: str,
    store: RecordStore = Depends(get_record_store),
    storage: ImageStorage = Depends(get_image_storage),
    current: AuthenticatedSession = Depends(get_current_session),
) -> SuccessResponse:
    delete_post_record(store, post_id=_parse_post_id(post_id), requester_id=current.user_id, storage=storage)
    return SuccessResponse()


@router.post("/post/{post_id}/reply", response_model=PostEnvelope)
async def reply_endpoint(
    post_id: str,
    payload: ReplyCreate,
    store: RecordStore = Depends(get_record_store),
    current: AuthenticatedSession = Depends(get_current_session),
) -> PostEnvelope:
    post = add_reply(store, post_id=_parse_post_id(post_id), author_id=current.user_id, content=payload.content)
    return _envelope(post, current)


@router.post("/post/{post_id}/like", response_model=PostEnvelope)
async def like_endpoint(
    post_id: str,
    store: RecordStore = Depends(get_record_store),
    current: AuthenticatedSession = Depends(get_current_session),
) -> PostEnvelope:
    post = toggle_post_like(store, post_id=_parse_post_id(post_id), user_id=current.user_id)
    return _envelope(post, current)
