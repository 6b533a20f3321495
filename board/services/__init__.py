"""Convenience exports for service layer."""
from .auth_service import (
    AuthenticatedSession,
    authenticate,
    clear_session_cookie,
    close_session,
    get_current_session,
    get_optional_session,
    open_session,
    resolve_session,
    session_token_from,
    set_session_cookie,
    signup,
)
from .media_service import ImageStorage, LocalImageStorage, get_image_storage
from .post_service import (
    add_reply,
    create_post_record,
    delete_post_record,
    get_post_record,
    list_post_records,
    toggle_post_like,
)

__all__ = [
    "AuthenticatedSession",
    "authenticate",
    "signup",
    "open_session",
    "resolve_session",
    "close_session",
    "set_session_cookie",
    "clear_session_cookie",
    "session_token_from",
    "get_current_session",
    "get_optional_session",
    "ImageStorage",
    "LocalImageStorage",
    "get_image_storage",
    "add_reply",
    "create_post_record",
    "delete_post_record",
    "get_post_record",
    "list_post_records",
    "toggle_post_like",
]
