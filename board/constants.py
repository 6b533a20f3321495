"""Project-wide constant values."""
from __future__ import annotations

SESSION_COOKIE_NAME = "board_session"
SESSION_TOKEN_TYPE = "session"

DEFAULT_MAX_IMAGE_BYTES = 5 * 1024 * 1024

MAX_TITLE_LENGTH = 200
MAX_CONTENT_LENGTH = 10_000
MAX_REPLY_LENGTH = 2000

ALLOWED_IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif"})
ALLOWED_IMAGE_CONTENT_TYPES = frozenset({"image/jpeg", "image/png", "image/gif"})

INVALID_CREDENTIALS_DETAIL = "Invalid username or password"  # same for unknown user and bad password
NOT_AUTHENTICATED_DETAIL = "Not authenticated"

__all__ = [
    "SESSION_COOKIE_NAME",
    "SESSION_TOKEN_TYPE",
    "DEFAULT_MAX_IMAGE_BYTES",
    "MAX_TITLE_LENGTH",
    "MAX_CONTENT_LENGTH",
    "MAX_REPLY_LENGTH",
    "ALLOWED_IMAGE_EXTENSIONS",
    "ALLOWED_IMAGE_CONTENT_TYPES",
    "INVALID_CREDENTIALS_DETAIL",
    "NOT_AUTHENTICATED_DETAIL",
]
