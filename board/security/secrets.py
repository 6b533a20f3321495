"""Reading signing keys and storage credentials from the environment."""
from __future__ import annotations

import os
from functools import lru_cache
from typing import Final

__all__ = ["MissingSecretError", "require_secret", "is_placeholder", "get_session_secret"]

SESSION_SECRET_ENV: Final[str] = "SESSION_SECRET_KEY"
MIN_SESSION_SECRET_LENGTH: Final[int] = 16

_PLACEHOLDERS: Final[frozenset[str]] = frozenset(
    {"changeme", "change-me", "placeholder", "secret", "example", "your-secret-key"}
)


class MissingSecretError(RuntimeError):
    """A required secret is unset, blank or a placeholder."""


def is_placeholder(value: str | None) -> bool:
    normalized = (value or "").strip().lower()
    return not normalized or normalized in _PLACEHOLDERS


def require_secret(name: str) -> str:
    """Return the trimmed value of ``name`` or raise :class:`MissingSecretError`."""

    value = os.getenv(name)
    if is_placeholder(value):
        raise MissingSecretError(f"{name} must be set to a real value")
    return value.strip()


@lru_cache(maxsize=1)
def get_session_secret() -> str:
    secret = require_secret(SESSION_SECRET_ENV)
    if len(secret) < MIN_SESSION_SECRET_LENGTH:
        raise MissingSecretError(f"{SESSION_SECRET_ENV} must be at least {MIN_SESSION_SECRET_LENGTH} characters")
    return secret
