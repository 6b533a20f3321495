"""Helpers shared across ORM models."""
from __future__ import annotations

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Timezone-aware creation timestamp with microsecond precision.

    Assigned client side so SQLite keeps sub-second ordering between posts and replies.
    """

    return datetime.now(timezone.utc)


__all__ = ["utcnow"]
