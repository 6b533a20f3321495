"""Business logic for sign-up, login and the session gate."""
from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional
from uuid import UUID

from fastapi import Depends, Request, Response
from jose import JWTError, jwt
from passlib.context import CryptContext

from ..config import get_settings
from ..constants import SESSION_TOKEN_TYPE
from ..errors import AuthError, SessionError, ValidationError
from ..security.secrets import get_session_secret
from ..stores import RecordStore, SessionRecord, UserRecord, get_record_store

logger = logging.getLogger(__name__)

# bcrypt_sha256 covers the whole password; plain bcrypt hashes still verify.
_pwd_context = CryptContext(schemes=["bcrypt_sha256", "bcrypt"], deprecated="auto")


@dataclass(frozen=True)
class AuthenticatedSession:
    """Identity attached to a request that passed the session gate."""

    session_id: str
    user_id: UUID
    username: str
    expires_at: datetime

    def public_profile(self) -> dict[str, str]:
        return {"id": str(self.user_id), "username": self.username}


def hash_password(password: str) -> str:
    """Hash a plain-text password using bcrypt."""

    return _pwd_context.hash(password)


def verify_password(password: str, hashed_password: str) -> bool:
    """Verify that ``password`` matches ``hashed_password``."""

    try:
        return _pwd_context.verify(password, hashed_password)
    except (ValueError, TypeError):
        logger.warning("Stored password hash could not be parsed")
        return False


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    return hash_password(secrets.token_urlsafe(16))


def _require_credentials(username: str | None, password: str | None) -> tuple[str, str]:
    name = (username or "").strip()
    if not name or not password:
        raise ValidationError("Username and password are required")
    return name, password


def signup(store: RecordStore, *, username: str, password: str) -> UserRecord:
    """Create a new user. Raises ``ConflictError`` when the username is taken."""

    name, plain = _require_credentials(username, password)
    user = store.create_user(username=name, hashed_password=hash_password(plain))
    logger.info("Registered user %s", user.username)
    return user


def authenticate(store: RecordStore, *, username: str, password: str) -> UserRecord:
    """Check credentials, failing identically for unknown users and wrong passwords."""

    name, plain = _require_credentials(username, password)
    user = store.find_user_by_username(name)
    if user is None:
        # Burn the same bcrypt cost so response timing does not reveal unknown usernames.
        verify_password(plain, _dummy_hash())
        logger.info("Rejected login for %s", name)
        raise AuthError()
    if not verify_password(plain, user.hashed_password):
        logger.info("Rejected login for %s", name)
        raise AuthError()
    return user


def create_session_token(session: SessionRecord) -> str:
    """Sign the session id into the value stored in the cookie."""

    payload = {
        "sid": session.id,
        "sub": str(session.user_id),
        "typ": SESSION_TOKEN_TYPE,
        "iat": session.created_at,
        "exp": session.expires_at,
    }
    return jwt.encode(payload, get_session_secret(), algorithm=get_settings().session_algorithm)


def decode_session_token(token: str | None) -> Optional[str]:
    """Return the session id carried by a cookie value, or ``None`` when it is unusable."""

    if not token:
        return None
    try:
        payload = jwt.decode(
            token,
            get_session_secret(),
            algorithms=[get_settings().session_algorithm],
            options={"require_exp": True},
        )
    except JWTError:
        return None
    if payload.get("typ") != SESSION_TOKEN_TYPE:
        return None
    session_id = payload.get("sid")
    return session_id if isinstance(session_id, str) and session_id else None


def open_session(store: RecordStore, user: UserRecord) -> tuple[SessionRecord, str]:
    """Persist a new server-side session for ``user`` and return it with its cookie token."""

    ttl = timedelta(minutes=get_settings().session_ttl_minutes)
    expires_at = datetime.now(timezone.utc) + ttl
    session = store.create_session(session_id=secrets.token_urlsafe(32), user_id=user.id, expires_at=expires_at)
    return session, create_session_token(session)


def resolve_session(store: RecordStore, token: str | None) -> AuthenticatedSession | None:
    """Map a cookie value to a live session for an existing user."""

    session_id = decode_session_token(token)
    if session_id is None:
        return None

    session = store.get_session(session_id)
    if session is None:
        return None

    if session.expires_at <= datetime.now(timezone.utc):
        store.delete_session(session.id)
        return None

    user = store.get_user(session.user_id)
    if user is None:
        store.delete_session(session.id)
        return None

    return AuthenticatedSession(
        session_id=session.id,
        user_id=user.id,
        username=user.username,
        expires_at=session.expires_at,
    )


def close_session(store: RecordStore, token: str | None) -> None:
    """Destroy the session behind ``token``. Missing or stale tokens are ignored."""

    session_id = decode_session_token(token)
    if session_id is not None and store.delete_session(session_id):
        logger.info("Closed session %s", session_id[:8])


def set_session_cookie(response: Response, token: str, session: SessionRecord) -> None:
    settings = get_settings()
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        expires=session.expires_at,
        httponly=True,
        samesite="lax",
        secure=settings.session_cookie_secure,
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(get_settings().session_cookie_name)


def session_token_from(request: Request) -> str | None:
    return request.cookies.get(get_settings().session_cookie_name)


async def get_optional_session(
    request: Request,
    store: RecordStore = Depends(get_record_store),
) -> AuthenticatedSession | None:
    """Return the authenticated session when the request carries a valid cookie."""

    return resolve_session(store, session_token_from(request))


async def get_current_session(
    current: AuthenticatedSession | None = Depends(get_optional_session),
) -> AuthenticatedSession:
    """Session gate for API routes: 401 unless a live session is present."""

    if current is None:
        raise SessionError()
    return current


__all__ = [
    "AuthenticatedSession",
    "authenticate",
    "signup",
    "hash_password",
    "verify_password",
    "create_session_token",
    "decode_session_token",
    "open_session",
    "resolve_session",
    "close_session",
    "set_session_cookie",
    "clear_session_cookie",
    "session_token_from",
    "get_optional_session",
    "get_current_session",
]
