"""Pydantic schemas for authentication endpoints."""
from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, Field


class CredentialsRequest(BaseModel):
    """Body of ``/signup`` and ``/login``. Emptiness is checked by the auth service."""

    username: str = Field(default="", max_length=150)
    password: str = Field(default="", max_length=128)


class UserPublic(BaseModel):
    """Public profile: never includes the password hash."""

    id: UUID
    username: str


class AuthResponse(BaseModel):
    success: bool = True
    user: UserPublic


class SessionStatusResponse(BaseModel):
    authenticated: bool
    user: UserPublic | None = None


class SuccessResponse(BaseModel):
    success: bool = True


__all__ = [
    "CredentialsRequest",
    "UserPublic",
    "AuthResponse",
    "SessionStatusResponse",
    "SuccessResponse",
]
