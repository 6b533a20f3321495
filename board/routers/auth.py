"""Authentication routes backed by server-side cookie sessions."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response, status

from ..schemas import AuthResponse, CredentialsRequest, SessionStatusResponse, SuccessResponse, UserPublic
from ..services import (
    AuthenticatedSession,
    authenticate,
    clear_session_cookie,
    close_session,
    get_current_session,
    get_optional_session,
    open_session,
    session_token_from,
    set_session_cookie,
    signup,
)
from ..stores import RecordStore, UserRecord, get_record_store

router = APIRouter(tags=["auth"])


def _start_session(store: RecordStore, user: UserRecord, request: Request, response: Response) -> AuthResponse:
    # Replace whatever session the client held before.
    close_session(store, session_token_from(request))
    session, token = open_session(store, user)
    set_session_cookie(response, token, session)
    return AuthResponse(user=UserPublic(id=user.id, username=user.username))


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def signup_endpoint(
    payload: CredentialsRequest,
    request: Request,
    response: Response,
    store: RecordStore = Depends(get_record_store),
) -> AuthResponse:
    user = signup(store, username=payload.username, password=payload.password)
    return _start_session(store, user, request, response)


@router.post("/login", response_model=AuthResponse)
async def login_endpoint(
    payload: CredentialsRequest,
    request: Request,
    response: Response,
    store: RecordStore = Depends(get_record_store),
) -> AuthResponse:
    user = authenticate(store, username=payload.username, password=payload.password)
    return _start_session(store, user, request, response)


@router.post("/logout", response_model=SuccessResponse)
async def logout_endpoint(
    request: Request,
    response: Response,
    store: RecordStore = Depends(get_record_store),
) -> SuccessResponse:
    close_session(store, session_token_from(request))
    clear_session_cookie(response)
    return SuccessResponse()


@router.get("/check-session", response_model=SessionStatusResponse)
async def check_session_endpoint(
    request: Request,
    response: Response,
    current: AuthenticatedSession | None = Depends(get_optional_session),
) -> SessionStatusResponse:
    if current is None:
        if session_token_from(request) is not None:
            # The cookie no longer maps to a live session.
            clear_session_cookie(response)
        return SessionStatusResponse(authenticated=False)
    return SessionStatusResponse(
        authenticated=True,
        user=UserPublic(id=current.user_id, username=current.username),
    )


@router.get("/current-user", response_model=UserPublic)
async def current_user_endpoint(current: AuthenticatedSession = Depends(get_current_session)) -> UserPublic:
    return UserPublic(id=current.user_id, username=current.username)
