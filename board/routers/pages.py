"""HTML pages. The board page redirects to the login page without a live session."""
from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Depends, status
from fastapi.responses import FileResponse, RedirectResponse, Response

from ..services import AuthenticatedSession, get_optional_session

STATIC_ROOT = Path(__file__).resolve().parent.parent / "static"

router = APIRouter(tags=["pages"], include_in_schema=False)


@router.get("/")
async def board_page(current: AuthenticatedSession | None = Depends(get_optional_session)) -> Response:
    if current is None:
        return RedirectResponse("/login", status_code=status.HTTP_303_SEE_OTHER)
    return FileResponse(STATIC_ROOT / "index.html", media_type="text/html")


@router.get("/login")
async def login_page(current: AuthenticatedSession | None = Depends(get_optional_session)) -> Response:
    if current is not None:
        return RedirectResponse("/", status_code=status.HTTP_303_SEE_OTHER)
    return FileResponse(STATIC_ROOT / "login.html", media_type="text/html")
