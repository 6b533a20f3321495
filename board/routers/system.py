"""System-level routes for diagnostics."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import get_settings
from ..database import get_session

router = APIRouter(tags=["system"])

logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
    database: bool


@router.get("/health", response_model=HealthResponse)
def healthcheck(db: Session = Depends(get_session)) -> HealthResponse:
    """Report service identity and whether the database answers."""

    settings = get_settings()
    try:
        db.execute(text("SELECT 1"))
        database_ok = True
    except SQLAlchemyError:
        logger.exception("Health check could not reach the database")
        database_ok = False

    return HealthResponse(
        status="ok" if database_ok else "degraded",
        service=settings.app_name,
        version=settings.api_version,
        database=database_ok,
    )
