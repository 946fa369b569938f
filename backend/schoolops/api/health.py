import logging
from typing import Literal

from fastapi import APIRouter
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from schoolops.config import get_settings
from schoolops.db import SessionDep

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Liveness plus database reachability."""

    status: Literal["ok", "degraded"]
    database: Literal["ok", "unreachable"]
    app: str
    version: str
    environment: str


@router.get("/health", response_model=HealthResponse)
async def health(session: SessionDep) -> HealthResponse:
    settings = get_settings()
    database: Literal["ok", "unreachable"] = "ok"

    try:
        await session.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError):
        logger.exception("Health check: database connectivity failed")
        database = "unreachable"

    return HealthResponse(
        status="ok" if database == "ok" else "degraded",
        database=database,
        app=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )
